"""Tests for the command compiler state machine.

Redirections must come before a final ``&``, input before output, and
nothing may follow the output filename except that ``&``.
"""

import os

import pytest

from smallsh.parser import (
    STDIN_FD,
    STDOUT_FD,
    Command,
    ParseError,
    ParseErrorKind,
    compile_command,
    expand_home,
)


@pytest.fixture
def infile(tmp_path):
    path = tmp_path / "in.txt"
    path.write_text("input\n")
    return str(path)


def _kind(tokens, foreground_only=False):
    with pytest.raises(ParseError) as excinfo:
        compile_command(tokens, foreground_only)
    return excinfo.value.kind


class TestPlainCommands:
    """Verify argument gathering."""

    def test_args_only(self) -> None:
        """Plain words become the argument vector of a foreground command."""
        cmd = compile_command(["ls", "-l", "/tmp"])
        assert cmd.args == ["ls", "-l", "/tmp"]
        assert cmd.foreground
        assert cmd.fd_in == STDIN_FD
        assert cmd.fd_out == STDOUT_FD
        assert cmd.owned_fds() == []

    def test_empty_is_noop(self) -> None:
        """No tokens means no command."""
        assert compile_command([]) is None

    @pytest.mark.parametrize("stray", ["<", ">", "&"])
    def test_stray_leading_operator_is_noop(self, stray) -> None:
        """A leading <, > or & is silently ignored rather than an error."""
        assert compile_command([stray]) is None
        assert compile_command([stray, "file"]) is None

    def test_ampersand_not_last_is_an_argument(self) -> None:
        """Only a final & means background."""
        cmd = compile_command(["echo", "&", "x"])
        assert cmd.args == ["echo", "&", "x"]
        assert cmd.foreground


class TestRedirection:
    """Verify < and > handling."""

    def test_input_and_output(self, infile, tmp_path) -> None:
        """cmd < in > out binds both descriptors and stays foreground."""
        out = tmp_path / "out.txt"
        cmd = compile_command(["cat", "<", infile, ">", str(out)])
        try:
            assert cmd.args == ["cat"]
            assert cmd.foreground
            assert cmd.fd_in not in (STDIN_FD, STDOUT_FD)
            assert cmd.fd_out not in (STDIN_FD, STDOUT_FD)
            assert os.read(cmd.fd_in, 100) == b"input\n"
            assert out.exists()
        finally:
            cmd.release()

    def test_output_truncates(self, tmp_path) -> None:
        """The output file is truncated on open."""
        out = tmp_path / "out.txt"
        out.write_text("old contents")
        cmd = compile_command(["echo", ">", str(out)])
        cmd.release()
        assert out.read_text() == ""

    def test_tilde_in_filename(self, tmp_path, monkeypatch) -> None:
        """A leading ~ in a redirection target is replaced by $HOME."""
        monkeypatch.setenv("HOME", str(tmp_path))
        cmd = compile_command(["echo", ">", "~/out.txt"])
        cmd.release()
        assert (tmp_path / "out.txt").exists()

    def test_missing_input_name(self) -> None:
        """< with nothing after it is an error."""
        assert _kind(["cmd", "<"]) is ParseErrorKind.MISSING_INPUT_FILE

    def test_missing_output_name(self, infile) -> None:
        """> with nothing after it is an error, also after an input redirect."""
        assert _kind(["cmd", ">"]) is ParseErrorKind.MISSING_OUTPUT_FILE
        assert _kind(["cmd", "<", infile, ">"]) is ParseErrorKind.MISSING_OUTPUT_FILE

    def test_input_open_failure(self, tmp_path) -> None:
        """A missing input file is reported."""
        missing = str(tmp_path / "nope")
        assert _kind(["cat", "<", missing]) is ParseErrorKind.INPUT_OPEN_FAILED

    def test_output_open_failure(self, tmp_path) -> None:
        """An output path in a missing directory is reported."""
        bad = str(tmp_path / "no" / "such" / "dir")
        assert _kind(["echo", ">", bad]) is ParseErrorKind.OUTPUT_OPEN_FAILED

    def test_second_input_is_unexpected(self, infile) -> None:
        """Only one input redirect is allowed."""
        assert _kind(["cat", "<", infile, "<", infile]) is ParseErrorKind.UNEXPECTED_TOKEN

    def test_args_after_redirect_are_unexpected(self, infile, tmp_path) -> None:
        """Arguments cannot follow a redirection."""
        out = str(tmp_path / "out")
        assert _kind(["cat", "<", infile, "-n"]) is ParseErrorKind.UNEXPECTED_TOKEN
        assert _kind(["cat", ">", out, "-n"]) is ParseErrorKind.UNEXPECTED_TOKEN

    def test_output_before_input_is_unexpected(self, infile, tmp_path) -> None:
        """Input must be redirected before output."""
        out = str(tmp_path / "out")
        assert _kind(["cat", ">", out, "<", infile]) is ParseErrorKind.UNEXPECTED_TOKEN

    def test_error_message_text(self) -> None:
        """Each error renders as its fixed message."""
        with pytest.raises(ParseError, match="Filename expected after < token"):
            compile_command(["cmd", "<"])


class TestBackground:
    """Verify the final & and foreground-only mode."""

    def test_background_binds_null_device(self) -> None:
        """cmd & runs in background with stdin and stdout on the null device."""
        cmd = compile_command(["sleep", "1", "&"])
        try:
            assert cmd.args == ["sleep", "1"]
            assert not cmd.foreground
            assert cmd.fd_in != STDIN_FD
            assert cmd.fd_out != STDOUT_FD
            assert os.read(cmd.fd_in, 10) == b""
        finally:
            cmd.release()

    def test_foreground_only_ignores_ampersand(self) -> None:
        """In foreground-only mode the & is consumed but has no effect."""
        cmd = compile_command(["sleep", "1", "&"], foreground_only=True)
        assert cmd.args == ["sleep", "1"]
        assert cmd.foreground
        assert cmd.owned_fds() == []

    def test_background_keeps_input_redirect(self, infile) -> None:
        """An explicit input file survives; only stdout goes to the null device."""
        cmd = compile_command(["cat", "<", infile, "&"])
        try:
            assert not cmd.foreground
            assert os.read(cmd.fd_in, 100) == b"input\n"
            assert cmd.fd_out != STDOUT_FD
        finally:
            cmd.release()

    def test_background_keeps_output_redirect(self, tmp_path) -> None:
        """An explicit output file survives; stdin goes to the null device."""
        out = tmp_path / "out"
        cmd = compile_command(["ls", ">", str(out), "&"])
        try:
            assert not cmd.foreground
            os.write(cmd.fd_out, b"x")
            assert os.read(cmd.fd_in, 10) == b""
        finally:
            cmd.release()
        assert out.read_bytes() == b"x"

    def test_ampersand_then_more_after_output(self, tmp_path) -> None:
        """& must be the very last token."""
        out = str(tmp_path / "out")
        assert _kind(["ls", ">", out, "&", "x"]) is ParseErrorKind.UNEXPECTED_TOKEN


class TestCommand:
    """Verify Command bookkeeping."""

    def test_release_closes_only_opened(self, tmp_path) -> None:
        """release() closes redirections and leaves the shell's streams alone."""
        fd = os.open(str(tmp_path / "f"), os.O_WRONLY | os.O_CREAT)
        cmd = Command(["x"], fd_out=fd)
        assert cmd.owned_fds() == [fd]
        cmd.release()
        with pytest.raises(OSError):
            os.fstat(fd)
        os.fstat(STDIN_FD)

    def test_expand_home(self, monkeypatch) -> None:
        """Only a first-character ~ is rewritten."""
        monkeypatch.setenv("HOME", "/home/me")
        assert expand_home("~/a") == "/home/me/a"
        assert expand_home("~") == "/home/me"
        assert expand_home("a/~") == "a/~"
