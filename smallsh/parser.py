import os
from enum import Enum

from smallsh.config import NULL_DEVICE, REDIRECT_MODE

STDIN_FD = 0
STDOUT_FD = 1

REDIRECT_IN = "<"
REDIRECT_OUT = ">"
BACKGROUND = "&"

# parser states
INITIAL = 0
EXPECT_INPUT = 1
AFTER_INPUT = 2
EXPECT_OUTPUT = 3
AFTER_OUTPUT = 4


class ParseErrorKind(Enum):
    MISSING_INPUT_FILE = "SMALLSH: Filename expected after < token"
    MISSING_OUTPUT_FILE = "SMALLSH: Filename expected after > token"
    UNEXPECTED_TOKEN = "SMALLSH: Unexpected token"
    INPUT_OPEN_FAILED = "SMALLSH: Input file could not be opened"
    OUTPUT_OPEN_FAILED = "SMALLSH: Output file could not be opened"


class ParseError(Exception):
    def __init__(self, kind):
        super().__init__(kind.value)
        self.kind = kind


class Command:
    """
    One compiled command line.
    fd_in/fd_out default to the interpreter's own stdin/stdout; a background
    command always has both bound to something concrete.
    """

    def __init__(self, args=None, fd_in=None, fd_out=None, foreground=True):
        self.args = list(args or [])
        self.fd_in = STDIN_FD if fd_in is None else fd_in
        self.fd_out = STDOUT_FD if fd_out is None else fd_out
        self.foreground = foreground

    def owned_fds(self):
        """Descriptors opened for this command (not the inherited streams)."""
        fds = []
        if self.fd_in != STDIN_FD:
            fds.append(self.fd_in)
        if self.fd_out != STDOUT_FD:
            fds.append(self.fd_out)
        return fds

    def release(self):
        for fd in self.owned_fds():
            os.close(fd)

    def __repr__(self):
        mode = "fg" if self.foreground else "bg"
        return f"Command({self.args!r}, in={self.fd_in}, out={self.fd_out}, {mode})"


def expand_home(path):
    """Replace a leading ~ with $HOME. Only the first character is looked at."""
    if path.startswith("~"):
        return os.getenv("HOME", "") + path[1:]
    return path


def _open_input(path):
    try:
        return os.open(expand_home(path), os.O_RDONLY)
    except OSError:
        raise ParseError(ParseErrorKind.INPUT_OPEN_FAILED)


def _open_output(path):
    try:
        return os.open(expand_home(path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, REDIRECT_MODE)
    except OSError:
        raise ParseError(ParseErrorKind.OUTPUT_OPEN_FAILED)


def _go_background(cmd, foreground_only):
    """Honor a final & unless foreground-only mode swallows it."""
    if foreground_only:
        return
    cmd.foreground = False
    if cmd.fd_in == STDIN_FD:
        cmd.fd_in = os.open(NULL_DEVICE, os.O_RDONLY)
    if cmd.fd_out == STDOUT_FD:
        cmd.fd_out = os.open(NULL_DEVICE, os.O_WRONLY)


def compile_command(tokens, foreground_only=False):
    """
    Run the redirection/background state machine over tokens.
    Returns: Command, or None for an empty line or a stray leading <, > or &
    Raises: ParseError (every descriptor opened so far is closed first)
    """
    if not tokens or tokens[0] in (REDIRECT_IN, REDIRECT_OUT, BACKGROUND):
        return None

    cmd = Command()
    state = INITIAL
    last = len(tokens) - 1

    try:
        for i, tok in enumerate(tokens):
            if state == INITIAL:
                if tok == REDIRECT_IN:
                    if i == last:
                        raise ParseError(ParseErrorKind.MISSING_INPUT_FILE)
                    state = EXPECT_INPUT
                elif tok == REDIRECT_OUT:
                    if i == last:
                        raise ParseError(ParseErrorKind.MISSING_OUTPUT_FILE)
                    state = EXPECT_OUTPUT
                elif tok == BACKGROUND and i == last:
                    _go_background(cmd, foreground_only)
                else:
                    cmd.args.append(tok)

            elif state == EXPECT_INPUT:
                cmd.fd_in = _open_input(tok)
                state = AFTER_INPUT

            elif state == AFTER_INPUT:
                if tok == REDIRECT_OUT:
                    if i == last:
                        raise ParseError(ParseErrorKind.MISSING_OUTPUT_FILE)
                    state = EXPECT_OUTPUT
                elif tok == BACKGROUND and i == last:
                    _go_background(cmd, foreground_only)
                else:
                    raise ParseError(ParseErrorKind.UNEXPECTED_TOKEN)

            elif state == EXPECT_OUTPUT:
                cmd.fd_out = _open_output(tok)
                state = AFTER_OUTPUT

            elif state == AFTER_OUTPUT:
                if tok != BACKGROUND or i != last:
                    raise ParseError(ParseErrorKind.UNEXPECTED_TOKEN)
                _go_background(cmd, foreground_only)
    except ParseError:
        cmd.release()
        raise

    return cmd
