import signal
import subprocess
import sys

from smallsh.job_control import ExitStatus

EXEC_FAILED = 1


class SpawnError(Exception):
    """The fork-equivalent itself failed; the shell cannot go on."""


def child_setup(foreground):
    """
    Signal dispositions for the child, applied between fork and exec.
    Children never stop on Ctrl+Z; only a foreground child dies on Ctrl+C.
    """
    def reset():
        signal.signal(signal.SIGTSTP, signal.SIG_IGN)
        if foreground:
            signal.signal(signal.SIGINT, signal.SIG_DFL)
    return reset


def run_external(cmd):
    """
    Start cmd.args with its stdin/stdout bound to the command's descriptors.
    Returns: Popen object, or None if the program could not be executed
    Raises: SpawnError when the process could not be created at all
    """
    sys.stdout.flush()
    try:
        return subprocess.Popen(
            cmd.args,
            stdin=cmd.fd_in,
            stdout=cmd.fd_out,
            preexec_fn=child_setup(cmd.foreground),
        )
    except OSError as e:
        # exec failures are reported back from the child with the program name
        if e.filename is None:
            raise SpawnError(e.strerror or str(e)) from e
        print(f"SMALLSH: EXECVP: {e.strerror}")
        return None


def run_foreground(cmd):
    """Run cmd and block until it is gone. Returns: ExitStatus"""
    try:
        proc = run_external(cmd)
        if proc is None:
            return ExitStatus(EXEC_FAILED)
        status = ExitStatus.from_returncode(proc.wait())
    finally:
        cmd.release()

    if status.signaled:
        print(f"TERMINATED with signal {status.value}")
    return status


def run_background(cmd, jobs):
    """Start cmd and hand it to the job table. Returns: the Job or None"""
    try:
        proc = run_external(cmd)
    except SpawnError:
        cmd.release()
        raise
    if proc is None:
        cmd.release()
        return None

    print(f"BACKGROUND pid is [{proc.pid}]")
    return jobs.push(proc, cmd.fd_in, cmd.fd_out, " ".join(cmd.args))
