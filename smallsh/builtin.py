"""
Builtins run inside the shell process: exit, cd, status and jobs.
These names shadow any program of the same name on PATH.
"""
import errno
import os

from smallsh.job_control import show_jobs
from smallsh.parser import BACKGROUND, expand_home


class ShellExit(Exception):
    """Raised by the exit builtin; the main loop unwinds and cleans up."""


def builtin_exit(shell, args):
    raise ShellExit()


def builtin_cd(shell, args):
    """Change directory, $HOME when no target is given"""
    old = os.getcwd()
    go_home = not args or args[0] == BACKGROUND
    if go_home:
        target = os.getenv("HOME", "")
    else:
        target = expand_home(args[0])

    try:
        os.chdir(target)
    except OSError as e:
        if e.errno == errno.ENOTDIR:
            print(f"CD: Cannot change to {target}: Not a directory")
        else:
            print(f"CD: {target}: No such file or directory")
        return

    os.environ["PWD"] = target if go_home else os.getcwd()
    print(f"WAS {old}")


def builtin_status(shell, args):
    """Report how the last foreground command finished"""
    status = shell.last_status
    if status.signaled:
        print(f"LAST FOREGROUND PROCESS TERMINATED by signal {status.value}")
    else:
        print(f"LAST FOREGROUND PROCESS EXITED with status {status.value}")


def builtin_jobs(shell, args):
    show_jobs(shell.jobs)


BUILTINS = {
    "exit": builtin_exit,
    "cd": builtin_cd,
    "status": builtin_status,
    "jobs": builtin_jobs,
}


def execute_builtin(shell, tokens):
    """
    Run tokens as a builtin if the first one names one.
    Returns: True if it was a builtin
    """
    if not tokens or tokens[0] not in BUILTINS:
        return False
    BUILTINS[tokens[0]](shell, tokens[1:])
    return True
