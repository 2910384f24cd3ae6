import os
import signal

import psutil

from smallsh.parser import STDIN_FD, STDOUT_FD

ENTER_FG_ONLY = b"\nEntering foreground-only mode (& is now ignored)\n: "
EXIT_FG_ONLY = b"\nExiting foreground-only mode\n: "


class ExitStatus:
    """How a child finished: an exit code, or the signal that killed it."""

    def __init__(self, value=0, signaled=False):
        self.value = value
        self.signaled = signaled

    @classmethod
    def from_returncode(cls, returncode):
        # subprocess reports death by signal N as -N
        if returncode < 0:
            return cls(-returncode, signaled=True)
        return cls(returncode)

    def __eq__(self, other):
        if not isinstance(other, ExitStatus):
            return NotImplemented
        return (self.value, self.signaled) == (other.value, other.signaled)

    def __repr__(self):
        kind = "signal" if self.signaled else "exit"
        return f"ExitStatus({kind} {self.value})"


class ForegroundOnlyMode:
    """
    Process-wide flag flipped by SIGTSTP.
    Only the signal handler writes it; everybody else reads `active`.
    """

    def __init__(self):
        self.active = False

    def toggle(self):
        # one attribute store, banner bytes are prebuilt
        if self.active:
            self.active = False
            os.write(STDOUT_FD, EXIT_FG_ONLY)
        else:
            self.active = True
            os.write(STDOUT_FD, ENTER_FG_ONLY)


fg_only_mode = ForegroundOnlyMode()


def handle_sigtstp(signum, frame):
    """Ctrl+Z toggles foreground-only mode instead of suspending the shell"""
    fg_only_mode.toggle()


def init_signal_handlers():
    """Shell ignores Ctrl+C and uses Ctrl+Z as the mode toggle"""
    signal.signal(signal.SIGINT, signal.SIG_IGN)
    # left interruptible so the handler runs during a foreground wait;
    # interrupted waitpid/read calls are retried by Python itself
    signal.signal(signal.SIGTSTP, handle_sigtstp)


class Job:
    def __init__(self, proc, fd_in=STDIN_FD, fd_out=STDOUT_FD, cmdline=""):
        self.proc = proc
        self.fd_in = fd_in
        self.fd_out = fd_out
        self.cmdline = cmdline

    @property
    def pid(self):
        return self.proc.pid

    def release(self):
        """Close the job's redirections, never the shell's own streams."""
        if self.fd_in != STDIN_FD:
            os.close(self.fd_in)
        if self.fd_out != STDOUT_FD:
            os.close(self.fd_out)

    def __repr__(self):
        return f"Job(pid={self.pid}, in={self.fd_in}, out={self.fd_out}, {self.cmdline!r})"


class JobTable:
    """Background jobs in launch order."""

    def __init__(self):
        self.jobs = []

    def __len__(self):
        return len(self.jobs)

    def __iter__(self):
        return iter(list(self.jobs))

    def __contains__(self, pid):
        return any(job.pid == pid for job in self.jobs)

    def push(self, proc, fd_in=STDIN_FD, fd_out=STDOUT_FD, cmdline=""):
        job = Job(proc, fd_in, fd_out, cmdline)
        self.jobs.append(job)
        return job

    def reap_one(self):
        """
        Poll each job once without blocking and remove the first one that
        has terminated.
        Returns: (job, ExitStatus) or None if nothing finished
        """
        for job in list(self.jobs):
            returncode = job.proc.poll()
            if returncode is None:
                continue
            self.jobs.remove(job)
            job.release()
            return job, ExitStatus.from_returncode(returncode)
        return None

    def poll(self):
        """Reap and report every finished job. Returns the reaped pairs."""
        done = []
        while True:
            reaped = self.reap_one()
            if reaped is None:
                break
            job, status = reaped
            report_done(job, status)
            done.append(reaped)
        return done

    def drain_all(self):
        """Forget every job without waiting; used when the shell exits."""
        jobs, self.jobs = self.jobs, []
        for job in jobs:
            job.release()
        return len(jobs)


def report_done(job, status):
    if status.signaled:
        outcome = f"Terminated by signal {status.value}"
    else:
        outcome = f"Exited with status {status.value}"
    print(f"DONE with background process with pid [{job.pid}]: {outcome}")


def show_jobs(table):
    """List outstanding background jobs with their state from psutil"""
    if not len(table):
        print("No background jobs.")
        return

    for job in table:
        try:
            state = psutil.Process(job.pid).status()
        except psutil.NoSuchProcess:
            state = "terminated"
        except psutil.AccessDenied:
            state = "unknown"
        print(f"[{job.pid}] {job.cmdline}  [{state}]")
