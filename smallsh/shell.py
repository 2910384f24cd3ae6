import sys

from smallsh.builtin import ShellExit, execute_builtin
from smallsh.config import PROMPT
from smallsh.executor import SpawnError, run_background, run_foreground
from smallsh.expander import tokenize
from smallsh.history import init_readline, init_stdio, load_history, read_line, save_history
from smallsh.job_control import ExitStatus, JobTable, fg_only_mode, init_signal_handlers
from smallsh.parser import ParseError, compile_command


class Shell:
    """Interpreter state: background jobs and the last foreground status."""

    def __init__(self, mode=fg_only_mode):
        self.jobs = JobTable()
        self.last_status = ExitStatus()
        self.mode = mode

    def dispatch(self, tokens):
        """Builtin or external command for one already expanded line"""
        if execute_builtin(self, tokens):
            return

        try:
            cmd = compile_command(tokens, self.mode.active)
        except ParseError as e:
            print(e)
            return
        if cmd is None:
            return

        if cmd.foreground:
            self.last_status = run_foreground(cmd)
        else:
            run_background(cmd, self.jobs)

    def handle_line(self, line):
        """
        Process one input line, then reap finished background jobs.
        Raises: ShellExit on the exit builtin, SpawnError if fork fails
        """
        tokens = tokenize(line)
        if tokens:
            self.dispatch(tokens)
        self.jobs.poll()
        sys.stdout.flush()

    def shutdown(self):
        self.jobs.drain_all()


def main_loop(shell=None):
    """Main shell loop. Returns: process exit code"""
    shell = shell or Shell()
    init_stdio()
    init_signal_handlers()
    interactive = init_readline()
    if interactive:
        load_history()

    try:
        while True:
            line = read_line(PROMPT)
            if line is None:
                break
            shell.handle_line(line)
    except ShellExit:
        pass
    except SpawnError as e:
        print(f"SMALLSH: FATAL ERROR: {e}")
        return 1
    finally:
        if interactive:
            save_history()
        shell.shutdown()

    return 0


def main():
    sys.exit(main_loop())
