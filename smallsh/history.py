import os
import sys

import readline

from smallsh.config import HISTORY_FILE, MAX_HISTORY


def init_readline():
    """Set up line editing; skipped when input is not a terminal"""
    if not sys.stdin.isatty():
        return False
    try:
        readline.parse_and_bind("set editing-mode emacs")
        readline.parse_and_bind("\\e[A: previous-history")
        readline.parse_and_bind("\\e[B: next-history")
        readline.parse_and_bind("\\e[1;5D: backward-word")
        readline.parse_and_bind("\\e[1;5C: forward-word")
    except Exception as e:
        print(f"Warning: Could not configure readline: {e}", file=sys.stderr)
        return False
    return True


def load_history(path=HISTORY_FILE):
    try:
        if os.path.exists(path):
            readline.read_history_file(path)
        readline.set_history_length(MAX_HISTORY)
    except OSError as e:
        print(f"Warning: Could not load history: {e}", file=sys.stderr)


def save_history(path=HISTORY_FILE):
    try:
        readline.set_history_length(MAX_HISTORY)
        readline.write_history_file(path)
    except OSError as e:
        print(f"Warning: Could not save history: {e}", file=sys.stderr)


def init_stdio(stdin=None, stdout=None):
    """Pass undecodable bytes through input and output instead of failing"""
    for stream in (stdin or sys.stdin, stdout or sys.stdout):
        reconfigure = getattr(stream, "reconfigure", None)
        if reconfigure is not None:
            reconfigure(errors="surrogateescape")


def read_line(prompt):
    """
    Print the prompt and read one line.
    Returns: the line, or None at end of input
    """
    try:
        return input(prompt)
    except EOFError:
        print()
        return None
    except KeyboardInterrupt:
        print()
        return ""
