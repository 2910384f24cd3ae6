import os

PROMPT = ": "
PID_MARKER = "$$"

# argv slots, the last one is reserved so at most MAX_ARGS - 1 tokens are read
MAX_ARGS = 512

NULL_DEVICE = os.devnull
REDIRECT_MODE = 0o640

HISTORY_FILE = os.path.expanduser(os.getenv("SMALLSH_HISTFILE", "~/.smallsh_history"))


def _int_env(name, default):
    try:
        return int(os.getenv(name, default))
    except ValueError:
        return default


MAX_HISTORY = _int_env("SMALLSH_HISTSIZE", 1000)
