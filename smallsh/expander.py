import os

from smallsh.config import MAX_ARGS, PID_MARKER


def is_comment(line):
    """Blank lines and lines starting with # never reach the parser."""
    return not line.strip() or line.startswith("#")


def grow(capacity, goal):
    """Double capacity until it holds at least goal characters."""
    capacity = max(capacity, 1)
    while capacity < goal:
        capacity *= 2
    return capacity


def expand_pid(token, pid=None):
    """
    Replace every $$ in token with the decimal pid.
    The result is built in a buffer that grows by doubling.
    """
    if PID_MARKER not in token:
        return token

    pid_str = str(os.getpid() if pid is None else pid)
    buf = bytearray(len(token))
    size = 0
    start = 0

    while True:
        hit = token.find(PID_MARKER, start)
        piece = token[start:] if hit < 0 else token[start:hit] + pid_str
        data = piece.encode(errors="surrogateescape")
        if size + len(data) > len(buf):
            buf.extend(bytes(grow(len(buf), size + len(data)) - len(buf)))
        buf[size:size + len(data)] = data
        size += len(data)
        if hit < 0:
            break
        start = hit + len(PID_MARKER)

    return buf[:size].decode(errors="surrogateescape")


def tokenize(line, pid=None):
    """
    Split a raw line on whitespace and expand $$ in every token.
    Returns: list of tokens (empty for comments and blank lines)
    """
    if is_comment(line):
        return []
    return [expand_pid(tok, pid) for tok in line.split()[:MAX_ARGS - 1]]
