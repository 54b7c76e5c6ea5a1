"""
Process-level helpers for the native apply tools.

Public API:
  - write_tempfile(text: str, *, suffix: str = ".patch", prefix: str = "patchmend-", dir: str | None = None, encoding: str = "utf-8") -> str
  - which(cmd: str) -> bool
  - is_git_worktree(path: str) -> bool
"""
from __future__ import annotations

import contextlib
import os
import tempfile

__all__ = ["write_tempfile", "which", "is_git_worktree"]


def write_tempfile(
    text: str,
    *,
    suffix: str = ".patch",
    prefix: str = "patchmend-",
    dir: str | None = None,
    encoding: str = "utf-8",
) -> str:
    """
    Write `text` to a new temporary file and return its absolute path.
    The caller owns the file and must remove it.
    """
    if suffix and not suffix.startswith("."):
        suffix = f".{suffix}"
    fd, path = tempfile.mkstemp(prefix=prefix, suffix=suffix, dir=dir)
    try:
        # newline="" keeps the patch bytes exactly as given
        with os.fdopen(fd, "w", encoding=encoding, newline="") as f:
            f.write(text)
    except OSError:
        with contextlib.suppress(OSError):
            os.remove(path)
        raise
    return os.path.realpath(path)


def which(cmd: str) -> bool:
    """Minimal shutil.which returning only whether `cmd` is runnable."""
    paths = os.environ.get("PATH", "").split(os.pathsep)
    exts = [""]
    if os.name == "nt":
        pathext = os.environ.get("PATHEXT", ".EXE;.BAT;.CMD").split(";")
        exts = [e.lower() for e in pathext if e]
    for folder in paths:
        if not folder:
            continue
        full = os.path.join(folder, cmd)
        for e in exts:
            candidate = full + e
            if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
                return True
    return False


def is_git_worktree(path: str) -> bool:
    """True when `path` or one of its parents holds a .git entry."""
    cur = os.path.abspath(path)
    while True:
        if os.path.exists(os.path.join(cur, ".git")):
            return True
        parent = os.path.dirname(cur)
        if parent == cur:
            return False
        cur = parent
