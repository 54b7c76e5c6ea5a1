# patchmend/commit/core.py
from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from ..errors.commit import CommitError
from ..errors.path import PathViolation
from ..utils.text import split_lines


log = logging.getLogger(__name__)


@dataclass
class Change:
    """A single file operation produced by a reconciliation attempt."""
    action: str  # "create", "modify", "delete"
    path: str
    new_content: Optional[str] = None
    original_content: Optional[str] = None


@dataclass
class CommitSummary:
    """Outcome of a commit: which paths were written, and any per-path errors."""

    success: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)


def _normalized_path(base_real: str, rel_path: str, check_exists: bool = False) -> str:
    """
    Join a repository-relative path onto base_real and enforce containment.
    Raises PathViolation if the resolved path escapes base_real.
    """
    target_path = os.path.join(base_real, *rel_path.replace("\\", "/").split("/"))
    # realpath follows symlinks for existing files; abspath is enough for new ones.
    resolved = os.path.realpath(target_path) if check_exists else os.path.abspath(target_path)
    if os.path.commonpath([base_real, resolved]) != base_real:
        raise PathViolation(f"Path traversal attempt detected for '{rel_path}'")
    return resolved


def _backup_path(dest: str, backup_ext: str) -> str:
    ext = backup_ext if backup_ext.startswith(".") else "." + backup_ext
    return dest + ext


def commit_changes(
    base_path: str,
    changes: List[Change],
    *,
    backup_ext: str | None = None,
) -> CommitSummary:
    """
    Write a batch of changes all-or-nothing.

    Every create/modify is first staged to a tempfile beside its destination;
    only when all staging succeeded are the stages promoted with os.replace()
    and deletes performed. A failure during promotion rolls back what was
    already promoted using each change's original_content.

    Raises:
        CommitError: with per-path errors, leaving the tree as it was.
    """
    summary = CommitSummary()
    base_real = os.path.realpath(base_path)

    resolved: List[Tuple[Change, str]] = []
    for ch in changes:
        if ch.action not in ("create", "modify", "delete"):
            summary.failed.append(ch.path)
            summary.errors[ch.path] = f"unknown action '{ch.action}'"
            continue
        try:
            dest = _normalized_path(base_real, ch.path, check_exists=ch.action != "create")
            if ch.action in ("modify", "delete") and not os.path.exists(dest):
                raise FileNotFoundError(f"File not found: '{ch.path}'")
            resolved.append((ch, dest))
        except (OSError, PathViolation) as e:
            summary.failed.append(ch.path)
            summary.errors[ch.path] = str(e)
    if summary.failed:
        raise CommitError("commit validation failed", summary.errors)

    staged: Dict[str, str] = {}  # dest -> tmp
    try:
        for ch, dest in resolved:
            if ch.action == "delete":
                continue
            dirpath = os.path.dirname(dest)
            os.makedirs(dirpath, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=".pm-", suffix=".tmp", dir=dirpath)
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(ch.new_content or "")
            staged[dest] = tmp
    except OSError as e:
        _discard(staged.values())
        raise CommitError(f"staging failed: {e}", {ch.path: str(e)}) from e

    promoted: List[Tuple[Change, str]] = []
    for ch, dest in resolved:
        try:
            if ch.action == "delete":
                os.remove(dest)
            else:
                if backup_ext and ch.action == "modify" and ch.original_content is not None:
                    with open(_backup_path(dest, backup_ext), "w", encoding="utf-8", newline="") as b:
                        b.write(ch.original_content)
                os.replace(staged[dest], dest)
                del staged[dest]
            promoted.append((ch, dest))
            summary.success.append(ch.path)
        except OSError as e:
            log.warning(f"commit of '{ch.path}' failed, rolling back {len(promoted)} change(s): {e}")
            _discard(staged.values())
            _rollback(promoted)
            raise CommitError(f"write failed for '{ch.path}': {e}", {ch.path: str(e)}) from e
    return summary


def _discard(tmps: Iterable[str]) -> None:
    for tmp in list(tmps):
        with contextlib.suppress(OSError):
            os.remove(tmp)


def _rollback(promoted: List[Tuple[Change, str]]) -> None:
    for ch, dest in reversed(promoted):
        try:
            if ch.action == "create":
                if os.path.exists(dest):
                    os.remove(dest)
            elif ch.original_content is not None:
                with open(dest, "w", encoding="utf-8", newline="") as f:
                    f.write(ch.original_content)
        except OSError as e:
            log.error(f"rollback of '{ch.path}' failed: {e}")


# =============================
# File stores
# =============================

class FileStore:
    """
    Minimal read/write surface the engine needs from a repository.

    Subclasses implement read/exists/write/delete; commit() applies a batch of
    Change records and may override it to make the batch atomic.
    """

    root: Optional[str] = None

    def read(self, path: str) -> str:
        raise NotImplementedError

    def exists(self, path: str) -> bool:
        raise NotImplementedError

    def write(self, path: str, text: str) -> None:
        raise NotImplementedError

    def delete(self, path: str) -> None:
        raise NotImplementedError

    def read_lines(self, path: str) -> Optional[List[str]]:
        """File lines, or None when the file does not exist."""
        if not self.exists(path):
            return None
        return split_lines(self.read(path))

    def commit(self, changes: List[Change]) -> List[str]:
        written: List[str] = []
        for ch in changes:
            if ch.action == "delete":
                self.delete(ch.path)
            else:
                self.write(ch.path, ch.new_content or "")
            written.append(ch.path)
        return written


class LocalFileStore(FileStore):
    """Files under a repository root on disk; every path is containment-checked."""

    def __init__(self, root: str, *, backup_ext: str | None = None):
        self.root = os.path.realpath(root)
        self.backup_ext = backup_ext

    def _resolve(self, path: str, check_exists: bool = True) -> str:
        return _normalized_path(self.root, path, check_exists=check_exists)

    def read(self, path: str) -> str:
        try:
            with open(self._resolve(path), "r", encoding="utf-8", newline="") as f:
                return f.read()
        except FileNotFoundError as e:
            raise FileNotFoundError(f"File not found: {path}") from e

    def exists(self, path: str) -> bool:
        try:
            return os.path.isfile(self._resolve(path))
        except PathViolation:
            return False

    def write(self, path: str, text: str) -> None:
        dest = self._resolve(path, check_exists=False)
        os.makedirs(os.path.dirname(dest), exist_ok=True)
        with open(dest, "w", encoding="utf-8", newline="") as f:
            f.write(text)

    def delete(self, path: str) -> None:
        os.remove(self._resolve(path))

    def commit(self, changes: List[Change]) -> List[str]:
        return commit_changes(self.root, changes, backup_ext=self.backup_ext).success


class MemoryFileStore(FileStore):
    """In-process store keyed by repository-relative path."""

    def __init__(self, files: Dict[str, str] | None = None):
        self.files: Dict[str, str] = dict(files or {})

    def read(self, path: str) -> str:
        try:
            return self.files[path]
        except KeyError:
            raise FileNotFoundError(f"File not found: {path}") from None

    def exists(self, path: str) -> bool:
        return path in self.files

    def write(self, path: str, text: str) -> None:
        self.files[path] = text

    def delete(self, path: str) -> None:
        self.files.pop(path, None)
