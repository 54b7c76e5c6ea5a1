# patchmend/commit/native.py
"""
Standard-tier adapters around native patch tools.

A native apply tool is any callable ``(repo_root, patch_text) ->
NativeApplyOutcome``. It must never raise for an ordinary rejection; the
outcome carries the tool's complaints as ``stderr``.
"""
from __future__ import annotations

import contextlib
import logging
import os
import subprocess
from typing import Callable, List, Sequence

import patch as patch_lib

from .._logging import capture_records, resolve_logger
from ..extract.diffs import header_paths
from ..models import NativeApplyOutcome
from ..system import is_git_worktree, which, write_tempfile

__all__ = [
    "NativeApplyTool",
    "GitApplyTool",
    "PatchLibApplyTool",
    "default_native_apply",
    "collect_rejects",
]

NativeApplyTool = Callable[[str, str], NativeApplyOutcome]


def collect_rejects(repo_root: str, paths: Sequence[str], *, remove: bool = True) -> List[str]:
    """Return the paths that left a '<path>.rej' file behind, deleting those files."""
    rejected: List[str] = []
    for rel in paths:
        rej = os.path.join(repo_root, *rel.split("/")) + ".rej"
        if os.path.exists(rej):
            rejected.append(rel)
            if remove:
                with contextlib.suppress(OSError):
                    os.remove(rej)
    return rejected


class GitApplyTool:
    """
    `git apply --unidiff-zero [--ignore-whitespace] <file>` run in repo_root.

    The patch is written to a temp file outside the repository and removed
    afterwards. Leftover .rej files for patched paths are cleaned up and turn
    the outcome into a failure even when git exited 0.
    """

    def __init__(self, *, ignore_whitespace: bool = True, timeout: float = 60.0, logger=None, log: bool = False):
        self.ignore_whitespace = ignore_whitespace
        self.timeout = timeout
        self.log = resolve_logger(logger=logger, enabled=log, name=__name__)

    def command(self, patch_file: str) -> List[str]:
        cmd = ["git", "apply", "--unidiff-zero"]
        if self.ignore_whitespace:
            cmd.append("--ignore-whitespace")
        cmd.append(patch_file)
        return cmd

    def __call__(self, repo_root: str, patch_text: str) -> NativeApplyOutcome:
        paths = header_paths(patch_text)
        tmp = write_tempfile(patch_text, suffix=".patch")
        try:
            cmd = self.command(tmp)
            self.log.debug(f"running {' '.join(cmd)} in {repo_root}")
            try:
                proc = subprocess.run(
                    cmd,
                    cwd=repo_root,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                    check=False,
                )
            except subprocess.TimeoutExpired:
                collect_rejects(repo_root, paths)
                return NativeApplyOutcome(success=False, stderr=f"git apply timed out after {self.timeout:g}s")
            except OSError as e:
                return NativeApplyOutcome(success=False, stderr=f"git apply could not run: {e}")
        finally:
            with contextlib.suppress(OSError):
                os.remove(tmp)

        rejected = tuple(collect_rejects(repo_root, paths))
        stderr = (proc.stderr or "").strip()
        if rejected:
            msg = f"Some hunks could not be applied for files: {', '.join(rejected)}"
            return NativeApplyOutcome(success=False, stderr="\n".join(filter(None, [stderr, msg])), rejected_files=rejected)
        if proc.returncode != 0:
            return NativeApplyOutcome(success=False, stderr=stderr or f"git apply exited with {proc.returncode}")
        return NativeApplyOutcome(success=True, stderr=stderr)


class PatchLibApplyTool:
    """
    Apply through the `patch` (python-patch) library.

    python-patch reports problems through its own "patch" logger instead of
    exceptions; those records become the outcome's stderr.
    """

    def __init__(self, *, strip: int = 1, logger=None, log: bool = False):
        self.strip = strip
        self.log = resolve_logger(logger=logger, enabled=log, name=__name__)

    def __call__(self, repo_root: str, patch_text: str) -> NativeApplyOutcome:
        with capture_records("patch", level=logging.WARNING) as messages:
            pset = patch_lib.fromstring(patch_text.encode("utf-8"))
            if not pset:
                return NativeApplyOutcome(
                    success=False,
                    stderr="\n".join(messages) or "patch library could not parse the patch",
                )
            ok = pset.apply(strip=self.strip, root=repo_root)
        stderr = "\n".join(messages)
        if not ok:
            self.log.debug(f"python-patch rejected the patch: {stderr}")
            return NativeApplyOutcome(success=False, stderr=stderr or "patch library failed to apply the patch")
        return NativeApplyOutcome(success=True, stderr=stderr)


def default_native_apply(repo_root: str, *, ignore_whitespace: bool = True, timeout: float = 60.0) -> NativeApplyTool:
    """git when repo_root is inside a git work tree and git is on PATH, else python-patch."""
    if is_git_worktree(repo_root) and which("git"):
        return GitApplyTool(ignore_whitespace=ignore_whitespace, timeout=timeout)
    return PatchLibApplyTool()
