from .core import Change, CommitSummary, FileStore, LocalFileStore, MemoryFileStore, commit_changes
from .locate import locate, match_score, matches_at
from .native import GitApplyTool, NativeApplyTool, PatchLibApplyTool, default_native_apply
from .patch import apply_file_patch, apply_hunk, fuzzy_apply, patch_text

__all__ = [
    "Change",
    "CommitSummary",
    "FileStore",
    "LocalFileStore",
    "MemoryFileStore",
    "commit_changes",
    "locate",
    "match_score",
    "matches_at",
    "GitApplyTool",
    "NativeApplyTool",
    "PatchLibApplyTool",
    "default_native_apply",
    "apply_file_patch",
    "apply_hunk",
    "fuzzy_apply",
    "patch_text",
]
