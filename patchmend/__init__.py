from .commit import (
    Change,
    FileStore,
    GitApplyTool,
    LocalFileStore,
    MemoryFileStore,
    PatchLibApplyTool,
    apply_file_patch,
    apply_hunk,
    commit_changes,
    default_native_apply,
    fuzzy_apply,
    locate,
    patch_text,
)
from .config import EngineConfig
from .context import build_regeneration_request
from .errors import (
    AnchorError,
    ApplyError,
    CommitError,
    EscalationCancelled,
    ExhaustionError,
    FormatError,
    LocationError,
    PatchFailedError,
    PathViolation,
)
from .extract import (
    inject_hunk_metadata,
    parse_patch,
    render_patch,
    synthesize_header,
    validate_patch_format,
)
from .models import ApplyResult, Hunk, Patch, RegenerationRequest, Strategy
from .transform import REMEDIATION_STEPS, EscalationController, apply_fix
from .utils.paths import sanitize_file_path
from .utils.text import sanitize_patch

__all__ = [
    "apply_fix",
    "EscalationController",
    "REMEDIATION_STEPS",
    "EngineConfig",
    "parse_patch",
    "validate_patch_format",
    "render_patch",
    "synthesize_header",
    "inject_hunk_metadata",
    "locate",
    "apply_hunk",
    "apply_file_patch",
    "fuzzy_apply",
    "patch_text",
    "commit_changes",
    "build_regeneration_request",
    "sanitize_file_path",
    "sanitize_patch",
    "Change",
    "FileStore",
    "LocalFileStore",
    "MemoryFileStore",
    "GitApplyTool",
    "PatchLibApplyTool",
    "default_native_apply",
    "ApplyResult",
    "Hunk",
    "Patch",
    "RegenerationRequest",
    "Strategy",
    "PatchFailedError",
    "FormatError",
    "AnchorError",
    "LocationError",
    "ApplyError",
    "ExhaustionError",
    "EscalationCancelled",
    "CommitError",
    "PathViolation",
]
