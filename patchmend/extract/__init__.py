from .diffs import ensure_valid_patch, header_paths, parse_patch, render_patch, validate_patch_format
from .metadata import (
    SynthesisResult,
    find_anchor,
    inject_hunk_metadata,
    synthesize_header,
    synthesize_patch_headers,
)

__all__ = [
    "parse_patch",
    "validate_patch_format",
    "ensure_valid_patch",
    "render_patch",
    "header_paths",
    "SynthesisResult",
    "find_anchor",
    "synthesize_header",
    "synthesize_patch_headers",
    "inject_hunk_metadata",
]
