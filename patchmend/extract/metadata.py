# patchmend/extract/metadata.py
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from .._logging import resolve_logger
from ..errors import AnchorError
from ..models import FilePatch, Hunk, LineKind, Patch, tally_counts
from .diffs import parse_patch, render_patch

__all__ = [
    "SynthesisResult",
    "find_anchor",
    "synthesize_header",
    "synthesize_patch_headers",
    "inject_hunk_metadata",
]


@dataclass(frozen=True)
class SynthesisResult:
    hunk: Hunk
    anchored: bool
    warning: Optional[str] = None


def find_anchor(hunk: Hunk) -> Tuple[Optional[str], int]:
    """
    Return (anchor_text, old_lines_before_anchor) for the first non-blank
    Context or Removed line. Blank lines match too many places to anchor on.
    """
    old_seen = 0
    for ln in hunk.lines:
        if ln.kind is LineKind.ADDED:
            continue
        if ln.text.strip():
            return ln.text, old_seen
        old_seen += 1
    return None, 0


def _index_of(file_lines: Sequence[str], needle: str) -> int:
    for i, fl in enumerate(file_lines):
        if fl == needle:
            return i
    stripped = needle.strip()
    for i, fl in enumerate(file_lines):
        if fl.strip() == stripped:
            return i
    return -1


def synthesize_header(hunk: Hunk, file_lines: Sequence[str], *, logger=None, log: bool = False) -> SynthesisResult:
    """
    Fill in real start lines for a hunk whose header was a bare '@@'.

    The anchor is searched verbatim first, then whitespace-trimmed. new_start
    mirrors old_start: there is no running offset across earlier hunks, so a
    multi-hunk file whose earlier hunks change line counts gets an approximate
    new_start. The fuzzy tier re-locates every hunk anyway.
    """
    log = resolve_logger(logger=logger, enabled=log, name=__name__)
    if hunk.has_range:
        return SynthesisResult(hunk=hunk, anchored=True)

    old_count, new_count = tally_counts(hunk.lines)
    anchor, before = find_anchor(hunk)
    idx = _index_of(file_lines, anchor) if anchor is not None else -1

    if idx == -1:
        fallback = max(1, hunk.old_start)
        if anchor is None:
            msg = str(AnchorError("hunk has no context or removed line to anchor on; using line 1"))
        else:
            msg = str(AnchorError(f"could not find anchor line {anchor.strip()!r} in file; using line {fallback}"))
        log.warning(msg)
        synthesized = dataclasses.replace(
            hunk, old_start=fallback, new_start=fallback,
            old_count=old_count, new_count=new_count,
        )
        return SynthesisResult(hunk=synthesized, anchored=False, warning=msg)

    start = max(1, idx + 1 - before)
    log.debug(f"anchored hunk on {anchor!r} at file line {idx + 1}; old_start={start}")
    synthesized = dataclasses.replace(
        hunk, old_start=start, new_start=start,
        old_count=old_count, new_count=new_count, has_range=True,
    )
    return SynthesisResult(hunk=synthesized, anchored=True)


def synthesize_patch_headers(
    patch: Patch,
    read_lines: Callable[[str], Optional[List[str]]],
    *,
    logger=None,
    log: bool = False,
) -> Tuple[Patch, List[str]]:
    """
    Run header synthesis over every hunk of every file.

    `read_lines(path)` returns the file's lines, or None when the file is
    missing; hunks of missing files are left untouched.
    """
    log = resolve_logger(logger=logger, enabled=log, name=__name__)
    warnings: List[str] = []
    out_files: List[FilePatch] = []
    for fp in patch.files:
        if all(h.has_range for h in fp.hunks):
            out_files.append(fp)
            continue
        lines = [] if fp.is_new_file else read_lines(fp.file_path)
        if lines is None:
            warnings.append(f"{fp.file_path}: file not found; hunk headers left unsynthesized")
            out_files.append(fp)
            continue
        hunks: List[Hunk] = []
        for n, h in enumerate(fp.hunks, 1):
            res = synthesize_header(h, lines, logger=log)
            if res.warning:
                warnings.append(f"{fp.file_path} hunk #{n}: {res.warning}")
            hunks.append(res.hunk)
        out_files.append(dataclasses.replace(fp, hunks=tuple(hunks)))
    return Patch(files=tuple(out_files)), warnings


def inject_hunk_metadata(patch_text: str, read_lines, *, logger=None, log: bool = False) -> Tuple[str, List[str]]:
    """
    Text-level convenience: parse, synthesize bare '@@' headers from the real
    files and render the result with numeric ranges and explicit markers.
    """
    parsed = parse_patch(patch_text, logger=logger, log=log)
    patch, warnings = synthesize_patch_headers(parsed.patch, read_lines, logger=logger, log=log)
    return render_patch(patch), warnings
