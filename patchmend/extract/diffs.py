# patchmend/extract/diffs.py
"""
Lenient unified-diff parsing for model-generated patches.

Model output is often slightly off: bare '@@' headers with no ranges, context
lines missing their leading space, trailing blank lines. The parser accepts
all of that and never raises; structural complaints are collected in
ParseResult.problems. Strict gatekeeping lives in validate_patch_format /
ensure_valid_patch, which run before any hunk is touched.
"""
from __future__ import annotations

import re
from typing import List, Optional, Tuple

from .._logging import resolve_logger
from ..errors import FormatError
from ..models import FilePatch, Hunk, HunkLine, LineKind, ParseResult, Patch, tally_counts
from ..utils.paths import DEV_NULL, sanitize_file_path, strip_header_path
from ..utils.text import split_lines

__all__ = [
    "parse_patch",
    "validate_patch_format",
    "ensure_valid_patch",
    "render_patch",
    "header_paths",
]

_HUNK_RANGE_RE = re.compile(r"^@@\s*-(\d+)(?:,(\d+))?\s+\+(\d+)(?:,(\d+))?\s*@@")


# =============================
# Line classification
# =============================

def _is_old_header(lines: list[str], i: int, in_hunk: bool) -> bool:
    """
    '--- ' opens a file, except inside a hunk where it may be a removed line
    starting with '-- ' (SQL/Lua comments). There it only counts when the
    next line is the matching '+++ ' header.
    """
    line = lines[i]
    if not line.startswith("--- "):
        return False
    if not in_hunk:
        return True
    return i + 1 < len(lines) and lines[i + 1].startswith("+++ ")


def _is_new_header(lines: list[str], i: int, in_hunk: bool) -> bool:
    line = lines[i]
    if not line.startswith("+++ "):
        return False
    if not in_hunk:
        return True
    return i > 0 and lines[i - 1].startswith("--- ")


def _classify(raw: str) -> Optional[HunkLine]:
    if raw == "":
        return HunkLine(LineKind.CONTEXT, "")
    tag = raw[0]
    if tag == "+":
        return HunkLine(LineKind.ADDED, raw[1:])
    if tag == "-":
        return HunkLine(LineKind.REMOVED, raw[1:])
    if tag == " ":
        return HunkLine(LineKind.CONTEXT, raw[1:])
    if raw.startswith("\\"):
        # '\ No newline at end of file'
        return None
    # Unprefixed line: models routinely drop the leading space on context.
    return HunkLine(LineKind.CONTEXT, raw)


# =============================
# Parsing
# =============================

def parse_patch(patch_text: str, *, logger=None, log: bool = False) -> ParseResult:
    """
    Parse raw diff text into an ordered Patch of FilePatch/Hunk records.

    Never raises. Hunks that appear before any file header, or that have an
    empty body, are dropped and reported in `problems`.
    """
    log = resolve_logger(logger=logger, enabled=log, name=__name__)
    lines = split_lines(patch_text or "")

    files: List[FilePatch] = []
    problems: List[str] = []

    cur_file: Optional[dict] = None
    cur_hunk: Optional[dict] = None

    def flush_hunk() -> None:
        nonlocal cur_hunk
        if cur_hunk is None:
            return
        body = cur_hunk["body"]
        while body and body[-1] == "":
            body.pop()
        parsed = tuple(hl for hl in (_classify(raw) for raw in body) if hl is not None)
        if cur_file is None:
            problems.append(
                f"hunk header at line {cur_hunk['line_no']} appears before any file header"
            )
        elif not parsed:
            problems.append(f"empty hunk at line {cur_hunk['line_no']}")
        else:
            old_count, new_count = tally_counts(parsed)
            declared = cur_hunk["declared"]
            if declared is not None and declared != (old_count, new_count):
                log.debug(
                    f"hunk at line {cur_hunk['line_no']}: header declares {declared}, "
                    f"body has ({old_count}, {new_count}); using body counts"
                )
            cur_file["hunks"].append(
                Hunk(
                    old_start=cur_hunk["old_start"],
                    old_count=old_count,
                    new_start=cur_hunk["new_start"],
                    new_count=new_count,
                    lines=parsed,
                    has_range=cur_hunk["has_range"],
                    after_line=cur_hunk["after_line"],
                )
            )
        cur_hunk = None

    def flush_file() -> None:
        nonlocal cur_file
        flush_hunk()
        if cur_file is None:
            return
        if not cur_file["path"]:
            problems.append(f"file header at line {cur_file['line_no']} names no usable path")
        else:
            files.append(
                FilePatch(
                    file_path=cur_file["path"],
                    hunks=tuple(cur_file["hunks"]),
                    old_path=cur_file["old_path"],
                    is_new_file=cur_file["is_new"],
                    is_deleted_file=cur_file["is_deleted"],
                )
            )
        cur_file = None

    for i, line in enumerate(lines):
        in_hunk = cur_hunk is not None

        if _is_old_header(lines, i, in_hunk):
            flush_file()
            path = strip_header_path(line[4:])
            is_new = path == DEV_NULL
            cur_file = {
                "path": "" if is_new else path,
                "old_path": None if is_new else path,
                "is_new": is_new,
                "is_deleted": False,
                "hunks": [],
                "line_no": i + 1,
            }
            continue

        if _is_new_header(lines, i, in_hunk):
            path = strip_header_path(line[4:])
            if cur_file is None:
                # '+++' without a preceding '---'; open the file from here.
                cur_file = {
                    "path": "", "old_path": None, "is_new": False,
                    "is_deleted": False, "hunks": [], "line_no": i + 1,
                }
            if path == DEV_NULL:
                cur_file["is_deleted"] = True
            elif path:
                cur_file["path"] = path
            continue

        if line.startswith("@@"):
            flush_hunk()
            m = _HUNK_RANGE_RE.match(line.strip())
            if m:
                raw_old = int(m.group(1))
                old_start = max(1, raw_old)
                new_start = max(1, int(m.group(3)))
                declared: Optional[Tuple[int, int]] = (
                    int(m.group(2) or "1"),
                    int(m.group(4) or "1"),
                )
                has_range = True
                after_line = declared[0] == 0 and raw_old >= 1
            else:
                old_start = new_start = 1
                declared = None
                has_range = False
                after_line = False
            cur_hunk = {
                "old_start": old_start,
                "new_start": new_start,
                "declared": declared,
                "has_range": has_range,
                "after_line": after_line,
                "body": [],
                "line_no": i + 1,
            }
            continue

        if cur_hunk is not None:
            cur_hunk["body"].append(line)
        # Anything else outside a hunk (diff --git, index, prose) is ignored.

    flush_file()
    # A trailing hunk with no file at all.
    flush_hunk()

    log.debug(f"parsed {len(files)} file patch(es), {len(problems)} problem(s)")
    return ParseResult(patch=Patch(files=tuple(files)), problems=tuple(problems))


# =============================
# Validation
# =============================

def header_paths(patch_text: str) -> List[str]:
    """Raw paths named by '--- a/' and '+++ b/' headers, in order, deduplicated."""
    out: List[str] = []
    for line in split_lines(patch_text or ""):
        if line.startswith("--- a/") or line.startswith("+++ b/"):
            path = strip_header_path(line[4:])
            if path and path != DEV_NULL and path not in out:
                out.append(path)
    return out


def validate_patch_format(patch_text: str) -> Optional[str]:
    """
    Structural gate run before any hunk processing.
    Returns a descriptive error message, or None when the patch looks valid.
    """
    if not patch_text or not patch_text.strip():
        return "Patch is empty"

    lines = split_lines(patch_text)
    old_idx = [i for i, ln in enumerate(lines) if ln.startswith("--- a/") or ln.startswith("--- /dev/null")]
    new_idx = [i for i, ln in enumerate(lines) if ln.startswith("+++ b/") or ln.startswith("+++ /dev/null")]
    named = any(lines[i].startswith("--- a/") for i in old_idx) or any(
        lines[i].startswith("+++ b/") for i in new_idx
    )
    if not old_idx or not new_idx or not named:
        return "Invalid patch format: missing file headers (--- a/ or +++ b/)"

    hunk_idx = [i for i, ln in enumerate(lines) if ln.startswith("@@")]
    if not hunk_idx:
        return "Invalid patch format: missing hunk headers (@@)"

    if hunk_idx[0] < old_idx[0]:
        return "Invalid patch format: hunk headers appear before file headers"

    if len(old_idx) != len(new_idx):
        return (
            "Invalid patch format: mismatched file headers "
            f"({len(old_idx)} --- a/ vs {len(new_idx)} +++ b/)"
        )
    return None


def ensure_valid_patch(patch_text: str, *, logger=None, log: bool = False) -> Patch:
    """
    Validate and parse in one step.

    Raises:
        FormatError: structural problems (including hunks with no file).
        PathViolation: a header path is absolute or escapes the repository.
    """
    msg = validate_patch_format(patch_text)
    if msg:
        raise FormatError(f"Patch was invalid: {msg}")
    for path in header_paths(patch_text):
        sanitize_file_path(path)

    result = parse_patch(patch_text, logger=logger, log=log)
    if result.problems:
        raise FormatError("Patch was invalid: " + "; ".join(result.problems))
    if not result.patch:
        raise FormatError("Patch was invalid: no hunks with content")

    files = tuple(
        FilePatch(
            file_path=sanitize_file_path(fp.file_path),
            hunks=fp.hunks,
            old_path=sanitize_file_path(fp.old_path) if fp.old_path else None,
            is_new_file=fp.is_new_file,
            is_deleted_file=fp.is_deleted_file,
        )
        for fp in result.patch.files
    )
    return Patch(files=files)


# =============================
# Rendering
# =============================

def render_patch(patch: Patch) -> str:
    """
    Serialize a Patch back to unified-diff text with numeric hunk headers and
    explicit line markers, the shape native tools expect.
    """
    out: List[str] = []
    for fp in patch.files:
        old = DEV_NULL if fp.is_new_file else f"a/{fp.old_path or fp.file_path}"
        new = DEV_NULL if fp.is_deleted_file else f"b/{fp.file_path}"
        out.append(f"--- {old}")
        out.append(f"+++ {new}")
        for h in fp.hunks:
            # an empty old range names the line the insertion follows
            old_start = h.old_start
            if h.old_count == 0 and not h.after_line:
                old_start -= 1
            new_start = 0 if fp.is_deleted_file and h.new_count == 0 else h.new_start
            out.append(f"@@ -{old_start},{h.old_count} +{new_start},{h.new_count} @@")
            out.extend(ln.marker + ln.text for ln in h.lines)
    return "\n".join(out) + "\n" if out else ""
