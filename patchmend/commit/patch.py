# patchmend/commit/patch.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple
import logging

from .._logging import resolve_logger
from ..config import EngineConfig, resolve_config
from ..errors import ApplyError, CommitError, PatchFailedError
from ..extract.diffs import ensure_valid_patch, parse_patch
from ..extract.metadata import synthesize_header
from ..models import FilePatch, Hunk, LineKind, Location
from ..utils.text import split_lines
from .core import Change, FileStore
from .locate import eq_loose, locate

__all__ = [
    "apply_hunk",
    "removal_mismatches",
    "is_already_applied",
    "apply_file_patch",
    "patch_text",
    "fuzzy_apply",
    "FileApplyResult",
    "FuzzyApplyResult",
]


# ---------- line buffer helpers ----------

def _detect_eol(s: str) -> str:
    if "\r\n" in s:
        return "\r\n"
    if "\r" in s:
        return "\r"
    return "\n"


def split_content(content: str) -> Tuple[List[str], str, bool]:
    """Return (lines, eol, had_trailing_newline)."""
    return split_lines(content), _detect_eol(content), content.endswith(("\r\n", "\n", "\r"))


def join_content(lines: Sequence[str], eol: str, trailing: bool) -> str:
    if not lines:
        return ""
    return eol.join(lines) + (eol if trailing else "")


# ---------- single hunk ----------

def apply_hunk(file_lines: Sequence[str], hunk: Hunk, position: int) -> List[str]:
    """
    Rewrite file_lines with one hunk placed at `position` (0-based).

    Walks a cursor from `position`: context emits the file's own text when it
    differs from the hunk only by whitespace (otherwise the hunk's text),
    removed lines advance without emitting, added lines emit without
    advancing. The old_count lines at `position` are then replaced by what
    was emitted. Always returns a new list.
    """
    emitted: List[str] = []
    cursor = position
    for ln in hunk.lines:
        if ln.kind is LineKind.CONTEXT:
            have = file_lines[cursor] if 0 <= cursor < len(file_lines) else None
            if have is not None and have != ln.text and have.strip() == ln.text.strip():
                emitted.append(have)
            else:
                emitted.append(ln.text)
            cursor += 1
        elif ln.kind is LineKind.REMOVED:
            cursor += 1
        else:
            emitted.append(ln.text)
    return list(file_lines[:position]) + emitted + list(file_lines[position + hunk.old_count:])


def removal_mismatches(file_lines: Sequence[str], hunk: Hunk, position: int) -> List[str]:
    """Removed lines whose target at the cursor is not the same line modulo whitespace."""
    problems: List[str] = []
    cursor = position
    for ln in hunk.lines:
        if ln.kind is LineKind.ADDED:
            continue
        if ln.kind is LineKind.REMOVED:
            have = file_lines[cursor] if 0 <= cursor < len(file_lines) else None
            if have is None or not eq_loose(have, ln.text):
                problems.append(f"line {cursor + 1}: expected {ln.text!r}, found {have!r}")
        cursor += 1
    return problems


def _block_at(file_lines: Sequence[str], block: Sequence[str], pos: int) -> bool:
    if pos < 0 or pos + len(block) > len(file_lines):
        return False
    return all(eq_loose(file_lines[pos + j], want) for j, want in enumerate(block))


def is_already_applied(file_lines: Sequence[str], hunk: Hunk, location: Location, window: int) -> bool:
    """
    True when the hunk's "after" side is already in the file near `location`.

    Either the old side no longer matches perfectly while the new side is
    present inside the window, or the new side overlaps the region the old
    side was matched at (additions anchored on context that survives). A
    pure addition counts only when its lines already sit at the insertion
    point.
    """
    if not hunk.has_changes:
        return False
    new_side = hunk.new_lines()
    if not new_side:
        return False
    if not hunk.old_lines():
        # No context to tie a match to: only the insertion point itself counts.
        return _block_at(file_lines, new_side, location.position)
    lo = max(0, location.position - window)
    hi = min(len(file_lines) - len(new_side), location.position + window)
    region_end = location.position + hunk.old_count
    for q in range(lo, hi + 1):
        if not _block_at(file_lines, new_side, q):
            continue
        overlaps = q < region_end and q + len(new_side) > location.position
        if not location.exact or overlaps:
            return True
    return False


# ---------- whole file ----------

@dataclass
class FileApplyResult:
    new_content: str
    warnings: List[str] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)  # 1-based hunk numbers already applied
    locations: List[Location] = field(default_factory=list)


def apply_file_patch(
    content: str,
    file_patch: FilePatch,
    *,
    config: EngineConfig | None = None,
    logger=None,
    log: bool = False,
) -> FileApplyResult:
    """
    Apply every hunk of one FilePatch, in order, to `content`.

    Each hunk is synthesized (when it had a bare header) and located against
    the lines produced by the previous hunk. EOL style and the trailing
    newline of the original are preserved.

    Raises:
        ApplyError: a removed line would delete something it does not match.
    """
    cfg = config or EngineConfig()
    log = resolve_logger(logger=logger, enabled=log, name=__name__, level=logging.DEBUG)

    lines, eol, trailing = split_content(content)
    if not content and file_patch.is_new_file:
        trailing = True
    result = FileApplyResult(new_content=content)
    name = file_patch.file_path or "<patch>"

    for n, hunk in enumerate(file_patch.hunks, 1):
        if not hunk.has_range:
            synth = synthesize_header(hunk, lines, logger=log)
            hunk = synth.hunk
            if synth.warning:
                result.warnings.append(f"{name} hunk #{n}: {synth.warning}")

        loc = locate(
            lines, hunk,
            window=cfg.search_window, accept_ratio=cfg.accept_ratio,
            exact_weight=cfg.exact_weight, loose_weight=cfg.loose_weight,
            logger=log,
        )
        result.locations.append(loc)

        if is_already_applied(lines, hunk, loc, cfg.search_window):
            log.info(f"{name} hunk #{n}: changes already present; skipping")
            result.skipped.append(n)
            continue

        bad = removal_mismatches(lines, hunk, loc.position)
        if bad:
            raise ApplyError(
                f"{name} hunk #{n}: removed lines not found at line {loc.position + 1}: "
                + "; ".join(bad[:3])
            )

        if not loc.confident:
            result.warnings.append(
                f"{name} hunk #{n}: low-confidence placement at line {loc.position + 1} "
                f"(score {loc.score:.1f}/{loc.max_score})"
            )
        log.debug(f"{name} hunk #{n}: expected line {hunk.old_start}, applying at line {loc.position + 1}")
        lines = apply_hunk(lines, hunk, loc.position)

    result.new_content = join_content(lines, eol, trailing)
    return result


def patch_text(
    content: str,
    patch: str,
    *,
    config: EngineConfig | None = None,
    logger=None,
    log: bool = False,
) -> str:
    """
    Apply a single-file patch to a string. File headers are optional; every
    hunk found is applied to `content`.

    Raises:
        PatchFailedError: no hunks, or a hunk could not be applied safely.
    """
    if not patch.strip():
        return content
    text = patch
    if not any(ln.startswith("--- ") for ln in split_lines(patch)):
        text = "--- a/<content>\n+++ b/<content>\n" + patch
    parsed = parse_patch(text, logger=logger, log=log)
    hunks: List[Hunk] = [h for fp in parsed.patch.files for h in fp.hunks]
    if not hunks:
        raise PatchFailedError("Patch string contains no valid hunks.")
    merged = FilePatch(file_path="<content>", hunks=tuple(hunks))
    return apply_file_patch(content, merged, config=config, logger=logger, log=log).new_content


# ---------- fuzzy tier over a store ----------

@dataclass
class FuzzyApplyResult:
    modified_files: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    skipped_hunks: Dict[str, List[int]] = field(default_factory=dict)


def fuzzy_apply(
    store: FileStore,
    patch: str,
    *,
    config: EngineConfig | None = None,
    logger=None,
    log: bool = False,
) -> FuzzyApplyResult:
    """
    Parse → synthesize → locate → apply every file of a patch, then write all
    changed files in one commit through the store.

    Nothing is written unless every file patch applied.

    Raises:
        FormatError: the patch fails structural validation.
        ApplyError: a named file is missing, a removal guard tripped, or the
            store could not commit.
    """
    cfg = resolve_config(config)
    log = resolve_logger(logger=logger, enabled=log, name=__name__, level=logging.DEBUG)
    parsed = ensure_valid_patch(patch, logger=log)

    originals: Dict[str, Optional[str]] = {}
    staged: Dict[str, str] = {}
    deleted: Set[str] = set()
    out = FuzzyApplyResult()

    for fp in parsed.files:
        path = fp.file_path
        if path not in staged:
            if store.exists(path):
                originals[path] = store.read(path)
            elif fp.is_new_file:
                originals[path] = None
            else:
                raise ApplyError(f"File not found: {path}")
            staged[path] = originals[path] or ""
        res = apply_file_patch(staged[path], fp, config=cfg, logger=log)
        staged[path] = res.new_content
        out.warnings.extend(res.warnings)
        if res.skipped:
            out.skipped_hunks.setdefault(path, []).extend(res.skipped)
        if fp.is_deleted_file:
            deleted.add(path)

    changes: List[Change] = []
    for path, new in staged.items():
        orig = originals[path]
        if path in deleted and not new.strip():
            if orig is not None:
                changes.append(Change(action="delete", path=path, original_content=orig))
        elif orig is None:
            changes.append(Change(action="create", path=path, new_content=new))
        elif new != orig:
            changes.append(Change(action="modify", path=path, new_content=new, original_content=orig))

    if changes:
        try:
            store.commit(changes)
        except (CommitError, OSError) as e:
            raise ApplyError(f"Failed to write patched files: {e}") from e
    out.modified_files = [ch.path for ch in changes]
    log.info(f"fuzzy apply modified {len(out.modified_files)} file(s)")
    return out
