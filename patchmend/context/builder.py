# patchmend/context/builder.py
from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

from ..commit.core import FileStore
from ..config import EngineConfig
from ..errors import PathViolation
from ..extract.diffs import header_paths
from ..models import RegenerationRequest
from ..utils.fs import discover_source_files
from ..utils.paths import sanitize_file_path

log = logging.getLogger(__name__)


def _read_contents(store: FileStore, paths: Iterable[str]) -> Dict[str, str]:
    contents: Dict[str, str] = {}
    for raw in paths:
        try:
            path = sanitize_file_path(raw)
        except PathViolation as e:
            # Never read outside the repository, even for context.
            log.warning(f"skipping context file '{raw}': {e}")
            continue
        if path in contents or not store.exists(path):
            continue
        try:
            contents[path] = store.read(path)
        except OSError as e:
            log.warning(f"could not read context file '{path}': {e}")
    return contents


def build_regeneration_request(
    store: FileStore,
    patch_text: str,
    *,
    issue_description: str = "",
    prior_failure: Optional[str] = None,
    config: EngineConfig | None = None,
) -> RegenerationRequest:
    """
    Gather what a generator needs to write a fresh patch.

    File contents come from the paths the failed patch names. When none of
    them exist (or the patch named nothing) and the store lives on disk,
    up to max_context_files discovered source files are sent instead.
    """
    cfg = config or EngineConfig()
    contents = _read_contents(store, header_paths(patch_text))

    if not contents and store.root:
        discovered = discover_source_files(
            store.root, extensions=cfg.source_extensions, limit=cfg.max_context_files
        )
        log.info(f"patch named no readable files; using {len(discovered)} discovered source file(s)")
        contents = _read_contents(store, discovered)

    return RegenerationRequest(
        file_contents=contents,
        issue_description=issue_description,
        prior_failure=prior_failure,
    )


def render_regeneration_prompt(request: RegenerationRequest) -> str:
    """
    Plain-text rendering of a RegenerationRequest for generators that take a
    single prompt string.
    """
    out = ""
    if request.issue_description:
        out += f"<issue>\n{request.issue_description.strip()}\n</issue>\n\n"
    out += "<file_contents>\n"
    for path, content in request.file_contents.items():
        lang = path.rsplit(".", 1)[-1] if "." in path else ""
        out += f"File: {path}\n```{lang}\n{content}\n```\n\n"
    out += "</file_contents>\n"
    feedback = request.feedback()
    if feedback:
        out += f"\n<previous_attempt>\n{feedback}\n</previous_attempt>\n"
    out += (
        "\n<format_instruction>\n"
        "Output a single unified diff and nothing else.\n"
        "1) Start each file with '--- a/<path>' and '+++ b/<path>'; use /dev/null for new or deleted files.\n"
        "2) Hunk headers may be a bare '@@'; line numbers are filled in automatically.\n"
        "3) Prefix every line with ' ', '+' or '-'.\n"
        "4) DO NOT wrap the output in code fences.\n"
        "</format_instruction>\n"
    )
    return out
