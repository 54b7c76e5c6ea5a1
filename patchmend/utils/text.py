# patchmend/utils/text.py
import re
from typing import List

_THINK_RE = re.compile(r"<think>.*?</think>", flags=re.DOTALL)
_FENCE_LINE_RE = re.compile(r"^\s*```[A-Za-z0-9_-]*\s*$")
_EOL_RE = re.compile(r"\r\n|\r|\n")


def split_lines(content: str) -> List[str]:
    """
    Split on \\n, \\r\\n and \\r only. str.splitlines() also breaks on form
    feeds, \\x85, \\u2028 and friends, which would be rewritten on rejoin.
    """
    if not content:
        return []
    parts = _EOL_RE.split(content)
    if parts[-1] == "":
        parts.pop()
    return parts


def cleanup_llm_output(content: str) -> str:
    """Remove <think> blocks and any markdown fence lines from model output."""
    if not content:
        return ""
    content = _THINK_RE.sub("", content)
    kept = [ln for ln in split_lines(content) if not _FENCE_LINE_RE.match(ln)]
    return "\n".join(kept).strip("\n")


def drop_blank_lines_after_hunk_headers(patch: str) -> str:
    """
    Models often leave an empty line right after '@@'. git reads it as a
    context line that matches nothing, so drop blank lines until the first
    real body line of each hunk.
    """
    out = []
    after_header = False
    for ln in split_lines(patch):
        if ln.startswith("@@"):
            after_header = True
            out.append(ln)
            continue
        if after_header and not ln.strip():
            continue
        after_header = False
        out.append(ln)
    return "\n".join(out)


def sanitize_patch(text: str) -> str:
    """Normalize generator output into plain diff text ending in a newline."""
    cleaned = drop_blank_lines_after_hunk_headers(cleanup_llm_output(text))
    return cleaned + "\n" if cleaned.strip() else ""
