# patchmend/utils/gitignore.py
import os
from typing import List

import pathspec

# Never useful as regeneration context, ignored even without a .gitignore.
DEFAULT_IGNORES: List[str] = [".git/", "node_modules/", "dist/", "build/"]


def get_gitignore(path: str) -> pathspec.PathSpec:
    """
    Return a PathSpec from the nearest .gitignore found walking upward from
    `path` (file or directory), plus DEFAULT_IGNORES. An unreadable or
    missing .gitignore yields the defaults alone.
    """
    lines: List[str] = list(DEFAULT_IGNORES)

    base = os.path.abspath(path or ".")
    if os.path.isfile(base):
        base = os.path.dirname(base)

    cur = base
    while True:
        gi = os.path.join(cur, ".gitignore")
        if os.path.exists(gi):
            try:
                with open(gi, "r", encoding="utf-8", errors="ignore") as f:
                    lines.extend(f.read().splitlines())
                break
            except OSError:
                pass
        parent = os.path.dirname(cur)
        if parent == cur:
            break
        cur = parent

    return pathspec.PathSpec.from_lines("gitwildmatch", lines)


def is_ignored(spec: pathspec.PathSpec, rel_path: str, is_dir: bool = False) -> bool:
    """Match a repository-relative posix path; directories get a trailing '/'."""
    rel = rel_path.replace(os.sep, "/")
    if is_dir and not rel.endswith("/"):
        rel += "/"
    return spec.match_file(rel)
