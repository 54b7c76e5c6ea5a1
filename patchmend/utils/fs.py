# patchmend/utils/fs.py
import os
from typing import Iterable, List, Optional

import pathspec

from .gitignore import get_gitignore, is_ignored


def discover_source_files(
    root_dir: str,
    *,
    extensions: Iterable[str] = (".js", ".ts", ".jsx", ".tsx", ".py"),
    limit: int = 10,
    spec: Optional[pathspec.PathSpec] = None,
) -> List[str]:
    """
    Walk `root_dir` and return up to `limit` repository-relative posix paths
    of source files, in sorted walk order.

    Hidden entries and anything the gitignore patterns match are skipped;
    directories are pruned so ignored trees are never descended.
    """
    exts = tuple(e.lower() for e in extensions)
    spec = spec if spec is not None else get_gitignore(root_dir)
    found: List[str] = []
    if limit <= 0:
        return found

    for root, dirs, files in os.walk(root_dir):
        rel_root = os.path.relpath(root, root_dir)
        rel_root = "" if rel_root == "." else rel_root.replace(os.sep, "/") + "/"
        dirs[:] = sorted(
            d for d in dirs
            if not d.startswith(".") and not is_ignored(spec, rel_root + d, is_dir=True)
        )
        for name in sorted(files):
            if name.startswith(".") or not name.lower().endswith(exts):
                continue
            rel = rel_root + name
            if is_ignored(spec, rel):
                continue
            found.append(rel)
            if len(found) >= limit:
                return found
    return found
