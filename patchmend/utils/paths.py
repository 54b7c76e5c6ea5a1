# patchmend/utils/paths.py
import posixpath
import re

from ..errors.path import PathViolation

DEV_NULL = "/dev/null"

_PREFIX_RE = re.compile(r"^(?:a|b)/")


def strip_header_path(raw: str) -> str:
    """
    Turn the text after '--- ' / '+++ ' into a bare path.

    Drops trailing tab-separated timestamps, surrounding quotes/whitespace,
    and a single leading 'a/' or 'b/'. '/dev/null' is returned unchanged.
    """
    path = raw.split("\t")[0].strip()
    if len(path) >= 2 and path[0] == path[-1] == '"':
        path = path[1:-1]
    if path == DEV_NULL:
        return path
    return _PREFIX_RE.sub("", path, count=1)


def sanitize_file_path(raw: str) -> str:
    """
    Normalize a repository-relative path taken from a patch header.
    Raises PathViolation for absolute paths or any '..' component.
    """
    path = raw.replace("\\", "/").strip()
    if not path:
        raise PathViolation("Invalid file path in patch: empty path")
    if path.startswith("/") or re.match(r"^[A-Za-z]:/", path):
        raise PathViolation(f"Invalid file path in patch: {raw}. Absolute paths are not allowed.")
    parts = path.split("/")
    if ".." in parts:
        raise PathViolation(f"Invalid file path in patch: {raw}. Path traversal detected.")
    normalized = posixpath.normpath(path)
    if normalized in (".", ""):
        raise PathViolation(f"Invalid file path in patch: {raw}")
    return normalized
