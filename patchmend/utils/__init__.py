# patchmend/utils/__init__.py
from .fs import discover_source_files
from .gitignore import get_gitignore, is_ignored
from .paths import sanitize_file_path, strip_header_path
from .text import cleanup_llm_output, sanitize_patch

__all__ = [
    "discover_source_files",
    "get_gitignore",
    "is_ignored",
    "sanitize_file_path",
    "strip_header_path",
    "cleanup_llm_output",
    "sanitize_patch",
]
