from .patch import FormatError


class PathViolation(FormatError):
    """A patch header names an absolute path or escapes the repository root."""
