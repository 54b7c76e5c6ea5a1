from __future__ import annotations


class CommitError(Exception):
    """Raised when staged file contents cannot be written back to the store."""

    def __init__(self, message: str, errors: dict[str, str] | None = None):
        super().__init__(message)
        self.errors = dict(errors or {})
