"""
Opt-in logging for the reconciliation engine.

Library functions accept ``logger=None, log=False`` and call
``resolve_logger`` to get something with the ``logging.Logger`` surface:

    log = resolve_logger(logger=logger, enabled=log, name=__name__)
    log.debug("locating hunk")  # no-op unless enabled or a logger was passed

Nothing is printed and no handlers are installed, so importing the package
never configures global logging. ``capture_records`` collects the messages a
third-party logger emits while a block runs (used to turn the ``patch``
library's complaints into stderr-like text).
"""
from __future__ import annotations

import contextlib
import logging
from typing import Iterator, List


class NoopLogger:
    def debug(self, *args, **kwargs):  # type: ignore[no-untyped-def]
        pass

    info = warning = error = exception = critical = debug


def resolve_logger(
    logger: logging.Logger | None = None,
    *,
    enabled: bool = False,
    name: str | None = None,
    level: int = logging.INFO,
) -> logging.Logger | NoopLogger:
    """
    Return a usable logger according to opt-in policy.

    - If `logger` is provided, use it.
    - Else if `enabled` is True, create/get a named logger that propagates to
      the root (so pytest's caplog sees it).
    - Else return a NoopLogger that ignores calls.
    """
    if logger is not None:
        return logger
    if enabled:
        lg = logging.getLogger(name or "patchmend")
        lg.setLevel(level)
        lg.propagate = True
        return lg
    return NoopLogger()


class _ListHandler(logging.Handler):
    def __init__(self, sink: List[str]):
        super().__init__(level=logging.DEBUG)
        self.sink = sink

    def emit(self, record: logging.LogRecord) -> None:
        self.sink.append(record.getMessage())


@contextlib.contextmanager
def capture_records(name: str, level: int = logging.WARNING) -> Iterator[List[str]]:
    """Collect messages at `level` or above emitted by logger `name`."""
    lg = logging.getLogger(name)
    messages: List[str] = []
    handler = _ListHandler(messages)
    handler.setLevel(level)
    old_level = lg.level
    if lg.level == logging.NOTSET or lg.level > level:
        lg.setLevel(level)
    lg.addHandler(handler)
    try:
        yield messages
    finally:
        lg.removeHandler(handler)
        lg.setLevel(old_level)
