import logging

from patchmend._logging import NoopLogger, capture_records, resolve_logger
from patchmend.commit.locate import locate
from patchmend.models import Hunk, HunkLine, LineKind


def test_resolve_logger_default_noop():
    lg = resolve_logger()
    assert isinstance(lg, NoopLogger)
    # Should not raise:
    lg.debug("hello")
    lg.warning("world")


def test_resolve_logger_enabled_creates_logger(caplog):
    with caplog.at_level(logging.INFO):
        lg = resolve_logger(enabled=True, name="patchmend.test")
        lg.info("test message")
    assert any("test message" in rec.message for rec in caplog.records)


def test_resolve_logger_uses_passed_logger():
    custom = logging.getLogger("x")
    assert resolve_logger(logger=custom) is custom


def test_library_functions_are_silent_by_default(caplog):
    hunk = Hunk(1, 1, 1, 1, (HunkLine(LineKind.REMOVED, "nowhere"),))
    with caplog.at_level(logging.DEBUG):
        locate(["a", "b"], hunk)
    assert not caplog.records


def test_library_functions_log_when_enabled(caplog):
    hunk = Hunk(1, 1, 1, 1, (HunkLine(LineKind.REMOVED, "nowhere"),))
    with caplog.at_level(logging.DEBUG):
        loc = locate(["a", "b"], hunk, log=True)
    assert not loc.confident
    assert any("below threshold" in rec.message for rec in caplog.records)


def test_capture_records_collects_and_detaches():
    lg = logging.getLogger("patchmend.capture.test")
    with capture_records("patchmend.capture.test") as messages:
        lg.warning("first")
        lg.debug("too quiet")
    lg.warning("after")
    assert messages == ["first"]
