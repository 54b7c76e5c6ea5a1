import pytest

from patchmend.commit.locate import locate, match_score, matches_at
from patchmend.models import Hunk, HunkLine, LineKind


def _hunk(old_start, *lines, has_range=True):
    body = tuple(HunkLine(LineKind(m), t) for m, t in lines)
    old = sum(1 for ln in body if ln.in_old)
    new = sum(1 for ln in body if ln.in_new)
    return Hunk(old_start, old, old_start, new, body, has_range=has_range)


def test_exact_match_at_declared_position():
    lines = ["a", "b", "c", "d", "e"]
    loc = locate(lines, _hunk(2, (" ", "b"), ("-", "c"), ("+", "c2"), (" ", "d")))
    assert loc.position == 1
    assert loc.exact and loc.confident


def test_drifted_hunk_found_within_window():
    lines = [f"filler {i}" for i in range(60)]
    lines[34:37] = ["start()", "middle()", "finish()"]
    hunk = _hunk(10, (" ", "start()"), ("-", "middle()"), ("+", "MIDDLE()"), (" ", "finish()"))
    loc = locate(lines, hunk)
    assert loc.position == 34
    assert loc.exact


def test_whitespace_only_differences_score_partially():
    lines = ["x", "  alpha", "beta  ", "y"]
    hunk = _hunk(1, (" ", "alpha"), ("-", "beta"))
    loc = locate(lines, hunk)
    assert loc.position == 1
    assert loc.score == pytest.approx(1.6)
    assert not loc.exact and loc.confident


def test_below_threshold_falls_back_to_declared_position():
    lines = ["q", "r", "s", "t"]
    hunk = _hunk(3, (" ", "nothing"), ("-", "here"), (" ", "at all"))
    loc = locate(lines, hunk)
    assert loc.position == 2
    assert not loc.confident


def test_fallback_position_is_clamped_into_file():
    loc = locate(["a"], _hunk(40, ("-", "zzz")))
    assert loc.position == 1
    assert not loc.confident


def test_equal_distance_tie_prefers_lower_position():
    lines = ["k", "k", "dup", "k", "dup", "k"]
    loc = locate(lines, _hunk(4, ("-", "dup")))
    assert loc.position == 2


def test_window_limits_search():
    lines = [f"n{i}" for i in range(100)] + ["needle"]
    loc = locate(lines, _hunk(1, ("-", "needle")), window=10)
    assert not loc.confident
    assert loc.position == 0


def test_pure_addition_uses_declared_position():
    loc = locate(["a", "b", "c"], _hunk(3, ("+", "new")))
    assert loc.position == 2
    assert loc.confident
    bare = locate(["a", "b", "c"], _hunk(1, ("+", "new"), has_range=False))
    assert not bare.confident


def test_match_helpers():
    assert matches_at(["a", "b"], ["b"], 1)
    assert not matches_at(["a", "b"], ["b", "c"], 1)
    assert match_score(["a", " b "], ["a", "b"], 0) == pytest.approx(1.8)
    assert match_score(["a"], ["a", "b"], 0, exact_weight=2.0) == pytest.approx(2.0)
