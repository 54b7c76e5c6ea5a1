import pytest

from patchmend.commit.patch import (
    apply_file_patch,
    apply_hunk,
    fuzzy_apply,
    is_already_applied,
    patch_text,
    removal_mismatches,
)
from patchmend.errors import ApplyError, FormatError, PatchFailedError
from patchmend.extract.diffs import parse_patch
from patchmend.models import Hunk, HunkLine, LineKind, Location


C_TO_C2 = """\
--- a/src/app.js
+++ b/src/app.js
@@ -2,3 +2,3 @@
 b
-c
+c2
 d
"""


def _hunk(old_start, *lines):
    body = tuple(HunkLine(LineKind(m), t) for m, t in lines)
    old = sum(1 for ln in body if ln.in_old)
    new = sum(1 for ln in body if ln.in_new)
    return Hunk(old_start, old, old_start, new, body)


def test_fuzzy_apply_replaces_single_line(memory_store):
    res = fuzzy_apply(memory_store, C_TO_C2)
    assert res.modified_files == ["src/app.js"]
    assert memory_store.files["src/app.js"] == "a\nb\nc2\nd\ne\n"


def test_fuzzy_apply_is_idempotent(memory_store):
    fuzzy_apply(memory_store, C_TO_C2)
    again = fuzzy_apply(memory_store, C_TO_C2)
    assert again.modified_files == []
    assert again.skipped_hunks == {"src/app.js": [1]}
    assert memory_store.files["src/app.js"] == "a\nb\nc2\nd\ne\n"


def test_pure_addition_is_idempotent():
    text = "--- a/f\n+++ b/f\n@@ -1,1 +1,2 @@\n a\n+x\n"
    fp = parse_patch(text).patch.files[0]
    once = apply_file_patch("a\nb\n", fp).new_content
    assert once == "a\nx\nb\n"
    twice = apply_file_patch(once, fp)
    assert twice.new_content == once
    assert twice.skipped == [1]


def test_pure_addition_matching_elsewhere_is_still_applied():
    content = "def f():\n    x = 1\n    return x\n\ndef g():\n    y = 2\n"
    fp = parse_patch("--- a/m.py\n+++ b/m.py\n@@ -6,0 +7,1 @@\n+    return x\n").patch.files[0]
    once = apply_file_patch(content, fp)
    assert once.skipped == []
    assert once.new_content == content + "    return x\n"
    twice = apply_file_patch(once.new_content, fp)
    assert twice.skipped == [1]
    assert twice.new_content == once.new_content


def test_zero_length_old_range_inserts_after_named_line():
    fp = parse_patch("--- a/f\n+++ b/f\n@@ -1,0 +2,1 @@\n+x\n").patch.files[0]
    assert apply_file_patch("a\nb\n", fp).new_content == "a\nx\nb\n"


def test_apply_hunk_keeps_file_whitespace_on_context():
    hunk = _hunk(1, (" ", "x"), ("-", "y"), ("+", "z"))
    assert apply_hunk(["  x", "y", "tail"], hunk, 0) == ["  x", "z", "tail"]


def test_apply_hunk_returns_new_list():
    lines = ["a", "b"]
    out = apply_hunk(lines, _hunk(1, ("-", "a")), 0)
    assert out == ["b"]
    assert lines == ["a", "b"]


def test_removal_mismatches_reports_wrong_targets():
    hunk = _hunk(1, (" ", "a"), ("-", "nope"))
    problems = removal_mismatches(["a", "b"], hunk, 0)
    assert len(problems) == 1 and "nope" in problems[0]
    assert removal_mismatches(["a", " nope "], hunk, 0) == []


def test_is_already_applied_requires_changes():
    hunk = _hunk(1, (" ", "a"))
    assert not is_already_applied(["a"], hunk, Location(0, 1.0, 1, exact=True), 50)


def test_removal_guard_raises_and_writes_nothing(memory_store):
    text = "--- a/src/app.js\n+++ b/src/app.js\n@@ -2,1 +2,1 @@\n-nothere\n+y\n"
    with pytest.raises(ApplyError, match="removed lines not found"):
        fuzzy_apply(memory_store, text)
    assert memory_store.files["src/app.js"] == "a\nb\nc\nd\ne\n"


def test_missing_file_is_apply_error(memory_store):
    text = "--- a/missing.js\n+++ b/missing.js\n@@\n-a\n+b\n"
    with pytest.raises(ApplyError, match="File not found: missing.js"):
        fuzzy_apply(memory_store, text)


def test_invalid_format_raises_format_error(memory_store):
    with pytest.raises(FormatError):
        fuzzy_apply(memory_store, "just prose")


def test_all_or_nothing_across_files(memory_store):
    text = C_TO_C2 + "--- a/missing.js\n+++ b/missing.js\n@@\n-a\n+b\n"
    with pytest.raises(ApplyError):
        fuzzy_apply(memory_store, text)
    assert memory_store.files["src/app.js"] == "a\nb\nc\nd\ne\n"


def test_new_file_is_created(memory_store):
    text = "--- /dev/null\n+++ b/src/new.js\n@@ -0,0 +1,2 @@\n+one\n+two\n"
    res = fuzzy_apply(memory_store, text)
    assert res.modified_files == ["src/new.js"]
    assert memory_store.files["src/new.js"] == "one\ntwo\n"


def test_deleted_file_is_removed(memory_store):
    text = "--- a/src/app.js\n+++ /dev/null\n@@ -1,5 +0,0 @@\n-a\n-b\n-c\n-d\n-e\n"
    res = fuzzy_apply(memory_store, text)
    assert res.modified_files == ["src/app.js"]
    assert "src/app.js" not in memory_store.files


def test_crlf_and_trailing_newline_preserved():
    fp = parse_patch("--- a/f\n+++ b/f\n@@ -2,1 +2,1 @@\n-b\n+B\n").patch.files[0]
    assert apply_file_patch("a\r\nb\r\nc\r\n", fp).new_content == "a\r\nB\r\nc\r\n"
    assert apply_file_patch("a\nb\nc", fp).new_content == "a\nB\nc"


def test_unusual_line_separators_survive_untouched():
    fp = parse_patch("--- a/f\n+++ b/f\n@@ -4,1 +4,1 @@\n-c\n+C\n").patch.files[0]
    assert apply_file_patch("a\n\x0c\nb\nc\n", fp).new_content == "a\n\x0c\nb\nC\n"
    fp = parse_patch("--- a/f\n+++ b/f\n@@ -2,1 +2,1 @@\n-b\n+B\n").patch.files[0]
    assert apply_file_patch("x\u2028y\nb\n", fp).new_content == "x\u2028y\nB\n"


def test_bare_hunks_apply_sequentially_against_mutated_lines():
    content = "".join(f"l{i}\n" for i in range(1, 11))
    text = "--- a/f\n+++ b/f\n@@\n l2\n+new\n+more\n l3\n@@\n l8\n-l9\n+L9\n"
    fp = parse_patch(text).patch.files[0]
    out = apply_file_patch(content, fp).new_content.splitlines()
    assert out[1:5] == ["l2", "new", "more", "l3"]
    assert out[9:11] == ["l8", "L9"]
    assert len(out) == 12


def test_drifted_hunk_applies_at_found_position():
    lines = [f"filler {i}" for i in range(60)]
    lines[34:37] = ["start()", "middle()", "finish()"]
    text = "--- a/f\n+++ b/f\n@@ -10,3 +10,3 @@\n start()\n-middle()\n+MIDDLE()\n finish()\n"
    fp = parse_patch(text).patch.files[0]
    out = apply_file_patch("\n".join(lines) + "\n", fp)
    assert out.new_content.splitlines()[35] == "MIDDLE()"
    assert out.locations[0].position == 34


def test_unanchored_addition_is_flagged():
    fp = parse_patch("--- a/f\n+++ b/f\n@@\n+first\n").patch.files[0]
    res = apply_file_patch("a\nb\n", fp)
    assert res.new_content == "first\na\nb\n"
    assert any("low-confidence" in w for w in res.warnings)
    assert any("anchor" in w for w in res.warnings)


def test_fuzzy_apply_writes_through_local_store(local_store, repo):
    res = fuzzy_apply(local_store, C_TO_C2)
    assert res.modified_files == ["src/app.js"]
    assert (repo / "src" / "app.js").read_text(encoding="utf-8") == "a\nb\nc2\nd\ne\n"


def test_patch_text_without_file_headers():
    assert patch_text("a\nb\n", "@@\n-a\n+A\n b\n") == "A\nb\n"


def test_patch_text_rejects_hunkless_input():
    with pytest.raises(PatchFailedError):
        patch_text("a\n", "no hunks in here\n")
