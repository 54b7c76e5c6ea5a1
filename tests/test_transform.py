import logging
from unittest.mock import MagicMock

import pytest

from patchmend.commit.core import LocalFileStore, MemoryFileStore
from patchmend.config import EngineConfig
from patchmend.errors import EscalationCancelled, ExhaustionError, FormatError
from patchmend.models import NativeApplyOutcome, RegenerationRequest, Strategy
from patchmend.transform import REMEDIATION_STEPS, EscalationController, apply_fix


C_TO_C2 = """\
--- a/src/app.js
+++ b/src/app.js
@@ -2,3 +2,3 @@
 b
-c
+c2
 d
"""

BROKEN = """\
--- a/src/app.js
+++ b/src/app.js
@@ -2,1 +2,1 @@
-not in the file
+replacement
"""


def failing_native(stderr="error: patch does not apply"):
    return MagicMock(return_value=NativeApplyOutcome(success=False, stderr=stderr))


def test_standard_tier_success(local_store, repo):
    def native(root, text):
        (repo / "src" / "app.js").write_text("a\nb\nc2\nd\ne\n", encoding="utf-8")
        return NativeApplyOutcome(success=True)

    generator = MagicMock()
    res = EscalationController(local_store, native, generator).run(C_TO_C2)
    assert res.success
    assert res.strategy is Strategy.STANDARD
    assert res.attempts == 1
    assert res.modified_files == ["src/app.js"]
    generator.assert_not_called()


def test_native_tool_receives_synthesized_headers(local_store):
    native = failing_native()
    bare = "--- a/src/app.js\n+++ b/src/app.js\n@@\n c\n-d\n+D\n"
    EscalationController(local_store, native).run(bare)
    root, text = native.call_args[0]
    assert root == local_store.root
    assert "@@ -3,2 +3,2 @@" in text


def test_fuzzy_tier_rescues_without_generator(local_store, repo):
    generator = MagicMock()
    res = EscalationController(local_store, failing_native(), generator).run(C_TO_C2)
    assert res.success
    assert res.strategy is Strategy.FUZZY
    assert res.attempts == 2
    assert res.modified_files == ["src/app.js"]
    assert (repo / "src" / "app.js").read_text(encoding="utf-8") == "a\nb\nc2\nd\ne\n"
    generator.assert_not_called()


def test_format_error_is_terminal(local_store):
    native = failing_native()
    generator = MagicMock()
    res = EscalationController(local_store, native, generator).run("Sure! Here is the fix.")
    assert not res.success
    assert isinstance(res.error, FormatError)
    assert res.attempts == 1
    native.assert_not_called()
    generator.assert_not_called()


def test_regenerate_tier_gets_context_and_feedback(local_store, repo):
    seen = []

    def generator(request):
        seen.append(request)
        return "```diff\n" + C_TO_C2 + "```\n"

    calls = []

    def native(root, text):
        calls.append(text)
        if len(calls) < 2:
            return NativeApplyOutcome(success=False, stderr="first attempt rejected")
        (repo / "src" / "app.js").write_text("a\nb\nc2\nd\ne\n", encoding="utf-8")
        return NativeApplyOutcome(success=True)

    res = EscalationController(
        local_store, native, generator, issue_description="rename c"
    ).run(BROKEN)

    assert res.success
    assert res.strategy is Strategy.REGENERATE
    assert res.attempts == 3
    assert res.modified_files == ["src/app.js"]
    (request,) = seen
    assert isinstance(request, RegenerationRequest)
    assert request.file_contents == {"src/app.js": "a\nb\nc\nd\ne\n"}
    assert request.issue_description == "rename c"
    assert "removed lines not found" in request.prior_failure
    assert "```" not in res.patch_text


def test_exhaustion_carries_every_tier_error(local_store):
    generator = MagicMock(return_value=BROKEN)
    res = EscalationController(local_store, failing_native(), generator).run(BROKEN)
    assert not res.success
    assert isinstance(res.error, ExhaustionError)
    assert res.attempts == 3
    assert set(res.error.tier_errors) == {"standard", "fuzzy", "regenerate"}
    assert res.error.files == ["src/app.js"]
    assert res.error.remediation == list(REMEDIATION_STEPS)
    msg = res.error_message
    assert "failed after 3 attempts" in msg
    assert "git apply --3way patch.diff" in msg


def test_missing_generator_exhausts(local_store):
    res = EscalationController(local_store, failing_native()).run(BROKEN)
    assert isinstance(res.error, ExhaustionError)
    assert "no patch generator" in res.error.tier_errors["regenerate"]


def test_generator_exception_is_recorded(local_store):
    generator = MagicMock(side_effect=RuntimeError("model offline"))
    res = EscalationController(local_store, failing_native(), generator).run(BROKEN)
    assert "model offline" in res.error.tier_errors["regenerate"]


def test_malformed_regenerated_patch_exhausts(local_store):
    generator = MagicMock(return_value="I could not produce a patch.")
    res = EscalationController(local_store, failing_native(), generator).run(BROKEN)
    assert isinstance(res.error, ExhaustionError)
    assert "Patch was invalid" in res.error.tier_errors["regenerate"]
    assert res.error.files == ["src/app.js"]


TWO_FILES = """\
--- a/a.txt
+++ b/a.txt
@@ -1,2 +1,2 @@
 one
-two
+TWO
--- a/b.txt
+++ b/b.txt
@@ -1,2 +1,2 @@
 alpha
-beta
+BETA
"""


def test_modified_files_include_partial_native_writes(tmp_path):
    (tmp_path / "a.txt").write_text("one\ntwo\n", encoding="utf-8")
    (tmp_path / "b.txt").write_text("  alpha\nbeta\n", encoding="utf-8")

    def native(root, text):
        # writes the first file, then gives up on the second
        (tmp_path / "a.txt").write_text("one\nTWO\n", encoding="utf-8")
        return NativeApplyOutcome(success=False, stderr="Hunk #1 FAILED at 1 (b.txt)")

    res = EscalationController(LocalFileStore(str(tmp_path)), native).run(TWO_FILES)
    assert res.success
    assert res.strategy is Strategy.FUZZY
    assert res.modified_files == ["a.txt", "b.txt"]
    assert (tmp_path / "b.txt").read_text(encoding="utf-8") == "  alpha\nBETA\n"


def test_regenerate_with_fuzzy_option(local_store, repo):
    generator = MagicMock(return_value=C_TO_C2)
    cfg = EngineConfig(regenerate_with_fuzzy=True)
    res = EscalationController(local_store, failing_native(), generator, config=cfg).run(BROKEN)
    assert res.success
    assert res.strategy is Strategy.REGENERATE
    assert (repo / "src" / "app.js").read_text(encoding="utf-8") == "a\nb\nc2\nd\ne\n"


def test_cancel_between_tiers(local_store):
    res = EscalationController(
        local_store, failing_native(), MagicMock(), should_cancel=lambda: True
    ).run(C_TO_C2)
    assert not res.success
    assert isinstance(res.error, EscalationCancelled)
    assert res.strategy is Strategy.FUZZY
    assert (local_store.read("src/app.js")) == "a\nb\nc\nd\ne\n"


def test_memory_store_skips_native_and_uses_fuzzy():
    store = MemoryFileStore({"src/app.js": "a\nb\nc\nd\ne\n"})
    res = EscalationController(store).run(C_TO_C2)
    assert res.success and res.strategy is Strategy.FUZZY
    assert store.files["src/app.js"] == "a\nb\nc2\nd\ne\n"


def test_tier_failures_are_logged(local_store, caplog):
    with caplog.at_level(logging.WARNING, logger="patchmend.transform"):
        EscalationController(local_store, failing_native("boom")).run(C_TO_C2)
    assert any("standard tier failed" in r.message and "boom" in r.message for r in caplog.records)


def test_result_to_dict(local_store):
    res = EscalationController(local_store, failing_native()).run(C_TO_C2)
    assert res.to_dict() == {"success": True, "modifiedFiles": ["src/app.js"]}


def test_apply_fix_end_to_end(repo):
    native = failing_native()
    res = apply_fix(str(repo), C_TO_C2, native_apply=native)
    assert res.success
    assert (repo / "src" / "app.js").read_text(encoding="utf-8") == "a\nb\nc2\nd\ne\n"


@pytest.mark.parametrize("bad", ["", "--- a/../x\n+++ b/../x\n@@\n-a\n+b\n"])
def test_apply_fix_rejects_bad_patches(repo, bad):
    res = apply_fix(str(repo), bad, native_apply=failing_native())
    assert isinstance(res.error, FormatError)
