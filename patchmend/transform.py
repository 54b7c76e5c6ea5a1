# patchmend/transform.py
"""
The escalation ladder: Standard → Fuzzy → Regenerate.

Each tier either applies the patch and returns its warnings, or raises a
PatchFailedError that becomes input to the next tier. The controller is the
only place failures are turned into an ApplyResult.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple

from ._logging import resolve_logger
from .commit.core import FileStore, LocalFileStore
from .commit.native import NativeApplyTool, default_native_apply
from .commit.patch import fuzzy_apply
from .config import EngineConfig, resolve_config
from .context.builder import build_regeneration_request
from .errors import (
    ApplyError,
    EscalationCancelled,
    ExhaustionError,
    FormatError,
    PatchFailedError,
    PathViolation,
)
from .extract.diffs import ensure_valid_patch, header_paths
from .extract.metadata import inject_hunk_metadata
from .models import ApplyResult, AttemptState, RegenerationRequest, Strategy
from .utils.paths import sanitize_file_path
from .utils.text import sanitize_patch

log = logging.getLogger(__name__)

__all__ = [
    "REMEDIATION_STEPS",
    "PatchGenerator",
    "EscalationController",
    "apply_fix",
]

REMEDIATION_STEPS: Tuple[str, ...] = (
    "Review the patch manually and apply changes",
    "Check for merge conflicts or file permission issues",
    "Verify the issue description matches the codebase state",
    "Try applying the patch with: git apply --3way patch.diff",
)

PatchGenerator = Callable[[RegenerationRequest], str]

TierOutcome = List[str]  # warnings


class EscalationController:
    """
    Drive one apply-fix run through the three tiers, strictly in order.

    `store` gives file access; `native_apply` is the Standard-tier tool
    (None disables that tier's native step, which then fails and escalates);
    `generator` produces a fresh patch for the Regenerate tier.
    `should_cancel` is polled between tiers.
    """

    def __init__(
        self,
        store: FileStore,
        native_apply: Optional[NativeApplyTool] = None,
        generator: Optional[PatchGenerator] = None,
        *,
        config: EngineConfig | None = None,
        issue_description: str = "",
        should_cancel: Optional[Callable[[], bool]] = None,
        logger=None,
        log: bool = False,
    ):
        self.store = store
        self.native_apply = native_apply
        self.generator = generator
        self.config = resolve_config(config)
        self.issue_description = issue_description
        self.should_cancel = should_cancel
        self.log = resolve_logger(logger=logger, enabled=log, name=__name__)
        self._handlers: Dict[Strategy, Callable[[AttemptState], TierOutcome]] = {
            Strategy.STANDARD: self._run_standard,
            Strategy.FUZZY: self._run_fuzzy,
            Strategy.REGENERATE: self._run_regenerate,
        }
        self._patch_text = ""
        self._original_text = ""
        # path -> content before the run (None when absent), for every path a patch named
        self._baseline: Dict[str, Optional[str]] = {}

    # ===== public =====

    def run(self, patch_text: str) -> ApplyResult:
        self._patch_text = self._original_text = patch_text
        self._baseline = {}
        self._remember(patch_text)
        state = AttemptState()
        warnings: List[str] = []

        while True:
            if state.attempt_index > 0 and self._cancelled():
                err = EscalationCancelled(f"run cancelled before the {state.strategy.name.lower()} tier")
                self.log.info(str(err))
                return self._result(False, state, error=err, warnings=warnings)

            self.log.info(f"attempt {state.attempt_index + 1}/{state.max_attempts}: {state.strategy.name.lower()} tier")
            try:
                tier_warnings = self._handlers[state.strategy](state)
            except FormatError as e:
                if state.strategy is Strategy.STANDARD:
                    log.warning(f"patch rejected before any tier ran: {e}")
                    return self._result(False, state, error=e, warnings=warnings)
                state.record_failure(str(e))
            except PatchFailedError as e:
                state.record_failure(str(e))
            else:
                warnings.extend(tier_warnings)
                self.log.info(f"{state.strategy.name.lower()} tier succeeded")
                return self._result(True, state, warnings=warnings)

            log.warning(f"{state.strategy.name.lower()} tier failed: {state.last_error}")
            if not state.advance():
                break

        err = ExhaustionError(self._named_files(), state.errors, REMEDIATION_STEPS)
        return self._result(False, state, error=err, warnings=warnings)

    # ===== tiers =====

    def _run_standard(self, state: AttemptState) -> TierOutcome:
        return self._standard(self._patch_text)

    def _run_fuzzy(self, state: AttemptState) -> TierOutcome:
        return self._fuzzy(self._patch_text)

    def _run_regenerate(self, state: AttemptState) -> TierOutcome:
        if self.generator is None:
            raise ApplyError("no patch generator configured")
        request = build_regeneration_request(
            self.store,
            self._patch_text,
            issue_description=self.issue_description,
            prior_failure=state.last_error,
            config=self.config,
        )
        try:
            raw = self.generator(request)
        except Exception as e:
            raise ApplyError(f"patch generator failed: {e}") from e

        self._patch_text = sanitize_patch(raw or "")
        self._remember(self._patch_text)
        try:
            return self._standard(self._patch_text)
        except FormatError:
            raise
        except PatchFailedError as e:
            if not self.config.regenerate_with_fuzzy:
                raise
            self.log.info(f"regenerated patch failed natively ({e}); trying fuzzy")
            return self._fuzzy(self._patch_text)

    def _standard(self, patch_text: str) -> TierOutcome:
        ensure_valid_patch(patch_text, logger=self.log)
        if self.native_apply is None or not self.store.root:
            raise ApplyError("no native apply tool available for this store")

        rendered, warnings = inject_hunk_metadata(patch_text, self.store.read_lines, logger=self.log)
        try:
            outcome = self.native_apply(self.store.root, rendered)
        except Exception as e:
            raise ApplyError(f"native apply tool failed: {e}") from e
        if not outcome.success:
            raise ApplyError(f"Patch failed to apply: {outcome.stderr or 'native tool reported failure'}")
        return warnings

    def _fuzzy(self, patch_text: str) -> TierOutcome:
        res = fuzzy_apply(self.store, patch_text, config=self.config, logger=self.log)
        warnings = list(res.warnings)
        for path, hunks in res.skipped_hunks.items():
            warnings.append(f"{path}: hunk(s) {', '.join(map(str, hunks))} already applied; skipped")
        return warnings

    # ===== helpers =====

    def _cancelled(self) -> bool:
        return bool(self.should_cancel and self.should_cancel())

    def _read(self, path: str) -> Optional[str]:
        return self.store.read(path) if self.store.exists(path) else None

    def _remember(self, patch_text: str) -> None:
        """Remember what each file named by the patch held before the run."""
        for raw in header_paths(patch_text):
            try:
                path = sanitize_file_path(raw)
            except PathViolation:
                continue
            if path not in self._baseline:
                self._baseline[path] = self._read(path)

    def _changed(self) -> List[str]:
        # Native tools may write some files and still fail, so every tier is
        # measured against the state before the run.
        return [p for p, before in self._baseline.items() if self._read(p) != before]

    def _named_files(self) -> List[str]:
        named = header_paths(self._original_text)
        named += [p for p in header_paths(self._patch_text) if p not in named]
        return named

    def _result(
        self,
        success: bool,
        state: AttemptState,
        *,
        error: Optional[PatchFailedError] = None,
        warnings: Optional[List[str]] = None,
    ) -> ApplyResult:
        return ApplyResult(
            success=success,
            modified_files=self._changed(),
            error=error,
            strategy=state.strategy,
            attempts=min(state.attempt_index + 1, state.max_attempts),
            warnings=list(warnings or []),
            patch_text=self._patch_text,
        )


def apply_fix(
    repo_root: str,
    patch_text: str,
    *,
    generator: Optional[PatchGenerator] = None,
    issue_description: str = "",
    native_apply: Optional[NativeApplyTool] = None,
    config: EngineConfig | None = None,
    should_cancel: Optional[Callable[[], bool]] = None,
    logger=None,
    log: bool = False,
) -> ApplyResult:
    """Run the full escalation ladder against files on disk under repo_root."""
    cfg = resolve_config(config)
    store = LocalFileStore(repo_root, backup_ext=cfg.backup_ext)
    if native_apply is None:
        native_apply = default_native_apply(
            store.root, ignore_whitespace=cfg.ignore_whitespace, timeout=cfg.native_timeout
        )
    controller = EscalationController(
        store,
        native_apply,
        generator,
        config=cfg,
        issue_description=issue_description,
        should_cancel=should_cancel,
        logger=logger,
        log=log,
    )
    return controller.run(patch_text)
