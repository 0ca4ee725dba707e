"""Phase orchestrator: drives the ordered lifecycle with commit/rollback per phase."""

from __future__ import annotations

import copy
import time
from typing import Any, Dict, List, Mapping, Optional

import structlog

from phaseline.config.settings import DEFAULT_PHASES
from phaseline.core.errors import (
    CheckpointError,
    HandlerExecutionError,
    OrchestrationInvariantError,
    RegistrationError,
)
from phaseline.logging import PhaseLogger, StructlogRecorder
from phaseline.orchestration.checkpoint import Checkpoint, JsonCheckpointStore
from phaseline.orchestration.context import ExecutionContext, bind
from phaseline.orchestration.effects import EffectCoordinator, NullEffectCoordinator
from phaseline.orchestration.introspection import (
    RESERVED_TOKENS,
    IntrospectionToken,
    Introspector,
)
from phaseline.orchestration.loader import HandlerLoader
from phaseline.orchestration.phases import Phase, PhaseRegistry
from phaseline.orchestration.results import ReportCollector, RunReport
from phaseline.orchestration.state import SnapshotLedger, StateStore

logger = structlog.get_logger()


class PhaseOrchestrator:
    """
    Runs registered handlers phase by phase.

    Each phase works on a deep copy of the state. The copy replaces the
    state only when every handler of the phase succeeded; otherwise it is
    discarded, the effect coordinator rolls the phase back and
    ``HandlerExecutionError`` is raised. The cursor marks the last
    committed phase, so later ``run`` calls resume after it.

    Not thread-safe: callers must serialize access. A ``run`` that starts
    while another is in progress raises ``OrchestrationInvariantError``.
    """

    def __init__(
        self,
        phases: Optional[List[str]] = None,
        initial_state: Optional[Mapping[str, Any]] = None,
        *,
        loader: Optional[HandlerLoader] = None,
        effects: Optional[EffectCoordinator] = None,
        phase_logger: Optional[PhaseLogger] = None,
        checkpoint_store: Optional[JsonCheckpointStore] = None,
    ) -> None:
        self._loader = loader or HandlerLoader()
        self._registry = PhaseRegistry(
            DEFAULT_PHASES if phases is None else phases,
            reserved=RESERVED_TOKENS,
            is_resolvable=self._loader.is_resolvable,
        )
        self._seed: Dict[str, Any] = copy.deepcopy(dict(initial_state or {}))
        self._store = StateStore(self._seed)
        self._ledger = SnapshotLedger()
        self._cursor = -1
        self._effects = effects or NullEffectCoordinator()
        self._phase_logger = phase_logger or StructlogRecorder()
        self._checkpoints = checkpoint_store
        self._running = False
        self._last_report: Optional[RunReport] = None
        self._introspector = Introspector(self._registry, self._store, self._ledger, lambda: self._cursor)

        if self._checkpoints is not None:
            self._restore_checkpoint()

    # Registration

    def register(self, phase_ref: Any, handler: Any) -> bool:
        """Queue a handler on a phase. Returns False instead of raising."""
        return self._registry.register(phase_ref, handler)

    def register_strict(self, phase_ref: Any, handler: Any) -> None:
        """Queue a handler on a phase, raising RegistrationError if rejected."""
        if not self._registry.register(phase_ref, handler):
            raise RegistrationError(
                f"Cannot register handler {handler!r} on phase {phase_ref!r}",
                {"phase": repr(phase_ref), "handler": repr(handler)},
            )

    # Execution

    def run(self, target: Any = None) -> Any:
        """
        Execute phases after the cursor, through ``target`` (or the last phase).

        Args:
            target: Phase name or position, None for all remaining phases, or
                an introspection token (order, cursor, index, name, dump)

        Returns:
            A copy of the committed state, or the introspection value

        Raises:
            HandlerExecutionError: A handler failed; its phase was rolled back
            OrchestrationInvariantError: Unknown target or re-entrant call
        """
        token = IntrospectionToken.parse(target)
        if token is not None:
            return self._introspector.query(token)

        if self._running:
            raise OrchestrationInvariantError(
                "run() called while another run is in progress",
                {"target": repr(target), "cursor": self._cursor},
            )

        if target is None:
            target_phase = self._registry.at(len(self._registry) - 1)
        else:
            target_phase = self._registry.resolve(target)
            if target_phase is None:
                raise OrchestrationInvariantError(
                    f"Unknown target phase: {target!r}",
                    {"target": repr(target), "phases": self._registry.names},
                )

        self._running = True
        collector = ReportCollector(
            target=None if target is None else target_phase.name,
            cursor_before=self._cursor,
        )
        start = time.monotonic()
        try:
            for phase in self._registry:
                if phase.index > target_phase.index:
                    break
                if phase.index <= self._cursor:
                    collector.record_skip(phase.name)
                    continue
                self._run_phase(phase, collector)
        finally:
            self._running = False
            self._last_report = collector.finalize(time.monotonic() - start, self._cursor)

        return self._store.snapshot()

    def introspect(self, token: Any) -> Any:
        """Answer a read-only query: order, cursor, index, name or dump."""
        return self._introspector.query(token)

    def reset(self, phase_ref: Any = None) -> Dict[str, Any]:
        """
        Rewind bookkeeping. This is the only way the cursor moves backwards.

        Args:
            phase_ref: None to return to the initial seed, or a committed
                phase to restore the state as if it and every later phase
                never ran

        Returns:
            A copy of the state after the reset
        """
        if self._running:
            raise OrchestrationInvariantError("reset() called while a run is in progress")

        if phase_ref is None:
            self._store.restore(self._seed)
            self._ledger.clear()
            self._cursor = -1
        else:
            phase = self._registry.resolve(phase_ref)
            if phase is None:
                raise OrchestrationInvariantError(
                    f"Unknown phase: {phase_ref!r}", {"phase": repr(phase_ref)}
                )
            snapshot = self._ledger.get(phase.index)
            if phase.index > self._cursor or snapshot is None:
                raise OrchestrationInvariantError(
                    f"Phase '{phase.name}' has not been committed",
                    {"phase": phase.name, "cursor": self._cursor},
                )
            self._store.restore(snapshot)
            self._ledger.truncate(phase.index)
            self._cursor = phase.index - 1

        logger.info("orchestrator_reset", phase=None if phase_ref is None else repr(phase_ref), cursor=self._cursor)
        self._save_checkpoint()
        return self._store.snapshot()

    # Read-only accessors

    @property
    def phases(self) -> List[str]:
        return self._registry.names

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def state(self) -> Dict[str, Any]:
        return self._store.snapshot()

    @property
    def version(self) -> int:
        return self._store.version

    @property
    def last_report(self) -> Optional[RunReport]:
        return self._last_report

    def handlers(self, phase_ref: Any) -> List[str]:
        """Labels of the handlers queued on a phase, in execution order."""
        phase = self._registry.resolve(phase_ref)
        if phase is None:
            raise OrchestrationInvariantError(f"Unknown phase: {phase_ref!r}", {"phase": repr(phase_ref)})
        return [spec.label for spec in self._registry.handlers(phase)]

    # Internals

    def _run_phase(self, phase: Phase, collector: ReportCollector) -> None:
        log = logger.bind(phase=phase.name, phase_index=phase.index)
        specs = self._registry.handlers(phase)
        working = self._store.snapshot()
        context = bind(phase.name, working, self._effects)

        log.debug("phase_started", handlers=len(specs))
        for handler_index, spec in enumerate(specs):
            try:
                func = spec.func if spec.func is not None else self._loader.load(spec.ref)
                collector.record_invocation()
                result = func(phase.name, context)
                self._merge(context, working, result, phase, handler_index)
            except Exception as exc:
                error = self._fail(phase, handler_index, spec.label, exc)
                collector.record_failure(phase.name, error.message)
                raise error from exc

        # Nothing is written to the store or ledger until both copies exist.
        previous = self._store.snapshot()
        try:
            committed = copy.deepcopy(working)
        except Exception as exc:
            error = self._fail(phase, len(specs) - 1, "commit", exc)
            collector.record_failure(phase.name, error.message)
            raise error from exc

        self._ledger.record(phase.index, previous)
        version = self._store.commit(committed)
        self._cursor = phase.index
        collector.record_commit(phase.name)
        log.info("phase_committed", version=version, handlers=len(specs))
        self._save_checkpoint()

    def _merge(
        self,
        context: ExecutionContext,
        working: Dict[str, Any],
        result: Any,
        phase: Phase,
        handler_index: int,
    ) -> None:
        if result is None or context.is_backed_by(result):
            return
        if isinstance(result, Mapping):
            working.update(result)
            return
        logger.debug(
            "handler_result_ignored",
            phase=phase.name,
            handler_index=handler_index,
            result_type=type(result).__name__,
        )

    def _fail(self, phase: Phase, handler_index: int, label: str, exc: Exception) -> HandlerExecutionError:
        details: Dict[str, Any] = {"handler": label, "error_type": type(exc).__name__}

        try:
            self._effects.rollback_scope(phase.name)
        except Exception as rollback_exc:
            details["rollback_error"] = str(rollback_exc)
            self._phase_logger.record(
                "phase_rollback_failed",
                "critical",
                {"phase": phase.name, "handler_index": handler_index, "error_message": str(rollback_exc)},
            )

        self._phase_logger.record(
            "phase_failed",
            "error",
            {
                "phase": phase.name,
                "handler_index": handler_index,
                "error_message": str(exc),
                "cursor": self._cursor,
                **details,
            },
        )
        return HandlerExecutionError(
            f"Phase '{phase.name}' failed in handler {handler_index} ({label}): {exc}",
            phase=phase.name,
            handler_index=handler_index,
            error_message=str(exc),
            details=details,
        )

    def _checkpoint(self) -> Checkpoint:
        return Checkpoint(
            phases=self._registry.names,
            cursor=self._cursor,
            version=self._store.version,
            state=self._store.snapshot(),
            backups=self._ledger.to_dict(),
        )

    def _save_checkpoint(self) -> None:
        if self._checkpoints is None:
            return
        self._checkpoints.save(self._checkpoint())

    def _restore_checkpoint(self) -> None:
        if self._checkpoints is None:
            return
        checkpoint = self._checkpoints.load()
        if checkpoint is None:
            return

        if checkpoint.phases != self._registry.names:
            raise CheckpointError(
                "Checkpoint was written for a different phase list",
                {"checkpoint_phases": checkpoint.phases, "phases": self._registry.names},
            )
        if not -1 <= checkpoint.cursor < len(self._registry):
            raise CheckpointError("Checkpoint cursor out of range", {"cursor": checkpoint.cursor})

        self._store.restore(checkpoint.state, version=checkpoint.version)
        for index, snapshot in checkpoint.backups.items():
            self._ledger.record(index, snapshot)
        self._cursor = checkpoint.cursor
        logger.info("orchestrator_resumed", cursor=self._cursor, version=self._store.version)
