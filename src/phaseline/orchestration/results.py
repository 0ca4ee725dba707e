"""Result types for orchestrator runs."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class RunReport:
    """What a single ``run`` call did."""

    target: Optional[str] = None
    cursor_before: int = -1
    cursor_after: int = -1
    phases_committed: List[str] = field(default_factory=list)
    phases_skipped: List[str] = field(default_factory=list)
    handler_invocations: int = 0
    failed_phase: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        """Whether every phase in range committed."""
        return self.failed_phase is None and len(self.errors) == 0

    @property
    def noop(self) -> bool:
        """Whether the run found nothing left to execute."""
        return self.success and not self.phases_committed

    def to_dict(self) -> dict:
        return {
            "target": self.target,
            "cursor_before": self.cursor_before,
            "cursor_after": self.cursor_after,
            "phases_committed": list(self.phases_committed),
            "phases_skipped": list(self.phases_skipped),
            "handler_invocations": self.handler_invocations,
            "failed_phase": self.failed_phase,
            "errors": list(self.errors),
            "duration_seconds": self.duration_seconds,
            "success": self.success,
        }


class ReportCollector:
    """Aggregates phase outcomes during a run."""

    def __init__(self, target: Optional[str], cursor_before: int) -> None:
        self._report = RunReport(target=target, cursor_before=cursor_before, cursor_after=cursor_before)

    def record_skip(self, phase: str) -> None:
        self._report.phases_skipped.append(phase)

    def record_invocation(self) -> None:
        self._report.handler_invocations += 1

    def record_commit(self, phase: str) -> None:
        self._report.phases_committed.append(phase)

    def record_failure(self, phase: str, message: str) -> None:
        self._report.failed_phase = phase
        self._report.errors.append(message)

    def finalize(self, duration: float, cursor_after: int) -> RunReport:
        """Return the final report with duration and cursor set."""
        self._report.duration_seconds = duration
        self._report.cursor_after = cursor_after
        return self._report
