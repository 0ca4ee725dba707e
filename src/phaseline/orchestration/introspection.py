"""Read-only queries over orchestrator bookkeeping."""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from phaseline.core.errors import OrchestrationInvariantError

if TYPE_CHECKING:
    from phaseline.orchestration.phases import PhaseRegistry
    from phaseline.orchestration.state import SnapshotLedger, StateStore


class IntrospectionToken(StrEnum):
    """Reserved ``run``/``introspect`` arguments that execute nothing."""

    ORDER = "order"
    CURSOR = "cursor"
    INDEX = "index"
    NAME = "name"
    DUMP = "dump"

    @classmethod
    def parse(cls, value: Any) -> Optional[IntrospectionToken]:
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                return None
        return None


RESERVED_TOKENS = frozenset(t.value for t in IntrospectionToken)


class Introspector:
    """Side-channel view of phases, cursor, state and snapshots. Never mutates."""

    def __init__(
        self,
        registry: PhaseRegistry,
        store: StateStore,
        ledger: SnapshotLedger,
        cursor: Callable[[], int],
    ) -> None:
        self._registry = registry
        self._store = store
        self._ledger = ledger
        self._cursor = cursor

    def order(self) -> List[str]:
        return self._registry.names

    def cursor(self) -> int:
        return self._cursor()

    def name(self) -> Optional[str]:
        cursor = self._cursor()
        if cursor < 0:
            return None
        return self._registry.at(cursor).name

    def dump(self) -> Dict[str, Any]:
        cursor = self._cursor()
        return {
            "phases": [
                {
                    "name": phase.name,
                    "index": phase.index,
                    "handlers": self._registry.handler_count(phase),
                    "committed": phase.index <= cursor,
                }
                for phase in self._registry
            ],
            "state": self._store.snapshot(),
            "backups": self._ledger.to_dict(),
            "cursor": cursor,
        }

    def query(self, token: Any) -> Any:
        parsed = IntrospectionToken.parse(token)
        if parsed is None:
            raise OrchestrationInvariantError(
                f"Unknown introspection token: {token!r}",
                {"token": repr(token), "valid": sorted(RESERVED_TOKENS)},
            )
        if parsed is IntrospectionToken.ORDER:
            return self.order()
        if parsed in (IntrospectionToken.CURSOR, IntrospectionToken.INDEX):
            return self.cursor()
        if parsed is IntrospectionToken.NAME:
            return self.name()
        return self.dump()
