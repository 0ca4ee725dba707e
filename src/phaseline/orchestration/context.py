"""Per-phase execution context handed to handlers."""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any, Dict, Iterator, Optional


class ExecutionContext(MutableMapping):
    """Working copy of the state for one phase attempt.

    Keys are readable and assignable both as items (``state["x"]``) and as
    attributes (``state.x``). Names the class itself defines are reserved
    for item access only.
    """

    def __init__(self, phase: str, working: Dict[str, Any], effects: Any = None) -> None:
        object.__setattr__(self, "_phase", phase)
        object.__setattr__(self, "_data", working)
        object.__setattr__(self, "_effects", effects)

    @property
    def phase(self) -> str:
        """Name of the phase being executed."""
        return self._phase

    @property
    def effects(self) -> Any:
        """Filesystem effect coordinator handlers record mutations with."""
        return self._effects

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = value

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(f"State has no key '{name}'") from None

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_") or hasattr(type(self), name):
            raise AttributeError(f"'{name}' is reserved; use state[{name!r}] instead")
        self._data[name] = value

    def __delattr__(self, name: str) -> None:
        try:
            del self._data[name]
        except KeyError:
            raise AttributeError(f"State has no key '{name}'") from None

    def __repr__(self) -> str:
        return f"ExecutionContext(phase={self._phase!r}, keys={sorted(self._data)!r})"

    def is_backed_by(self, obj: object) -> bool:
        """True if ``obj`` is this context or its working copy."""
        return obj is self or obj is self._data


def bind(phase: str, working: Dict[str, Any], effects: Optional[Any] = None) -> ExecutionContext:
    """Build a fresh context over a working copy. Never reuse the result."""
    return ExecutionContext(phase, working, effects)
