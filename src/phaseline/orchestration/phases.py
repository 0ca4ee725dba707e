"""Phase identities and the ordered handler registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Optional, Union

import structlog

from phaseline.core.errors import ConfigurationError

logger = structlog.get_logger()

PhaseRef = Union[str, int]
HandlerFunc = Callable[[str, Any], Any]


@dataclass(frozen=True)
class Phase:
    """A named stage with a fixed position in the lifecycle."""

    name: str
    index: int


@dataclass(frozen=True)
class HandlerSpec:
    """A queued unit of work: an inline callable or an external reference."""

    func: Optional[HandlerFunc] = None
    ref: Optional[str] = None

    @property
    def label(self) -> str:
        if self.ref is not None:
            return self.ref
        return getattr(self.func, "__qualname__", repr(self.func))


class PhaseRegistry:
    """Fixed, ordered phases and the FIFO handler list of each."""

    def __init__(
        self,
        names: Iterable[str],
        reserved: Iterable[str] = (),
        is_resolvable: Callable[[str], bool] | None = None,
    ) -> None:
        names = list(names)
        reserved = set(reserved)

        if not names:
            raise ConfigurationError("At least one phase is required")

        seen: set[str] = set()
        for name in names:
            if not isinstance(name, str) or not name.strip():
                raise ConfigurationError(f"Invalid phase name: {name!r}")
            if name in seen:
                raise ConfigurationError(f"Duplicate phase name: {name}", {"phase": name})
            if name in reserved:
                raise ConfigurationError(
                    f"Phase name '{name}' collides with an introspection token", {"phase": name}
                )
            seen.add(name)

        self._phases = tuple(Phase(name=name, index=i) for i, name in enumerate(names))
        self._by_name = {p.name: p for p in self._phases}
        self._handlers: dict[int, list[HandlerSpec]] = {p.index: [] for p in self._phases}
        self._is_resolvable = is_resolvable or (lambda ref: False)

    def __len__(self) -> int:
        return len(self._phases)

    def __iter__(self) -> Iterator[Phase]:
        return iter(self._phases)

    @property
    def names(self) -> list[str]:
        return [p.name for p in self._phases]

    def resolve(self, ref: Any) -> Optional[Phase]:
        """Resolve a phase name or position; None if it is not a known phase."""
        if isinstance(ref, bool):
            return None
        if isinstance(ref, int):
            if 0 <= ref < len(self._phases):
                return self._phases[ref]
            return None
        if isinstance(ref, str):
            return self._by_name.get(ref)
        return None

    def at(self, index: int) -> Phase:
        return self._phases[index]

    def register(self, phase_ref: Any, handler: Any) -> bool:
        """Append a handler to a phase. Returns False if either side is unusable."""
        phase = self.resolve(phase_ref)
        if phase is None:
            logger.debug("handler_rejected", reason="unknown_phase", phase=repr(phase_ref))
            return False

        if isinstance(handler, str):
            if not self._is_resolvable(handler):
                logger.debug("handler_rejected", reason="unresolvable_reference", phase=phase.name, ref=handler)
                return False
            spec = HandlerSpec(ref=handler)
        elif callable(handler):
            spec = HandlerSpec(func=handler)
        else:
            logger.debug("handler_rejected", reason="unsupported_shape", phase=phase.name)
            return False

        self._handlers[phase.index].append(spec)
        return True

    def handlers(self, phase: Phase) -> list[HandlerSpec]:
        """Handlers of a phase in registration order (a copy)."""
        return list(self._handlers[phase.index])

    def handler_count(self, phase: Phase) -> int:
        return len(self._handlers[phase.index])
