"""Versioned state store and the per-phase snapshot ledger."""

from __future__ import annotations

import copy
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple


class StateStore:
    """Single source of truth for phase data.

    Only ``commit`` and ``restore`` replace the held mapping; readers always
    get deep copies.
    """

    def __init__(self, seed: Optional[Mapping[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = copy.deepcopy(dict(seed or {}))
        self._version = 0

    @property
    def version(self) -> int:
        return self._version

    def snapshot(self) -> Dict[str, Any]:
        """Deep copy of the current state."""
        return copy.deepcopy(self._data)

    def commit(self, working_copy: Mapping[str, Any]) -> int:
        """Replace the state with a committed working copy."""
        self._data = dict(working_copy)
        self._version += 1
        return self._version

    def restore(self, data: Mapping[str, Any], version: Optional[int] = None) -> None:
        """Load state from outside normal execution (reset, checkpoint)."""
        self._data = copy.deepcopy(dict(data))
        self._version = self._version + 1 if version is None else version

    def __len__(self) -> int:
        return len(self._data)


class SnapshotLedger:
    """State each committed phase transitioned from, keyed by phase index."""

    def __init__(self) -> None:
        self._entries: Dict[int, Dict[str, Any]] = {}

    def record(self, index: int, snapshot: Mapping[str, Any]) -> None:
        self._entries[index] = copy.deepcopy(dict(snapshot))

    def get(self, index: int) -> Optional[Dict[str, Any]]:
        entry = self._entries.get(index)
        return copy.deepcopy(entry) if entry is not None else None

    def truncate(self, from_index: int) -> None:
        """Drop every entry at or after ``from_index``."""
        for index in [i for i in self._entries if i >= from_index]:
            del self._entries[index]

    def clear(self) -> None:
        self._entries.clear()

    def items(self) -> Iterator[Tuple[int, Dict[str, Any]]]:
        for index in sorted(self._entries):
            yield index, copy.deepcopy(self._entries[index])

    def to_dict(self) -> Dict[int, Dict[str, Any]]:
        return dict(self.items())

    def __contains__(self, index: object) -> bool:
        return index in self._entries

    def __len__(self) -> int:
        return len(self._entries)
