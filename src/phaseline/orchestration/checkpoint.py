"""JSON checkpoints so a pipeline can resume in a later process."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from phaseline.core.errors import CheckpointError

logger = structlog.get_logger()

CHECKPOINT_FORMAT = 1


@dataclass
class Checkpoint:
    """Orchestrator bookkeeping as of the last commit."""

    phases: List[str]
    cursor: int = -1
    version: int = 0
    state: Dict[str, Any] = field(default_factory=dict)
    backups: Dict[int, Dict[str, Any]] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "format": CHECKPOINT_FORMAT,
            "phases": self.phases,
            "cursor": self.cursor,
            "version": self.version,
            "state": self.state,
            "backups": {str(index): snapshot for index, snapshot in self.backups.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> Checkpoint:
        return cls(
            phases=list(data.get("phases", [])),
            cursor=int(data.get("cursor", -1)),
            version=int(data.get("version", 0)),
            state=dict(data.get("state", {})),
            backups={int(k): dict(v) for k, v in data.get("backups", {}).items()},
        )


class JsonCheckpointStore:
    """Writes a checkpoint file after every commit, atomically."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> Optional[Checkpoint]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            checkpoint = Checkpoint.from_dict(data)
        except (OSError, ValueError, TypeError, AttributeError) as e:
            raise CheckpointError(
                f"Cannot read checkpoint {self.path}: {e}", {"path": str(self.path)}
            ) from e
        logger.debug("checkpoint_loaded", path=str(self.path), cursor=checkpoint.cursor)
        return checkpoint

    def save(self, checkpoint: Checkpoint) -> None:
        try:
            payload = json.dumps(checkpoint.to_dict(), indent=2, sort_keys=True)
        except (TypeError, ValueError) as e:
            raise CheckpointError(
                f"State is not JSON-serializable: {e}", {"path": str(self.path)}
            ) from e

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with open(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(temp_path, self.path)
        except OSError as e:
            Path(temp_path).unlink(missing_ok=True)
            raise CheckpointError(
                f"Cannot write checkpoint {self.path}: {e}", {"path": str(self.path)}
            ) from e
        logger.debug("checkpoint_saved", path=str(self.path), cursor=checkpoint.cursor)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
