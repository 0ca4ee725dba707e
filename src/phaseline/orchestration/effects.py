"""
Filesystem effect coordination.

Handlers that touch the filesystem open a scope for their phase and
``track`` every file before mutating it. When a phase fails, the
orchestrator calls ``rollback_scope`` exactly once for that phase:

- files that existed are restored from the scope's backup copy
- files created inside the scope are deleted

The orchestrator never begins or commits scopes itself.
"""

from __future__ import annotations

import shutil
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Protocol, runtime_checkable

import structlog

logger = structlog.get_logger()


@runtime_checkable
class EffectCoordinator(Protocol):
    """Undoes filesystem mutations made inside a phase."""

    def begin_scope(self, phase_id: str) -> None:
        ...

    def commit_scope(self, phase_id: str) -> None:
        ...

    def rollback_scope(self, phase_id: str) -> None:
        ...


class NullEffectCoordinator:
    """Coordinator for pipelines whose handlers have no filesystem effects."""

    def begin_scope(self, phase_id: str) -> None:
        pass

    def commit_scope(self, phase_id: str) -> None:
        pass

    def rollback_scope(self, phase_id: str) -> None:
        pass


@dataclass
class _Scope:
    backup_dir: Path
    # relative path -> whether the file existed before it was tracked
    tracked: Dict[str, bool] = field(default_factory=dict)


class BackupEffectCoordinator:
    """Backs up files before mutation and restores them on rollback."""

    def __init__(self, workspace_root: Path, backup_dir: Path | None = None):
        """
        Initialize the coordinator.

        Args:
            workspace_root: Root directory tracked files must live under
            backup_dir: Where scope backups are kept (default: <root>/.phaseline/backups)
        """
        self.workspace_root = Path(workspace_root).resolve()
        backup_dir = Path(backup_dir) if backup_dir else Path(".phaseline") / "backups"
        if not backup_dir.is_absolute():
            backup_dir = self.workspace_root / backup_dir
        self.backup_root = backup_dir
        self._scopes: Dict[str, _Scope] = {}

    def begin_scope(self, phase_id: str) -> None:
        if phase_id in self._scopes:
            return
        backup_dir = self.backup_root / f"{phase_id}-{uuid.uuid4().hex[:8]}"
        backup_dir.mkdir(parents=True, exist_ok=True)
        self._scopes[phase_id] = _Scope(backup_dir=backup_dir)
        logger.debug("effect_scope_opened", phase=phase_id, backup_dir=str(backup_dir))

    def track(self, phase_id: str, path: str | Path) -> Path:
        """
        Record a file before it is created, modified or deleted.

        Opens the phase scope if needed. Tracking the same file twice keeps
        the first backup.

        Returns:
            Absolute path of the tracked file

        Raises:
            ValueError: If the path is outside the workspace root
        """
        self.begin_scope(phase_id)
        scope = self._scopes[phase_id]

        file_path = self._absolute(path)
        relative = self._relative(file_path)
        if relative in scope.tracked:
            return file_path

        existed = file_path.exists()
        if existed:
            backup_path = scope.backup_dir / relative
            backup_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(file_path, backup_path)
        scope.tracked[relative] = existed
        return file_path

    def tracked(self, phase_id: str) -> List[str]:
        scope = self._scopes.get(phase_id)
        return list(scope.tracked) if scope else []

    def commit_scope(self, phase_id: str) -> None:
        scope = self._scopes.pop(phase_id, None)
        if scope is None:
            return
        self._discard(scope)
        logger.debug("effect_scope_committed", phase=phase_id, files=len(scope.tracked))

    def rollback_scope(self, phase_id: str) -> None:
        scope = self._scopes.pop(phase_id, None)
        if scope is None:
            return

        for relative, existed in reversed(list(scope.tracked.items())):
            file_path = self.workspace_root / relative
            if existed:
                file_path.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(scope.backup_dir / relative, file_path)
            elif file_path.exists():
                file_path.unlink()

        self._discard(scope)
        logger.info("effect_scope_rolled_back", phase=phase_id, files=len(scope.tracked))

    def _absolute(self, path: str | Path) -> Path:
        path = Path(path)
        if not path.is_absolute():
            path = self.workspace_root / path
        return path.resolve()

    def _relative(self, path: Path) -> str:
        try:
            return path.relative_to(self.workspace_root).as_posix()
        except ValueError:
            raise ValueError(f"{path} is outside workspace {self.workspace_root}") from None

    def _discard(self, scope: _Scope) -> None:
        try:
            shutil.rmtree(scope.backup_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("backup_cleanup_failed", backup_dir=str(scope.backup_dir), error=str(e))
