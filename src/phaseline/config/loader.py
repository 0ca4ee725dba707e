"""
Pipeline definition loading.

Search order:
1. Explicit path (--pipeline flag or PHASELINE_PIPELINE_FILE)
2. .phaseline/pipeline.yaml (project root)
3. ~/.phaseline/pipeline.yaml (user home)
4. No pipeline: phases come from Settings and no handlers are queued
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

from phaseline.core.errors import ConfigurationError

logger = structlog.get_logger()


def get_pipeline_path(explicit_path: str | Path | None = None) -> Path | None:
    """
    Find the pipeline file to use.

    Returns:
        Path to pipeline file or None if not found
    """
    if explicit_path:
        path = Path(explicit_path)
        if path.exists():
            return path
        raise ConfigurationError(f"Pipeline file not found: {path}", {"path": str(path)})

    cwd_pipeline = Path.cwd() / ".phaseline" / "pipeline.yaml"
    if cwd_pipeline.exists():
        return cwd_pipeline

    home_pipeline = Path.home() / ".phaseline" / "pipeline.yaml"
    if home_pipeline.exists():
        return home_pipeline

    return None


@dataclass
class PipelineDefinition:
    """Phases, seed state and handler references declared in YAML."""

    phases: list[str] | None = None
    state: dict[str, Any] = field(default_factory=dict)
    handlers: dict[str, list[str]] = field(default_factory=dict)
    source: Path | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], source: Path | None = None) -> PipelineDefinition:
        if not isinstance(data, dict):
            raise ConfigurationError("Pipeline document must be a mapping", {"source": str(source)})

        phases = data.get("phases")
        if phases is not None:
            if not isinstance(phases, list) or not all(isinstance(p, str) for p in phases):
                raise ConfigurationError("'phases' must be a list of names", {"source": str(source)})

        state = data.get("state") or {}
        if not isinstance(state, dict):
            raise ConfigurationError("'state' must be a mapping", {"source": str(source)})

        raw_handlers = data.get("handlers") or {}
        if not isinstance(raw_handlers, dict):
            raise ConfigurationError("'handlers' must be a mapping of phase to list", {"source": str(source)})

        handlers: dict[str, list[str]] = {}
        for phase, refs in raw_handlers.items():
            if isinstance(refs, str):
                refs = [refs]
            if not isinstance(refs, list) or not all(isinstance(r, str) for r in refs):
                raise ConfigurationError(
                    f"Handlers for phase '{phase}' must be a list of references",
                    {"source": str(source), "phase": phase},
                )
            handlers[str(phase)] = list(refs)

        if phases is not None:
            unknown = [p for p in handlers if p not in phases]
            if unknown:
                raise ConfigurationError(
                    f"Handlers declared for unknown phases: {', '.join(unknown)}",
                    {"source": str(source)},
                )

        return cls(phases=phases, state=dict(state), handlers=handlers, source=source)

    @property
    def base_dir(self) -> Path | None:
        """Directory relative handler file references are resolved against."""
        return self.source.parent if self.source else None


def load_pipeline(path: str | Path | None = None) -> PipelineDefinition:
    """
    Load the pipeline definition.

    Args:
        path: Optional explicit pipeline file path

    Returns:
        PipelineDefinition (empty if no file was found)
    """
    pipeline_path = get_pipeline_path(path)
    if pipeline_path is None:
        return PipelineDefinition()

    try:
        with open(pipeline_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid pipeline file {pipeline_path}: {e}", {"path": str(pipeline_path)}
        ) from e

    logger.debug("loaded_pipeline", path=str(pipeline_path))
    return PipelineDefinition.from_dict(data, source=pipeline_path)
