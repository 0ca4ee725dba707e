"""Assemble an orchestrator from settings and a pipeline definition."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import structlog

from phaseline.config.loader import PipelineDefinition, load_pipeline
from phaseline.config.settings import Settings, get_settings
from phaseline.orchestration.checkpoint import JsonCheckpointStore
from phaseline.orchestration.effects import BackupEffectCoordinator
from phaseline.orchestration.engine import PhaseOrchestrator
from phaseline.orchestration.loader import HandlerLoader

logger = structlog.get_logger()


def build_orchestrator(
    settings: Optional[Settings] = None,
    pipeline: Optional[PipelineDefinition] = None,
    pipeline_path: str | Path | None = None,
    checkpoint_path: str | Path | None = None,
) -> PhaseOrchestrator:
    """
    Build an orchestrator with every pipeline handler registered.

    Explicit arguments win over settings. Handler file references are
    resolved against the pipeline file's directory first, then
    ``settings.handler_paths``.

    Raises:
        ConfigurationError: Bad phase list or pipeline file
        RegistrationError: A pipeline handler reference cannot be resolved
        CheckpointError: The checkpoint file is unreadable or mismatched
    """
    settings = settings or get_settings()
    if pipeline is None:
        pipeline = load_pipeline(pipeline_path or settings.pipeline_file)

    search_paths = []
    if pipeline.base_dir is not None:
        search_paths.append(pipeline.base_dir)
    search_paths.extend(Path(p) for p in settings.handler_paths)
    loader = HandlerLoader(search_paths)

    checkpoint = checkpoint_path or settings.checkpoint_path
    orchestrator = PhaseOrchestrator(
        phases=pipeline.phases or settings.phases,
        initial_state=pipeline.state,
        loader=loader,
        effects=BackupEffectCoordinator(Path(settings.workspace_root), Path(settings.backup_dir)),
        checkpoint_store=JsonCheckpointStore(checkpoint) if checkpoint else None,
    )

    for phase, refs in pipeline.handlers.items():
        for ref in refs:
            orchestrator.register_strict(phase, ref)

    logger.debug(
        "orchestrator_built",
        phases=len(orchestrator.phases),
        handlers=sum(len(refs) for refs in pipeline.handlers.values()),
        checkpoint=str(checkpoint) if checkpoint else None,
    )
    return orchestrator
