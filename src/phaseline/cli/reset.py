"""
CLI command for rewinding a checkpointed pipeline.
"""

from typing import Optional

from phaseline.cli.ux import success, warning
from phaseline.core.errors import main_with_error_handling
from phaseline.orchestration import build_orchestrator


@main_with_error_handling()
def reset_command(
    phase: Optional[str] = None,
    pipeline: Optional[str] = None,
    checkpoint: Optional[str] = None,
) -> int:
    """
    Rewind to the initial state, or to just before a committed phase.

    Returns:
        Exit code
    """
    orchestrator = build_orchestrator(pipeline_path=pipeline, checkpoint_path=checkpoint)
    if orchestrator.cursor < 0 and phase is None:
        warning("Nothing committed, nothing to reset")
        return 0

    target = int(phase) if phase is not None and phase.isdigit() else phase
    orchestrator.reset(target)

    name = orchestrator.introspect("name")
    success(f"Reset complete, cursor at {name or 'start'}")
    return 0
