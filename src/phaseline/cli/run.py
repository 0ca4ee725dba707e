"""
CLI command for running pipeline phases.
"""

import json
from typing import Any, Optional

from phaseline.cli.ux import console, error, print_key_value, success
from phaseline.core.errors import (
    HandlerExecutionError,
    OrchestrationInvariantError,
    main_with_error_handling,
)
from phaseline.logging import bind_context
from phaseline.orchestration import PhaseOrchestrator, RunReport, build_orchestrator
from phaseline.orchestration.introspection import IntrospectionToken


def print_run_summary(
    report: RunReport,
    orchestrator: PhaseOrchestrator,
    failure: Optional[HandlerExecutionError] = None,
    verbose: bool = False,
) -> None:
    """Print run summary with rich formatting."""
    console.print()

    for name in orchestrator.phases:
        if name in report.phases_committed:
            console.print(f"  [green]✓ {name:<12}[/green] committed")
        elif name in report.phases_skipped:
            console.print(f"  [dim]• {name:<12} already committed[/dim]")
        elif name == report.failed_phase:
            console.print(f"  [red]✗ {name:<12}[/red] rolled back")

    console.print()
    duration = f" in {report.duration_seconds:.2f}s" if report.duration_seconds > 0 else ""
    if failure is not None:
        error(f"Phase '{failure.phase}' failed at handler {failure.handler_index}: {failure.error_message}")
    elif report.noop:
        success(f"Nothing to run, cursor at {orchestrator.introspect('name') or 'start'}")
    else:
        success(
            f"Committed {len(report.phases_committed)} phases{duration} "
            f"({report.handler_invocations} handlers)"
        )

    if verbose:
        print_key_value(
            {key: repr(value) for key, value in orchestrator.state.items()},
            title="State",
        )

    console.print()


def print_run_json(
    report: RunReport,
    state: dict[str, Any],
    failure: Optional[HandlerExecutionError] = None,
) -> None:
    """Print run result in JSON format."""
    output = {
        "report": report.to_dict(),
        "state": state,
        "error": failure.details if failure is not None else None,
    }
    print(json.dumps(output, indent=2, default=str))


@main_with_error_handling()
def run_command(
    target: Optional[str] = None,
    pipeline: Optional[str] = None,
    checkpoint: Optional[str] = None,
    output_format: str = "text",
    verbose: bool = False,
) -> int:
    """
    Run phases after the cursor, through an optional target phase.

    Args:
        target: Phase name or position; introspection tokens are answered
            without running anything
        pipeline: Path to pipeline YAML file
        checkpoint: Path to checkpoint file for resuming across invocations
        output_format: Output format (text, json)
        verbose: Show committed state

    Returns:
        Exit code (0 for success, handler error code on failure)
    """
    if IntrospectionToken.parse(target) is not None:
        from phaseline.cli.inspect import inspect_command

        return inspect_command(target, pipeline=pipeline, checkpoint=checkpoint, output_format=output_format)

    orchestrator = build_orchestrator(pipeline_path=pipeline, checkpoint_path=checkpoint)
    run_target: Any = int(target) if target is not None and target.isdigit() else target

    failure: Optional[HandlerExecutionError] = None
    try:
        orchestrator.run(run_target)
    except HandlerExecutionError as e:
        failure = e

    report = orchestrator.last_report
    if report is None:
        raise OrchestrationInvariantError("run() finished without a report")
    log = bind_context(command="run", target=report.target)
    log.info(
        "run_finished",
        committed=len(report.phases_committed),
        failed_phase=report.failed_phase,
        cursor=report.cursor_after,
    )

    if output_format == "json":
        print_run_json(report, orchestrator.state, failure)
    else:
        print_run_summary(report, orchestrator, failure, verbose=verbose)

    return failure.exit_code if failure is not None else 0
