"""
CLI command for read-only orchestrator queries.
"""

import json
from typing import Any, Optional

from phaseline.cli.ux import console, print_key_value, print_table
from phaseline.core.errors import main_with_error_handling
from phaseline.orchestration import IntrospectionToken, build_orchestrator


def print_dump(dump: dict[str, Any]) -> None:
    """Print a full dump as tables."""
    rows = [
        [
            str(phase["index"]),
            phase["name"],
            str(phase["handlers"]),
            "yes" if phase["committed"] else "no",
        ]
        for phase in dump["phases"]
    ]
    print_table("Phases", ["#", "Phase", "Handlers", "Committed"], rows)
    print_key_value({"cursor": str(dump["cursor"])})
    print_key_value({key: repr(value) for key, value in dump["state"].items()}, title="State")
    if dump["backups"]:
        console.print("\n[bold]Snapshots[/bold]")
        for index, snapshot in dump["backups"].items():
            console.print(f"  [cyan]{index}:[/cyan] {sorted(snapshot)}")
    console.print()


@main_with_error_handling()
def inspect_command(
    token: str,
    pipeline: Optional[str] = None,
    checkpoint: Optional[str] = None,
    output_format: str = "text",
) -> int:
    """
    Answer an introspection query without running any phase.

    Args:
        token: One of order, cursor, index, name, dump
        pipeline: Path to pipeline YAML file
        checkpoint: Path to checkpoint file

    Returns:
        Exit code
    """
    orchestrator = build_orchestrator(pipeline_path=pipeline, checkpoint_path=checkpoint)
    value = orchestrator.introspect(token)

    if output_format == "json":
        print(json.dumps(value, indent=2, default=str))
    elif IntrospectionToken.parse(token) is IntrospectionToken.DUMP:
        print_dump(value)
    elif isinstance(value, list):
        for name in value:
            console.print(name)
    else:
        console.print("-" if value is None else str(value))

    return 0
