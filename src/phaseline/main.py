from __future__ import annotations

import argparse
import sys
from typing import Sequence

from phaseline.config.settings import get_settings
from phaseline.logging import configure_logging

TOKENS = ["order", "cursor", "index", "name", "dump"]


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--pipeline", help="Path to pipeline YAML file")
    parser.add_argument("--checkpoint", help="Checkpoint file used to resume across invocations")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="phaseline", description="Phase orchestrator CLI")
    parser.add_argument("--log-level", default=None, help="Logging level (default from settings)")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Run phases after the cursor")
    run_parser.add_argument("target", nargs="?", help="Last phase to run (name or position)")
    _add_common_options(run_parser)
    run_parser.add_argument("--output", choices=["text", "json"], default="text", help="Output format")
    run_parser.add_argument("--verbose", "-v", action="store_true", help="Show committed state")

    inspect_parser = subparsers.add_parser("inspect", help="Read-only orchestrator queries")
    inspect_parser.add_argument("token", choices=TOKENS)
    _add_common_options(inspect_parser)
    inspect_parser.add_argument("--output", choices=["text", "json"], default="text", help="Output format")

    reset_parser = subparsers.add_parser("reset", help="Rewind committed phases")
    reset_parser.add_argument("phase", nargs="?", help="Rewind to just before this phase (default: start)")
    _add_common_options(reset_parser)

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(args.log_level or settings.log_level, json=settings.log_json)

    if args.command == "run":
        from phaseline.cli.run import run_command

        sys.exit(run_command(
            target=args.target,
            pipeline=args.pipeline,
            checkpoint=args.checkpoint,
            output_format=args.output,
            verbose=args.verbose,
        ))

    if args.command == "inspect":
        from phaseline.cli.inspect import inspect_command

        sys.exit(inspect_command(
            args.token,
            pipeline=args.pipeline,
            checkpoint=args.checkpoint,
            output_format=args.output,
        ))

    if args.command == "reset":
        from phaseline.cli.reset import reset_command

        sys.exit(reset_command(
            phase=args.phase,
            pipeline=args.pipeline,
            checkpoint=args.checkpoint,
        ))

    parser.print_help()
    sys.exit(1)


if __name__ == "__main__":
    main()
