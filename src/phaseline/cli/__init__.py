"""
CLI commands for phaseline.
"""

from phaseline.cli.inspect import inspect_command
from phaseline.cli.reset import reset_command
from phaseline.cli.run import run_command

__all__ = [
    "inspect_command",
    "reset_command",
    "run_command",
]
