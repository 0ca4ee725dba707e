"""
Unified error handling for phaseline.

Exit Codes:
- 0: Success
- 2: Orchestration misuse (unknown target, re-entrant run, bad token)
- 10: Configuration error (settings, pipeline file, checkpoint)
- 11: Handler execution error (phase rolled back)
- 12: Registration error
- 127: Unknown/internal error
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    INVARIANT_ERROR = 2
    CONFIG_ERROR = 10
    HANDLER_ERROR = 11
    REGISTRATION_ERROR = 12
    UNKNOWN_ERROR = 127


class PhaselineError(Exception):
    """Base exception for phaseline errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(PhaselineError):
    """Raised for settings, phase list or pipeline file problems."""

    exit_code = ExitCode.CONFIG_ERROR


class CheckpointError(ConfigurationError):
    """Raised when a checkpoint cannot be read or written."""


class RegistrationError(PhaselineError):
    """Raised when a handler cannot be attached to a phase.

    ``PhaseOrchestrator.register`` never raises this; it returns ``False``.
    """

    exit_code = ExitCode.REGISTRATION_ERROR


class HandlerExecutionError(PhaselineError):
    """Raised when a handler fails; the phase has already been rolled back."""

    exit_code = ExitCode.HANDLER_ERROR

    def __init__(
        self,
        message: str,
        phase: str,
        handler_index: int,
        error_message: str,
        details: dict[str, Any] | None = None,
    ):
        merged = {"phase": phase, "handler_index": handler_index, "error_message": error_message}
        merged.update(details or {})
        super().__init__(message, merged)
        self.phase = phase
        self.handler_index = handler_index
        self.error_message = error_message


class OrchestrationInvariantError(PhaselineError):
    """Raised when the orchestrator is used in a way it does not support."""

    exit_code = ExitCode.INVARIANT_ERROR


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI commands that converts exceptions to exit codes.

    Args:
        show_traceback: If True, show full traceback for unexpected errors
        log_errors: If True, log errors to structlog

    Exit codes:
        - PhaselineError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except PhaselineError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=e.exit_code,
                        **e.details,
                    )
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=ExitCode.UNKNOWN_ERROR,
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: PhaselineError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg
