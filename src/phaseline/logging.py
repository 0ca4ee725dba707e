import logging
from typing import Any, Mapping, Protocol

import structlog


def configure_logging(level: int | str = logging.INFO, json: bool = True) -> None:
    """Configure structlog/standard logging bridge."""

    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)
    renderer: Any = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            timestamper,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level, format="%(message)s")


def bind_context(**kwargs: Any) -> structlog.stdlib.BoundLogger:
    """Bind contextual fields for downstream logs."""

    logger = structlog.get_logger()
    return logger.bind(**kwargs)


class PhaseLogger(Protocol):
    """Sink the orchestrator reports phase failures to."""

    def record(self, message: str, severity: str, context: Mapping[str, Any]) -> None:
        ...


class StructlogRecorder:
    """PhaseLogger that forwards records to structlog."""

    SEVERITIES = ("debug", "info", "warning", "error", "critical")

    def __init__(self, logger: Any = None) -> None:
        self._logger = logger or structlog.get_logger("phaseline.orchestrator")

    def record(self, message: str, severity: str, context: Mapping[str, Any]) -> None:
        level = severity.lower() if severity else "error"
        if level not in self.SEVERITIES:
            level = "error"
        getattr(self._logger, level)(message, **dict(context))
