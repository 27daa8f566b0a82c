"""
Structured logging for the Live Relay and the probe.

structlog renders every entry; stdlib logging (websockets, httpx, redis) is
routed through the same formatter so library records share the layout.
Logs go to stdout by default. Commands whose stdout is machine-readable
output (relay --once) send them to stderr instead.
"""
from __future__ import annotations

import logging
import sys
from typing import Any, Iterable, TextIO

import structlog
from shared.config import Environment, Settings, get_settings

NOISY_LOGGERS = ("websockets", "httpx", "httpcore", "asyncio")


def _pre_chain() -> list[structlog.types.Processor]:
    """Processors applied to both structlog and foreign stdlib records."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(settings: Settings, stream: TextIO) -> structlog.types.Processor:
    # Colours only when writing to a terminal.
    if settings.environment == Environment.DEV:
        return structlog.dev.ConsoleRenderer(colors=stream.isatty())
    return structlog.processors.JSONRenderer()


def _root_handler(formatter: logging.Formatter, stream: TextIO, level: int) -> None:
    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def setup_logging(
    service_name: str,
    extra_context: dict[str, Any] | None = None,
    stream: TextIO | None = None,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """
    Configure structured logging for a service.

    Args:
        service_name: The service identifier (relay, probe).
        extra_context: Additional static context fields bound to every log entry.
        stream: Destination for log lines; stdout when None.
        quiet: Library loggers capped at WARNING.
    """
    settings = get_settings()
    stream = stream or sys.stdout
    if settings.debug:
        level = logging.DEBUG
    else:
        level = logging.getLevelName(settings.log_level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    pre_chain = _pre_chain()
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(settings, stream),
        ],
        foreign_pre_chain=pre_chain,
    )
    _root_handler(formatter, stream, level)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        service=service_name,
        instance_id=settings.instance_id,
        **(extra_context or {}),
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a named structured logger."""
    return structlog.get_logger(name)
