"""
Structured logging configuration for Burnout Buddy.

Configures structlog to work alongside stdlib logging so that both
`logging.getLogger()` and `structlog.get_logger()` produce consistent,
structured JSON output in production and human-readable output in dev.

Free-text mood notes, display names and bearer tokens never reach the
log stream: ``redact_wellness_fields`` masks them on every event.

Usage:
    from src.lib.logging import setup_logging

    setup_logging()  # Call once at application startup
"""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any

import structlog

from src.config.settings import AppConfig, load_config

SERVICE_NAME = "burnout-buddy"

REDACTED = "[redacted]"

# Event keys that may carry what a physician typed about themselves
SENSITIVE_KEYS = frozenset({"text", "mood_text", "display_name", "access_token", "authorization"})

_QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "sqlalchemy.engine")


def redact_wellness_fields(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor masking SENSITIVE_KEYS in place."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        if event_dict[key] is not None:
            event_dict[key] = REDACTED
    return event_dict


def _service_tagger(environment: str) -> structlog.types.Processor:
    def tag(logger: Any, method_name: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
        event_dict.setdefault("service", SERVICE_NAME)
        event_dict.setdefault("env", environment)
        return event_dict

    return tag


def _build_chain(environment: str) -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        redact_wellness_fields,
        _service_tagger(environment),
    ]


def setup_logging(config: AppConfig | None = None) -> None:
    """
    Wire structlog and the stdlib root logger to one stderr handler.

    Dev mode (BUDDY_DEV_MODE=1) renders colored console lines; otherwise
    every record, including those from third-party stdlib loggers, comes
    out as a JSON object tagged with ``service`` and ``env``.
    """
    config = config or load_config()
    chain = _build_chain(config.environment)

    renderer: structlog.types.Processor = (
        structlog.dev.ConsoleRenderer() if config.dev_mode else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[*chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, config.log_level, logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
