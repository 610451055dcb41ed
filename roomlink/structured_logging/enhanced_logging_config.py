"""
Structlog-based logging configuration for roomlink.

All modules MUST obtain their logger through get_logger() from this module
instead of logging.getLogger(). Standard library loggers do not accept the
keyword context that every call site in this package passes.

CORRECT USAGE:
    from ..structured_logging.enhanced_logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Room joined", room_id=room_id, owner_id=owner_id)
"""

# pylint: disable=too-few-public-methods  # Reason: State container class with focused responsibility

import json
import logging
import sys
from typing import Any

import structlog
from structlog.contextvars import merge_contextvars
from structlog.stdlib import BoundLogger, LoggerFactory

# Values longer than this are cut down before rendering; relay payloads can be large.
MAX_LOGGED_VALUE_LENGTH = 512

VALID_RENDERERS = ("console", "json", "keyvalue")


class _LoggingState:
    """State container for logging initialization to avoid global statements."""

    initialized: bool = False
    signature: str | None = None


_logging_state = _LoggingState()


def truncate_long_values(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Shorten oversized string and bytes values in a log entry.

    Args:
        _logger: Logger instance (unused)
        _name: Logger name (unused)
        event_dict: Event dictionary to process

    Returns:
        Event dictionary with long values truncated
    """
    for key, value in list(event_dict.items()):
        if key == "event":
            continue
        if isinstance(value, bytes | bytearray):
            value = value.hex()
            event_dict[key] = value
        if isinstance(value, str) and len(value) > MAX_LOGGED_VALUE_LENGTH:
            event_dict[key] = value[:MAX_LOGGED_VALUE_LENGTH] + f"...(+{len(value) - MAX_LOGGED_VALUE_LENGTH})"
    return event_dict


def _select_renderer(renderer: str) -> Any:
    if renderer == "json":
        return structlog.processors.JSONRenderer()
    if renderer == "keyvalue":
        return structlog.processors.KeyValueRenderer(key_order=["timestamp", "level", "logger", "event"])
    return structlog.dev.ConsoleRenderer(colors=False)


def configure_structlog(log_level: str = "INFO", renderer: str = "console") -> None:
    """
    Configure structlog and the stdlib root handler.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        renderer: One of "console", "json" or "keyvalue"
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    structlog.configure(
        processors=[
            merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            truncate_long_values,
            structlog.processors.UnicodeDecoder(),
            _select_renderer(renderer),
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=False,
    )


def setup_logging(logging_config: Any, *, force_reconfigure: bool = False) -> None:
    """
    Set up logging from a LoggingConfig, once per process.

    Args:
        logging_config: LoggingConfig instance (or anything with level/renderer/environment)
        force_reconfigure: When True, reconfigure even if logging is already initialized
    """
    settings = {
        "level": getattr(logging_config, "level", "INFO"),
        "renderer": getattr(logging_config, "renderer", "console"),
        "environment": getattr(logging_config, "environment", "development"),
    }
    config_signature = json.dumps(settings, sort_keys=True, default=str)

    if _logging_state.initialized and not force_reconfigure:
        get_logger("roomlink.structured_logging.setup").debug(
            "setup_logging skipped; logging system already initialized",
            config_signature=_logging_state.signature,
        )
        return

    configure_structlog(settings["level"], settings["renderer"])

    _logging_state.initialized = True
    _logging_state.signature = config_signature

    get_logger("roomlink.structured_logging.setup").info(
        "Logging system initialized",
        environment=settings["environment"],
        log_level=settings["level"],
        renderer=settings["renderer"],
    )


def get_logger(name: str) -> Any:  # Returns BoundLogger but typed as Any for flexibility
    """
    Get a structlog logger with the specified name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)

