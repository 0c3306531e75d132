"""structlog setup shared by the API process and its background tasks.

Every entry carries the request id, the acting user and the tenant slug
when emitted inside a request, and credentials are masked before rendering.
"""
# ruff: noqa: ARG001  # Processor signatures required by structlog API

import logging
import sys
from typing import Any, Literal

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from patissio.config.settings import get_settings
from patissio.core.context import get_current_context_or_none

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Keys whose values never reach the log output
SENSITIVE_KEYS = frozenset(
    {"password", "password_hash", "token", "access_token", "authorization", "secret"}
)

# Chatty third-party loggers routed through our handler
_LIBRARY_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error", "sqlalchemy", "httpx", "stripe")


def add_request_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Copy the current RequestContext fields into the entry.

    Fields passed explicitly at the call site are left untouched.
    """
    ctx = get_current_context_or_none()
    if ctx is None:
        return event_dict
    for key, value in ctx.to_log_dict().items():
        event_dict.setdefault(key, value)
    return event_dict


def mask_sensitive_values(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = "***"
    return event_dict


def drop_color_message_key(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """uvicorn duplicates the message with ANSI colors under this key."""
    event_dict.pop("color_message", None)
    return event_dict


def _environment_tagger(environment: str) -> Processor:
    def tag_environment(
        logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict["environment"] = environment
        return event_dict

    return tag_environment


def setup_logging(log_level: LogLevel | None = None, json_format: bool | None = None) -> None:
    """Route structlog and stdlib logging through one stdout handler.

    Args:
        log_level: Root level; defaults to ``Settings.log_level``
        json_format: JSON lines when true, colored console otherwise;
            defaults to JSON in production only
    """
    settings = get_settings()
    level_name = (log_level or settings.log_level).upper()
    if json_format is None:
        json_format = settings.ENVIRONMENT == "production"

    pre_chain: list[Processor] = [
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        add_request_context,
        _environment_tagger(settings.ENVIRONMENT),
        mask_sensitive_values,
        drop_color_message_key,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: Processor
    if json_format:
        pre_chain.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level_name, logging.INFO))

    for name in _LIBRARY_LOGGERS:
        library_logger = logging.getLogger(name)
        library_logger.handlers = [handler]
        library_logger.propagate = False

    # SQL echo and per-request client lines stay off unless asked for
    for name in ("sqlalchemy", "sqlalchemy.engine", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)


class LogContext:
    """Bind extra fields to every entry logged inside the block.

    Example:
        with LogContext(event_type=event["type"], event_id=event["id"]):
            logger.info("webhook_received")
    """

    def __init__(self, **fields: Any):
        self.fields = fields

    def __enter__(self) -> "LogContext":
        structlog.contextvars.bind_contextvars(**self.fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        structlog.contextvars.unbind_contextvars(*self.fields)


def log_external_call(
    logger: structlog.stdlib.BoundLogger,
    service: str,
    operation: str,
    duration_ms: float,
    success: bool,
    **fields: Any,
) -> None:
    """One line per provider round trip; failures log at warning."""
    log = logger.info if success else logger.warning
    log(
        "external_call",
        service=service,
        operation=operation,
        duration_ms=round(duration_ms, 2),
        success=success,
        **fields,
    )
