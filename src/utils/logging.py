"""Structured logging configuration for the image generation router.

Every record, whether emitted through structlog or through a provider module's
stdlib logger, carries the id of the generation request it belongs to and the
provider serving it. Outbound HTTP client logs are kept at WARNING because
httpx writes full request URLs, and the Google Imagen key travels in the query
string.
"""

import logging
import sys
from contextvars import ContextVar

import structlog

# Per-request correlation, set by the orchestrator for the life of one generation
current_request_id: ContextVar[str | None] = ContextVar("current_request_id", default=None)
current_provider: ContextVar[str | None] = ContextVar("current_provider", default=None)

# Loggers that would otherwise leak request URLs (and so API keys) at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def add_request_context(_logger, _method_name, event_dict):
    """Structlog processor adding request_id and provider to every event."""
    request_id = current_request_id.get()
    if request_id:
        event_dict.setdefault("request_id", request_id)
    provider = current_provider.get()
    if provider:
        event_dict.setdefault("provider", provider)
    return event_dict


def setup_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_output: If True, output JSON logs (for production). If False, use colored console output.
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_request_context,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        renderer = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True, exception_formatter=structlog.dev.rich_traceback
        )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Provider adapters log through stdlib; render them through the same chain
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)
    root_logger.setLevel(getattr(logging, log_level.upper()))

    for logger_name in QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Bound structlog logger
    """
    return structlog.get_logger(name)


def set_request_context(request_id: str, provider: str | None = None) -> None:
    """Set the current generation request for log correlation.

    Args:
        request_id: Request ID to include in all subsequent log messages
        provider: Provider serving the request, once known
    """
    current_request_id.set(request_id)
    current_provider.set(provider)


def bind_provider(provider: str) -> None:
    """Attach the selected provider to the current request's log records."""
    current_provider.set(provider)


def clear_request_context() -> None:
    """Clear the current request context."""
    current_request_id.set(None)
    current_provider.set(None)
