"""Structured logging configuration using structlog.

Provides JSON-formatted logs with consistent context including:
- request_id: Correlation ID supplied by the calling layer
- actor_id: Account performing the operation (from the execution scope)
- workflow: Name of the running lifecycle workflow (destroy_account, reset_all_passwords)
- timestamp: ISO8601 formatted timestamp

Usage:
    from quill.logging import get_logger, configure_logging

    # Configure once at startup
    configure_logging()

    # Get a logger for a module
    logger = get_logger(__name__)
    logger.info("something_happened", extra_field="value")

Workflow Logging:
    from quill.logging import bind_workflow_context, clear_workflow_context

    tokens = bind_workflow_context("destroy_account", actor_id=str(scope.actor_id))
    try:
        ...
    finally:
        clear_workflow_context(tokens)
"""

import logging
import sys
from contextvars import ContextVar, Token

import structlog

# Context variables for request-scoped logging
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
actor_id_var: ContextVar[str | None] = ContextVar("actor_id", default=None)
workflow_var: ContextVar[str | None] = ContextVar("workflow", default=None)


def add_request_context(logger: logging.Logger, method_name: str, event_dict: dict) -> dict:
    """Add request context to all log entries.

    Injects all non-None ContextVar values into the log event dict.
    """
    request_id = request_id_var.get()
    actor_id = actor_id_var.get()
    workflow = workflow_var.get()

    if request_id:
        event_dict["request_id"] = request_id
    if actor_id:
        event_dict["actor_id"] = actor_id
    if workflow:
        event_dict["workflow"] = workflow

    return event_dict


def configure_logging(json_format: bool = True) -> None:
    """Configure structlog for the application.

    Args:
        json_format: If True, output JSON logs. If False, output console-friendly logs.
    """
    # Shared processors for both stdlib and structlog loggers
    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_request_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure stdlib logging to use structlog formatting
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.INFO)

    # SQL echo is noise at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger for the given name.

    Args:
        name: Logger name (typically __name__).

    Returns:
        A bound structlog logger.
    """
    return structlog.get_logger(name)


def set_request_context(request_id: str | None, actor_id: str | None = None) -> None:
    """Set request context for the current execution context.

    Args:
        request_id: The request correlation ID.
        actor_id: The acting account ID (optional).
    """
    request_id_var.set(request_id)
    if actor_id is not None:
        actor_id_var.set(actor_id)


def bind_workflow_context(
    workflow: str,
    actor_id: str | None = None,
    request_id: str | None = None,
) -> list[Token]:
    """Tag subsequent log entries with the running workflow and its caller.

    All three values are set, including None ones, so a workflow never logs
    under a previous caller's identity.

    Args:
        workflow: Workflow name, e.g. "destroy_account".
        actor_id: The acting account ID, when the scope carries one.
        request_id: Correlation ID from the scope, when it carries one.

    Returns:
        Tokens to hand to clear_workflow_context() when the workflow ends.
    """
    return [
        workflow_var.set(workflow),
        actor_id_var.set(actor_id),
        request_id_var.set(request_id),
    ]


def clear_workflow_context(tokens: list[Token]) -> None:
    """Restore the context that was in place before bind_workflow_context()."""
    for token in reversed(tokens):
        token.var.reset(token)


def clear_request_context() -> None:
    """Clear all request-scoped context."""
    request_id_var.set(None)
    actor_id_var.set(None)
    workflow_var.set(None)


def get_request_id() -> str | None:
    """Get the current request ID from context."""
    return request_id_var.get()
