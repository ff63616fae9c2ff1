"""structlog setup shared by the API process and the migration scripts.

Every event is rendered once, through the stdlib root handler, so records
emitted by boto3, httpx or uvicorn carry the same request fields as our own:

- request_id: set by RequestIdMiddleware
- subject: the identity provider `sub` of the caller, once authenticated
- path / method: the raw request line (no query string)

    logger = get_logger(__name__)
    logger.info("asset_created", asset_id=asset_id)
"""

import logging
import sys
from contextvars import ContextVar

import structlog

REQUEST_FIELDS = ("request_id", "subject", "path", "method")

_request_context: dict[str, ContextVar[str | None]] = {
    field: ContextVar(field, default=None) for field in REQUEST_FIELDS
}

# Third-party loggers that are chatty at INFO.
QUIET_LOGGERS = ("httpx", "httpcore", "botocore", "boto3", "urllib3", "uvicorn.access")


def add_request_context(logger: logging.Logger, method_name: str, event_dict: dict) -> dict:
    for field, var in _request_context.items():
        value = var.get()
        if value:
            event_dict.setdefault(field, value)
    return event_dict


def configure_logging(json_format: bool = True, level: int = logging.INFO) -> None:
    """Route structlog and stdlib logging through one stdout handler.

    JSON lines in deployed environments, ConsoleRenderer when json_format is
    False. Calling it again replaces the root handler instead of stacking one.
    """
    pre_chain = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_request_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    renderer = (
        structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
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
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def set_request_context(request_id: str | None, **fields: str | None) -> None:
    """Bind request fields for the current context.

    request_id is always replaced. Other fields (subject, path, method) are
    only bound when given, so the auth layer can add the subject later in
    the same request without clobbering the path.
    """
    _request_context["request_id"].set(request_id)
    for field, value in fields.items():
        if field not in _request_context:
            raise ValueError(f"Unknown request context field: {field}")
        if value is not None:
            _request_context[field].set(value)


def clear_request_context() -> None:
    for var in _request_context.values():
        var.set(None)


def get_request_id() -> str | None:
    return _request_context["request_id"].get()
