"""X-Request-ID middleware for request correlation and access logging.

Incoming IDs are accepted when they are UUIDs (normalized to lowercase) or
short tokens of letters, digits, dots, hyphens and underscores. Anything
else is replaced by a fresh UUID4.

Middleware Ordering (Critical):
- Must be added LAST so it runs FIRST (outermost)
- Auth failures, throttling and timeouts then still carry X-Request-ID
"""

import re
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from photoshare.logging import clear_request_context, get_logger, set_request_context

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128

TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,128}$")

logger = get_logger(__name__)


def resolve_request_id(incoming: str | None) -> str:
    """Return a normalized incoming request ID, or a new one if it is unusable."""
    if incoming and len(incoming.encode("utf-8")) <= MAX_REQUEST_ID_LENGTH:
        try:
            return str(uuid.UUID(incoming))
        except ValueError:
            pass
        if TOKEN_PATTERN.match(incoming):
            return incoming
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a request ID, scopes log context to it, and logs one access entry.

    Args:
        app: The ASGI application.
        log_requests: If True, log a `request_completed` entry per request.
    """

    def __init__(self, app, log_requests: bool = True):
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_time = time.monotonic()
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        set_request_context(request_id, path=request.url.path, method=request.method)

        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id

            if self.log_requests:
                viewer = getattr(request.state, "viewer", None)
                logger.info(
                    "request_completed",
                    status_code=response.status_code,
                    duration_ms=round((time.monotonic() - start_time) * 1000, 2),
                    subject=viewer.subject if viewer else None,
                )
            return response

        except Exception:
            logger.exception("request_failed")
            raise

        finally:
            clear_request_context()
