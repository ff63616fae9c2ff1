"""Per-request deadline.

Pure ASGI middleware: BaseHTTPMiddleware cannot cancel the downstream app,
this can. When the deadline passes before the response has started, the
caller gets 504 E_REQUEST_TIMEOUT.

Cancellation reaches async code immediately. A sync route handler running
in a worker thread is not interrupted; its result is discarded, and a
storage deletion in flight may still complete after the deadline.
"""

import asyncio

from fastapi.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from photoshare.errors import ApiErrorCode
from photoshare.logging import get_logger
from photoshare.responses import error_response

logger = get_logger(__name__)


class DeadlineMiddleware:
    def __init__(self, app: ASGIApp, timeout_s: float):
        self.app = app
        self.timeout_s = timeout_s

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_tracking(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await asyncio.wait_for(
                self.app(scope, receive, send_tracking), timeout=self.timeout_s
            )
        except asyncio.TimeoutError:
            logger.warning(
                "request_deadline_exceeded",
                timeout_s=self.timeout_s,
                response_started=response_started,
            )
            # Headers already sent; nothing coherent left to tell the client.
            if response_started:
                raise
            response = JSONResponse(
                status_code=504,
                content=error_response(ApiErrorCode.E_REQUEST_TIMEOUT, "Request timed out"),
            )
            await response(scope, receive, send)
