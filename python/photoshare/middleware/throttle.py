"""Concurrency throttle for the data routes.

At most `max_concurrent` requests under the throttled prefixes are handled
at once; the rest wait their turn. Other paths are never throttled.
"""

import asyncio

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

THROTTLED_PREFIXES = ("/assets", "/groups", "/info")


class ThrottleMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        max_concurrent: int,
        prefixes: tuple[str, ...] = THROTTLED_PREFIXES,
    ):
        super().__init__(app)
        self.max_concurrent = max_concurrent
        self.prefixes = prefixes
        self._semaphore = asyncio.Semaphore(max_concurrent)

    def is_throttled(self, path: str) -> bool:
        return any(path == prefix or path.startswith(prefix + "/") for prefix in self.prefixes)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not self.is_throttled(request.url.path):
            return await call_next(request)
        async with self._semaphore:
            return await call_next(request)
