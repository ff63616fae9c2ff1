"""Middleware modules for the photoshare API."""

from photoshare.middleware.deadline import DeadlineMiddleware
from photoshare.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware
from photoshare.middleware.throttle import ThrottleMiddleware

__all__ = ["DeadlineMiddleware", "REQUEST_ID_HEADER", "RequestIDMiddleware", "ThrottleMiddleware"]
