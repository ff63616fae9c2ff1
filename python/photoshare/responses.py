"""Response bodies and the app's exception handlers.

JSON bodies are enveloped: {"data": ...} on success and
{"error": {"code", "message", "request_id"}} on failure. Two cases bypass
the envelope:

- E_NO_CONTENT is an empty 204, used when a listing has nothing to return.
- A single computed asset size is 8 raw bytes, unsigned little-endian.
"""

import struct
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from photoshare.errors import ApiError, ApiErrorCode
from photoshare.logging import get_logger, get_request_id

logger = get_logger(__name__)

OCTET_STREAM = "application/octet-stream"
SIZE_FORMAT = "<Q"

# Framework-raised HTTP errors (unknown route, wrong method, bad body).
_HTTP_STATUS_CODES = {
    400: ApiErrorCode.E_INVALID_REQUEST,
    401: ApiErrorCode.E_UNAUTHENTICATED,
    403: ApiErrorCode.E_FORBIDDEN,
    404: ApiErrorCode.E_NOT_FOUND,
    422: ApiErrorCode.E_INVALID_REQUEST,
}


def success_response(data: Any) -> dict[str, Any]:
    return {"data": data}


def error_response(
    code: ApiErrorCode, message: str, request_id: str | None = None
) -> dict[str, Any]:
    """Error envelope; request_id defaults to the one bound for this request."""
    error = {"code": code.value, "message": message}
    request_id = request_id or get_request_id()
    if request_id:
        error["request_id"] = request_id
    return {"error": error}


def encode_size(size: int) -> bytes:
    return struct.pack(SIZE_FORMAT, size)


def size_response(size: int | None, status_code: int = 200) -> Response:
    """Raw size body, or an empty body when the asset has no original yet."""
    if size is None:
        return Response(status_code=status_code)
    return Response(content=encode_size(size), status_code=status_code, media_type=OCTET_STREAM)


async def api_error_handler(request: Request, exc: ApiError) -> Response:
    if exc.code == ApiErrorCode.E_NO_CONTENT:
        return Response(status_code=204)
    return JSONResponse(status_code=exc.status_code, content=error_response(exc.code, exc.message))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_STATUS_CODES.get(exc.status_code, ApiErrorCode.E_INTERNAL)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(code, str(exc.detail or "An error occurred")),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Details stay in the log; the client only sees E_INTERNAL.
    logger.exception("unhandled_exception", error=str(exc))
    return JSONResponse(
        status_code=500,
        content=error_response(ApiErrorCode.E_INTERNAL, "Internal server error"),
    )
