"""API error definitions.

All API errors are defined here with their corresponding HTTP status codes.
Downstream faults (storage, persistence, credential exchange) surface to
callers with a generic message; the detail is logged where they are caught.
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    """Standardized error codes for the API.

    Format: E_CATEGORY_NAME
    """

    # Success without content (204)
    E_NO_CONTENT = "E_NO_CONTENT"

    # Authentication errors (401)
    E_UNAUTHENTICATED = "E_UNAUTHENTICATED"

    # Authorization errors (403)
    E_FORBIDDEN = "E_FORBIDDEN"

    # Not found errors (404)
    E_NOT_FOUND = "E_NOT_FOUND"
    E_GROUP_NOT_FOUND = "E_GROUP_NOT_FOUND"

    # Validation errors (400)
    E_INVALID_REQUEST = "E_INVALID_REQUEST"

    # Server errors
    E_INTERNAL = "E_INTERNAL"  # 500
    E_STORAGE_ERROR = "E_STORAGE_ERROR"  # 500
    E_PERSISTENCE_ERROR = "E_PERSISTENCE_ERROR"  # 500
    E_AUTH_EXCHANGE_FAILED = "E_AUTH_EXCHANGE_FAILED"  # 500
    E_CLAIMS_FAILED = "E_CLAIMS_FAILED"  # 500
    E_NOT_IMPLEMENTED = "E_NOT_IMPLEMENTED"  # 501
    E_AUTH_UNAVAILABLE = "E_AUTH_UNAVAILABLE"  # 503
    E_REQUEST_TIMEOUT = "E_REQUEST_TIMEOUT"  # 504


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_NO_CONTENT: 204,
    ApiErrorCode.E_UNAUTHENTICATED: 401,
    ApiErrorCode.E_FORBIDDEN: 403,
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_GROUP_NOT_FOUND: 404,
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_INTERNAL: 500,
    ApiErrorCode.E_STORAGE_ERROR: 500,
    ApiErrorCode.E_PERSISTENCE_ERROR: 500,
    ApiErrorCode.E_AUTH_EXCHANGE_FAILED: 500,
    ApiErrorCode.E_CLAIMS_FAILED: 500,
    ApiErrorCode.E_NOT_IMPLEMENTED: 501,
    ApiErrorCode.E_AUTH_UNAVAILABLE: 503,
    ApiErrorCode.E_REQUEST_TIMEOUT: 504,
}


class ApiError(Exception):
    """Base exception for API errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
        status_code: HTTP status code (derived from code)
    """

    def __init__(self, code: ApiErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)


class ValidationError(ApiError):
    """Caller-supplied data violates a precondition.

    Raised before any store or storage call is made. Not logged as a fault.
    """

    def __init__(self, message: str = "Invalid request"):
        super().__init__(ApiErrorCode.E_INVALID_REQUEST, message)


class NotFoundOrEmptyError(ApiError):
    """A query legitimately found nothing. Maps to 204 No Content."""

    def __init__(self, message: str = "No content"):
        super().__init__(ApiErrorCode.E_NO_CONTENT, message)


class NotFoundError(ApiError):
    """Resource not found error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not found"):
        super().__init__(code, message)


class StorageFaultError(ApiError):
    """Object storage failed while serving the request."""

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(ApiErrorCode.E_STORAGE_ERROR, message)


class PersistenceFaultError(ApiError):
    """The metadata store failed while serving the request."""

    def __init__(self, message: str = "Internal server error"):
        super().__init__(ApiErrorCode.E_PERSISTENCE_ERROR, message)
