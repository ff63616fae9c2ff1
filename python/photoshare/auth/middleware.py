"""Authentication middleware for FastAPI.

Provides:
- AuthMiddleware: Global middleware for bearer token verification
- Viewer: The explicit per-request identity passed to every service call
- get_viewer: Dependency for accessing the authenticated viewer
"""

from dataclasses import dataclass, field

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from photoshare.auth.identity import ContactIdentifiers, contact_identifiers_from_claims
from photoshare.auth.verifier import TokenVerifier
from photoshare.errors import ApiError, ApiErrorCode
from photoshare.logging import get_logger, get_request_id, set_request_context
from photoshare.responses import error_response

logger = get_logger(__name__)

AUTHORIZATION_HEADER = "authorization"

# Paths that don't require authentication
PUBLIC_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


@dataclass(frozen=True)
class Viewer:
    """Authenticated viewer identity.

    Attributes:
        subject: Stable identity-provider subject (JWT sub claim).
        token: The raw bearer token, kept for storage credential federation.
        contacts: Hashed contact identifiers from the token claims.
    """

    subject: str
    token: str = field(repr=False)
    contacts: ContactIdentifiers = field(default_factory=ContactIdentifiers)


def extract_bearer_token(auth_header: str | None) -> str | None:
    """Return the token from an `Authorization: Bearer TOKEN` header, or None."""
    if not auth_header or not auth_header.lower().startswith("bearer "):
        return None
    token = auth_header[7:].strip()
    return token or None


def _reject(error: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code, content=error_response(error.code, error.message)
    )


class AuthMiddleware(BaseHTTPMiddleware):
    """Resolves the bearer token on every non-public request.

    On success the Viewer is attached to request.state and the subject is
    bound into the log context. Failures answer 401 (or 503 when the
    identity provider's keys are unreachable) before any route runs.
    """

    def __init__(self, app: ASGIApp, verifier: TokenVerifier):
        super().__init__(app)
        self.verifier = verifier

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        token = extract_bearer_token(request.headers.get(AUTHORIZATION_HEADER))
        try:
            if token is None:
                logger.warning("auth_failure", reason="missing_or_malformed_header")
                raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Authentication required")
            claims = self.verifier.verify(token)
        except ApiError as e:
            return _reject(e)

        subject = claims["sub"]
        request.state.viewer = Viewer(
            subject=subject, token=token, contacts=contact_identifiers_from_claims(claims)
        )
        set_request_context(get_request_id(), subject=subject)
        return await call_next(request)


def get_viewer(request: Request) -> Viewer:
    """Dependency returning the caller; 401 if the route was reached unauthenticated."""
    viewer = getattr(request.state, "viewer", None)
    if viewer is None:
        raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Authentication required")
    return viewer
