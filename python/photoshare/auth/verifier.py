"""Identity token verification.

Provides:
- TokenVerifier: Protocol for token verification
- OidcJwksVerifier: Verifier for the identity provider's ID tokens, keyed by
  its published JWKS (discovered from the issuer when not configured)
- token_error: Maps PyJWT failures to E_UNAUTHENTICATED

Note: Test-only verifiers are in tests/support/test_verifier.py
"""

import threading
from typing import Any, Protocol

import httpx
import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidTokenError,
    PyJWKClientError,
)

from photoshare.errors import ApiError, ApiErrorCode
from photoshare.logging import get_logger

logger = get_logger(__name__)

# Clock skew allowance in seconds
CLOCK_SKEW_SECONDS = 60

SIGNING_ALGORITHMS = ["RS256", "ES256"]
REQUIRED_CLAIMS = ["exp", "iss", "sub"]

DISCOVERY_PATH = "/.well-known/openid-configuration"

# First match wins: InvalidSignatureError is itself a DecodeError.
_TOKEN_FAILURES: list[tuple[type[InvalidTokenError], str, str]] = [
    (ExpiredSignatureError, "expired_token", "Token expired"),
    (InvalidSignatureError, "invalid_signature", "Invalid token signature"),
    (InvalidIssuerError, "invalid_issuer", "Invalid token issuer"),
    (InvalidAudienceError, "invalid_audience", "Invalid token audience"),
    (DecodeError, "decode_error", "Invalid token format"),
]


class TokenVerifier(Protocol):
    """Protocol for token verification."""

    def verify(self, token: str) -> dict[str, Any]:
        """Verify token and return decoded claims.

        Raises:
            ApiError(E_UNAUTHENTICATED): Token is invalid, expired, or malformed.
            ApiError(E_AUTH_UNAVAILABLE): Signing keys could not be fetched.
        """
        ...


def token_error(e: InvalidTokenError) -> ApiError:
    """Log a rejected token and return the E_UNAUTHENTICATED error to raise."""
    reason, message = "invalid_token", "Invalid token"
    for exc_type, failure_reason, failure_message in _TOKEN_FAILURES:
        if isinstance(e, exc_type):
            reason, message = failure_reason, failure_message
            break
    logger.warning("auth_failure", reason=reason, error=str(e))
    return ApiError(ApiErrorCode.E_UNAUTHENTICATED, message)


def require_subject(claims: dict[str, Any]) -> dict[str, Any]:
    sub = claims.get("sub")
    if not isinstance(sub, str) or not sub:
        logger.warning("auth_failure", reason="missing_sub")
        raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token: missing sub")
    return claims


def _auth_unavailable() -> ApiError:
    return ApiError(ApiErrorCode.E_AUTH_UNAVAILABLE, "Authentication service unavailable")


def discover_jwks_url(issuer: str, timeout: float = 10.0) -> str:
    """Resolve the JWKS URL from the issuer's OpenID discovery document.

    Raises:
        ApiError(E_AUTH_UNAVAILABLE): Discovery document unreachable or incomplete.
    """
    url = f"{issuer.rstrip('/')}{DISCOVERY_PATH}"
    try:
        response = httpx.get(url, timeout=timeout)
        response.raise_for_status()
        jwks_uri = response.json().get("jwks_uri")
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("oidc_discovery_failed", issuer=issuer, error=str(e))
        raise _auth_unavailable() from e

    if not jwks_uri:
        logger.warning("oidc_discovery_failed", issuer=issuer, error="missing jwks_uri")
        raise _auth_unavailable()
    return jwks_uri


def _is_kid_miss(e: PyJWKClientError) -> bool:
    message = str(e)
    return "Unable to find" in message or "kid" in message.lower()


class OidcJwksVerifier:
    """Verifies ID tokens issued for this app by the identity provider.

    Checks the signature against the provider's JWKS (RS256 or ES256), exp
    with CLOCK_SKEW_SECONDS of leeway, iss against the configured issuer
    (trailing slash stripped), aud against the app's client id, and that
    sub is a non-empty string.

    Signing keys rotate. A token whose kid is not in the cached key set
    triggers exactly one JWKS refetch before it is rejected.
    """

    def __init__(
        self,
        issuer: str,
        client_id: str,
        jwks_url: str | None = None,
        cache_ttl: int = 3600,
    ):
        self.issuer = issuer.rstrip("/")
        self.client_id = client_id
        self.jwks_url = jwks_url
        self.cache_ttl = cache_ttl

        self._jwks_client: PyJWKClient | None = None
        self._jwks_lock = threading.Lock()

    def _new_jwks_client(self) -> PyJWKClient:
        if self.jwks_url is None:
            self.jwks_url = discover_jwks_url(self.issuer)
        return PyJWKClient(self.jwks_url, cache_keys=True, lifespan=self.cache_ttl)

    def _get_jwks_client(self) -> PyJWKClient:
        with self._jwks_lock:
            if self._jwks_client is None:
                self._jwks_client = self._new_jwks_client()
            return self._jwks_client

    def _refresh_jwks(self) -> PyJWKClient:
        with self._jwks_lock:
            self._jwks_client = self._new_jwks_client()
            return self._jwks_client

    def _signing_key(self, token: str) -> Any:
        """Find the token's signing key, refetching the key set once on a kid miss.

        Raises:
            DecodeError: Token header unreadable.
            PyJWKClientError: Key set could not be fetched.
            ApiError(E_UNAUTHENTICATED): kid unknown even after the refetch.
        """
        try:
            return self._get_jwks_client().get_signing_key_from_jwt(token)
        except PyJWKClientError as e:
            if not _is_kid_miss(e):
                raise
            logger.info("jwks_refresh", reason="kid_miss")

        try:
            return self._refresh_jwks().get_signing_key_from_jwt(token)
        except PyJWKClientError as e:
            logger.warning("auth_failure", reason="kid_not_found")
            raise ApiError(
                ApiErrorCode.E_UNAUTHENTICATED, "Invalid token: signing key not found"
            ) from e

    def verify(self, token: str) -> dict[str, Any]:
        try:
            signing_key = self._signing_key(token)
            claims = jwt.decode(
                token,
                signing_key.key,
                algorithms=SIGNING_ALGORITHMS,
                audience=self.client_id,
                issuer=self.issuer,
                leeway=CLOCK_SKEW_SECONDS,
                options={"require": REQUIRED_CLAIMS},
            )
        except PyJWKClientError as e:
            logger.warning("auth_failure", reason="jwks_unavailable", error=str(e))
            raise _auth_unavailable() from e
        except InvalidTokenError as e:
            raise token_error(e) from e

        return require_subject(claims)
