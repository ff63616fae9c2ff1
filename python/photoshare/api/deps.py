"""FastAPI dependencies for route handlers.

Process-wide collaborators are built once in the application lifespan and
read from app.state here. The storage backend is resolved per request and
cached by FastAPI for the rest of that request, so one request never mixes
credential scopes.
"""

from typing import Annotated

from fastapi import Depends, Request

from photoshare.auth.claims import ClaimIssuer
from photoshare.auth.middleware import Viewer, get_viewer
from photoshare.db.store import MetadataStore
from photoshare.errors import ApiError, ApiErrorCode
from photoshare.logging import get_logger
from photoshare.services.notifications import NotificationSink
from photoshare.storage.broker import AuthExchangeError, MissingCredentialError
from photoshare.storage.client import StorageBackend

logger = get_logger(__name__)

__all__ = [
    "get_claim_issuer",
    "get_notifier",
    "get_storage_backend",
    "get_store",
]


def get_store(request: Request) -> MetadataStore:
    """Get the shared metadata store from app state."""
    return request.app.state.store


def get_notifier(request: Request) -> NotificationSink:
    """Get the shared notification sink from app state."""
    return request.app.state.notifier


def get_claim_issuer(request: Request) -> ClaimIssuer | None:
    """Get the claim issuer, or None when custom claims are disabled."""
    return getattr(request.app.state, "claim_issuer", None)


def get_storage_backend(
    request: Request, viewer: Annotated[Viewer, Depends(get_viewer)]
) -> StorageBackend:
    """Resolve the storage backend for the current viewer.

    Raises:
        ApiError: E_UNAUTHENTICATED without a token to exchange,
            E_AUTH_EXCHANGE_FAILED when federation fails.
    """
    broker = request.app.state.credential_broker
    try:
        return broker.resolve(viewer.token)
    except MissingCredentialError as e:
        raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Authentication required") from e
    except AuthExchangeError as e:
        logger.error("storage_credential_exchange_failed", error=str(e))
        raise ApiError(ApiErrorCode.E_AUTH_EXCHANGE_FAILED, "Internal server error") from e
