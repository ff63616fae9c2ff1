"""User registration and profile service."""

from uuid import uuid4

from photoshare.auth.claims import ClaimIssuer, ClaimIssuerError
from photoshare.auth.middleware import Viewer
from photoshare.db.store import MetadataStore
from photoshare.errors import ApiError, ApiErrorCode, NotFoundError, NotFoundOrEmptyError
from photoshare.logging import get_logger
from photoshare.schemas.users import UserOut
from photoshare.services.faults import store_errors
from photoshare.services.validation import require_non_empty, require_uuid

logger = get_logger(__name__)

CURRENT_SCHEMA_VERSION = "1"


def register_user(
    store: MetadataStore, viewer: Viewer, public_key: str, private_key: str
) -> str:
    """Register the viewer with their key pair and hashed contacts.

    Returns:
        The new public user id.
    """
    require_non_empty(public_key=public_key, private_key=private_key)

    user_id = str(uuid4())
    with store_errors("create_user", user_id=user_id):
        store.create_user(
            viewer.subject,
            user_id,
            viewer.contacts,
            public_key,
            private_key,
            CURRENT_SCHEMA_VERSION,
        )

    logger.info("user_registered", user_id=user_id)
    return user_id


def get_self(store: MetadataStore, viewer: Viewer) -> UserOut:
    with store_errors("get_user", no_data=NotFoundOrEmptyError("User not registered")):
        return store.get_user(viewer.subject)


def get_public_key(store: MetadataStore, user_id: str) -> str:
    """Public key of any registered user."""
    require_uuid(user_id, "User ID")
    with store_errors("get_public_info_for_users", no_data=NotFoundOrEmptyError("No such user")):
        existing, _ = store.get_public_info_for_users([user_id], [], [])
    return existing[user_id]


def update_contact(store: MetadataStore, viewer: Viewer) -> None:
    """Replace the stored contact digests with those from the current token."""
    with store_errors(
        "update_user_contact",
        no_data=NotFoundError(ApiErrorCode.E_NOT_FOUND, "User not registered"),
    ):
        store.update_user_contact(viewer.subject, viewer.contacts)


def grant_self_hosted_storage(claim_issuer: ClaimIssuer | None, viewer: Viewer) -> None:
    """Let the viewer obtain storage credentials for their own bucket directly.

    Raises:
        ApiError: E_NOT_IMPLEMENTED when no claim issuer is configured,
            E_CLAIMS_FAILED when the issuer fails.
    """
    if claim_issuer is None:
        raise ApiError(ApiErrorCode.E_NOT_IMPLEMENTED, "Custom claims are not enabled")

    try:
        claim_issuer.grant_self_hosted_storage(viewer.subject)
    except ClaimIssuerError as e:
        logger.error("claims_grant_failed", error=str(e))
        raise ApiError(ApiErrorCode.E_CLAIMS_FAILED, "Unable to update claims") from e
