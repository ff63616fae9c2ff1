"""User routes.

Routes are transport-only:
- Take the viewer from request.state
- Call exactly one service function
- Return success(...) or raise ApiError

IMPORTANT: /users/self routes must be registered BEFORE /users/{user_id}.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response

from photoshare.api.deps import get_claim_issuer, get_store
from photoshare.auth.claims import ClaimIssuer
from photoshare.auth.middleware import Viewer, get_viewer
from photoshare.db.store import MetadataStore
from photoshare.responses import success_response
from photoshare.schemas.users import CreateUserRequest, PublicInfoRequest
from photoshare.services import contacts as contacts_service
from photoshare.services import users as users_service

router = APIRouter()


@router.post("/users", status_code=201)
def register_user(
    body: CreateUserRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    store: Annotated[MetadataStore, Depends(get_store)],
) -> dict:
    """Register the caller. Contact digests are taken from the token."""
    user_id = users_service.register_user(store, viewer, body.public_key, body.private_key)
    return success_response({"id": user_id})


@router.get("/users/self")
def get_self(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    store: Annotated[MetadataStore, Depends(get_store)],
) -> dict:
    """Get the caller's account. 204 if not registered yet."""
    user = users_service.get_self(store, viewer)
    return success_response(user.model_dump(mode="json"))


@router.put("/users/self/contact", status_code=204)
def update_contact(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    store: Annotated[MetadataStore, Depends(get_store)],
) -> Response:
    """Refresh the caller's contact digests from the current token."""
    users_service.update_contact(store, viewer)
    return Response(status_code=204)


@router.put("/users/self/claims", status_code=204)
def grant_self_hosted_storage(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    claim_issuer: Annotated[ClaimIssuer | None, Depends(get_claim_issuer)],
) -> Response:
    """Grant the caller the self-hosted storage claim."""
    users_service.grant_self_hosted_storage(claim_issuer, viewer)
    return Response(status_code=204)


@router.post("/users/public")
def resolve_contacts(
    body: PublicInfoRequest,
    store: Annotated[MetadataStore, Depends(get_store)],
) -> dict:
    """Match ids and hashed contacts against registered users."""
    result = contacts_service.resolve_contacts(
        store, body.ids, body.phone_hashes, body.email_hashes
    )
    return success_response(result.model_dump(mode="json"))


@router.get("/users/{user_id}")
def get_public_key(
    user_id: str,
    store: Annotated[MetadataStore, Depends(get_store)],
) -> dict:
    """Get another user's public key."""
    public_key = users_service.get_public_key(store, user_id)
    return success_response({"id": user_id, "public_key": public_key})
