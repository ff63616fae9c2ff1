"""Identifier lookup routes."""

from typing import Annotated

from fastapi import APIRouter, Depends

from photoshare.api.deps import get_store
from photoshare.db.store import MetadataStore
from photoshare.responses import success_response
from photoshare.schemas.info import ValidIdsRequest
from photoshare.services import contacts as contacts_service

router = APIRouter()


@router.post("/info/validids")
def validate_ids(
    body: ValidIdsRequest,
    store: Annotated[MetadataStore, Depends(get_store)],
) -> dict:
    """Return the subset of ids that belong to registered users."""
    return success_response(contacts_service.validate_ids(store, body.ids))
