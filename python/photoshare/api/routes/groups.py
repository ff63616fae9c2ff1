"""Group routes.

Routes are transport-only: one service call each, no domain logic.

IMPORTANT: /groups/album must be registered BEFORE /groups/{group_id}
routes to prevent path capture.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response

from photoshare.api.deps import get_notifier, get_store
from photoshare.auth.middleware import Viewer, get_viewer
from photoshare.db.store import MetadataStore
from photoshare.responses import success_response
from photoshare.schemas.groups import (
    AddMembersRequest,
    AmendGroupAssetsRequest,
    AmendSharingRequest,
    CreateGroupRequest,
    JoinGroupRequest,
)
from photoshare.services import groups as groups_service
from photoshare.services.notifications import NotificationSink

router = APIRouter()


@router.get("/groups")
def list_groups(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    store: Annotated[MetadataStore, Depends(get_store)],
) -> dict:
    """List the caller's groups with their wrapped group keys."""
    result = groups_service.list_groups(store, viewer)
    return success_response([group.model_dump(mode="json") for group in result])


@router.post("/groups", status_code=201)
def create_group(
    body: CreateGroupRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    store: Annotated[MetadataStore, Depends(get_store)],
) -> dict:
    group_id = groups_service.create_group(store, viewer, body.name, body.key)
    return success_response({"id": group_id})


@router.get("/groups/album")
def list_group_albums(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    store: Annotated[MetadataStore, Depends(get_store)],
) -> dict:
    """Shared assets of every group the caller has joined."""
    result = groups_service.list_group_albums(store, viewer)
    return success_response([album.model_dump(mode="json") for album in result])


@router.put("/groups/{group_id}", status_code=204)
def join_group(
    group_id: str,
    body: JoinGroupRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    store: Annotated[MetadataStore, Depends(get_store)],
    notifier: Annotated[NotificationSink, Depends(get_notifier)],
) -> Response:
    """Accept an invitation with a re-wrapped group key."""
    groups_service.join_group(store, notifier, viewer, group_id, body.key)
    return Response(status_code=204)


@router.delete("/groups/{group_id}", status_code=204)
def leave_group(
    group_id: str,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    store: Annotated[MetadataStore, Depends(get_store)],
    notifier: Annotated[NotificationSink, Depends(get_notifier)],
) -> Response:
    groups_service.leave_group(store, notifier, viewer, group_id)
    return Response(status_code=204)


@router.get("/groups/{group_id}/users")
def list_group_members(
    group_id: str,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    store: Annotated[MetadataStore, Depends(get_store)],
) -> dict:
    """List the other members of a group."""
    result = groups_service.list_group_members(store, viewer, group_id)
    return success_response([member.model_dump(mode="json") for member in result])


@router.patch("/groups/{group_id}/users")
def add_members(
    group_id: str,
    body: AddMembersRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    store: Annotated[MetadataStore, Depends(get_store)],
    notifier: Annotated[NotificationSink, Depends(get_notifier)],
) -> dict:
    """Invite users, each with the group key wrapped for them."""
    invited = groups_service.add_members(store, notifier, viewer, group_id, body.users)
    return success_response({"invited": invited})


@router.patch("/groups/{group_id}/album", status_code=204)
def amend_group_assets(
    group_id: str,
    body: AmendGroupAssetsRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    store: Annotated[MetadataStore, Depends(get_store)],
    notifier: Annotated[NotificationSink, Depends(get_notifier)],
) -> Response:
    """Add assets to, or remove them from, the group album."""
    groups_service.amend_group_assets(
        store, notifier, viewer, group_id, body.asset_ids, add=body.add
    )
    return Response(status_code=204)


@router.patch("/groups/{group_id}/album/shared", status_code=204)
def amend_sharing(
    group_id: str,
    body: AmendSharingRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    store: Annotated[MetadataStore, Depends(get_store)],
    notifier: Annotated[NotificationSink, Depends(get_notifier)],
) -> Response:
    """Share or unshare album assets."""
    groups_service.amend_sharing(
        store,
        notifier,
        viewer,
        group_id,
        body.asset_ids,
        body.asset_keys,
        share=body.share,
    )
    return Response(status_code=204)
