"""Asset routes.

Routes are transport-only: one service call each, no domain logic.

A single computed size is returned as 8 raw little-endian bytes; bulk
sizes are returned as a JSON map from asset id to size.
"""

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Response

from photoshare.api.deps import get_storage_backend, get_store
from photoshare.auth.middleware import Viewer, get_viewer
from photoshare.db.store import MetadataStore
from photoshare.responses import size_response, success_response
from photoshare.schemas.assets import (
    CreateAssetRequest,
    OriginalFilenameRequest,
    OriginalPathRequest,
    PatchAssetsRequest,
)
from photoshare.services import assets as assets_service
from photoshare.storage.client import StorageBackend

router = APIRouter()


@router.get("/assets")
def list_assets(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    store: Annotated[MetadataStore, Depends(get_store)],
) -> dict:
    """List the caller's assets. 204 if there are none."""
    result = assets_service.list_assets(store, viewer)
    return success_response([asset.model_dump(mode="json") for asset in result])


@router.post("/assets", status_code=201)
def create_asset(
    body: CreateAssetRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    store: Annotated[MetadataStore, Depends(get_store)],
    backend: Annotated[StorageBackend, Depends(get_storage_backend)],
) -> Response:
    """Create one asset. The body is its total size when an original was given."""
    total_size = assets_service.create_asset(store, backend, viewer, body)
    return size_response(total_size, status_code=201)


@router.patch("/assets")
def patch_assets(
    body: PatchAssetsRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    store: Annotated[MetadataStore, Depends(get_store)],
    backend: Annotated[StorageBackend, Depends(get_storage_backend)],
) -> dict:
    """Create a batch of assets, then delete a batch."""
    sizes = assets_service.patch_assets(store, backend, viewer, body.create, body.delete)
    return success_response(sizes)


@router.patch("/assets/original")
def attach_original_paths(
    body: Annotated[dict[str, str], Body()],
    viewer: Annotated[Viewer, Depends(get_viewer)],
    store: Annotated[MetadataStore, Depends(get_store)],
    backend: Annotated[StorageBackend, Depends(get_storage_backend)],
) -> dict:
    """Attach originals to several assets. Body maps asset id to original locator."""
    sizes = assets_service.attach_original_paths(store, backend, viewer, body)
    return success_response(sizes)


@router.patch("/assets/originalfilenames", status_code=204)
def set_original_filenames(
    body: Annotated[dict[str, str], Body()],
    viewer: Annotated[Viewer, Depends(get_viewer)],
    store: Annotated[MetadataStore, Depends(get_store)],
) -> Response:
    """Set original filenames. Body maps asset id to filename."""
    assets_service.set_original_filenames(store, viewer, body)
    return Response(status_code=204)


@router.put("/assets/{asset_id}/original")
def attach_original_path(
    asset_id: str,
    body: OriginalPathRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    store: Annotated[MetadataStore, Depends(get_store)],
    backend: Annotated[StorageBackend, Depends(get_storage_backend)],
) -> Response:
    total_size = assets_service.attach_original_path(
        store, backend, viewer, asset_id, body.remote_path_original
    )
    return size_response(total_size)


@router.put("/assets/{asset_id}/originalfilename", status_code=204)
def set_original_filename(
    asset_id: str,
    body: OriginalFilenameRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    store: Annotated[MetadataStore, Depends(get_store)],
) -> Response:
    assets_service.set_original_filename(store, viewer, asset_id, body.original_filename)
    return Response(status_code=204)
