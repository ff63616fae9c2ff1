"""Asset lifecycle service.

Keeps asset metadata and the objects backing it consistent within the
limits of a non-transactional, two-store design:

- Creation validates first, then probes storage (when an original is
  supplied), then persists. A storage fault aborts before persistence.
- Deletion removes metadata first and then the objects it referenced. If
  the object deletion fails, the metadata is already gone and the objects
  are orphaned. The orphaned locators are logged.
- Batches run sequentially and stop at the first failure. Items processed
  before the failure stay committed.

Sizes are derived, never caller-supplied: each representation is billed at
no less than MIN_BILLABLE_BYTES.
"""

from collections.abc import Sequence

from photoshare.auth.middleware import Viewer
from photoshare.db.store import MetadataStore
from photoshare.errors import (
    ApiErrorCode,
    NotFoundError,
    NotFoundOrEmptyError,
    ValidationError,
)
from photoshare.logging import get_logger
from photoshare.schemas.assets import AssetOut, CreateAssetRequest
from photoshare.services.faults import storage_fault, store_errors
from photoshare.services.validation import require_non_empty, require_uuid
from photoshare.storage.client import StorageBackend, StorageError

logger = get_logger(__name__)

# 128 KiB minimum per stored representation
MIN_BILLABLE_BYTES = 131072

DEFAULT_ASSET_TYPE = "photo"

ASSET_ID_LABEL = "Asset ID"


def compute_total_size(original_bytes: int, low_bytes: int) -> int:
    """Billable size of an asset's two representations."""
    return max(original_bytes, MIN_BILLABLE_BYTES) + max(low_bytes, MIN_BILLABLE_BYTES)


def probe_total_size(backend: StorageBackend, original_locator: str) -> int:
    """Probe both representations behind an original locator and size them.

    Raises:
        StorageFaultError: If either probe fails (logged with the locator).
    """
    try:
        sizes = backend.filesizes(original_locator)
    except StorageError as e:
        raise storage_fault(e, "filesizes", locator=original_locator) from e
    return compute_total_size(sizes.original_bytes, sizes.low_bytes)


def validate_new_asset(asset: CreateAssetRequest) -> None:
    """Reject an asset that is missing its id, low path or key, or has a zero dimension."""
    require_non_empty(asset_id=asset.asset_id, remote_path=asset.remote_path, key=asset.key)
    if asset.pixel_width == 0 or asset.pixel_height == 0:
        raise ValidationError("Pixel width and height must be non-zero")


# =============================================================================
# Creation
# =============================================================================


def create_asset(
    store: MetadataStore,
    backend: StorageBackend,
    viewer: Viewer,
    asset: CreateAssetRequest,
) -> int | None:
    """Create one asset owned by the viewer.

    Returns:
        The total size, only when an original path was supplied.

    Raises:
        ValidationError: Invalid fields. Nothing was called.
        StorageFaultError: The size probe failed. Nothing was persisted.
        PersistenceFaultError: The store failed.
    """
    validate_new_asset(asset)

    total_size = None
    if asset.remote_path_original is not None:
        total_size = probe_total_size(backend, asset.remote_path_original)

    if not asset.type:
        asset = asset.model_copy(update={"type": DEFAULT_ASSET_TYPE})

    with store_errors("create_asset", asset_id=asset.asset_id):
        store.create_asset(viewer.subject, asset, total_size)

    logger.info("asset_created", asset_id=asset.asset_id, total_size=total_size)
    return total_size


def create_assets(
    store: MetadataStore,
    backend: StorageBackend,
    viewer: Viewer,
    assets: Sequence[CreateAssetRequest],
) -> dict[str, int]:
    """Create assets one at a time, stopping at the first failure.

    Returns:
        Total size by asset id, for the assets that had an original path.
    """
    sizes: dict[str, int] = {}
    for asset in assets:
        total_size = create_asset(store, backend, viewer, asset)
        if total_size is not None:
            sizes[asset.asset_id] = total_size
    return sizes


# =============================================================================
# Deletion
# =============================================================================


def delete_assets(
    store: MetadataStore,
    backend: StorageBackend,
    viewer: Viewer,
    asset_ids: Sequence[str],
) -> list[str]:
    """Delete the viewer's assets and the objects that back them.

    Returns:
        The storage locators that were deleted.

    Raises:
        ValidationError: Empty id list.
        PersistenceFaultError: Metadata deletion failed. Storage untouched.
        StorageFaultError: Object deletion failed after the metadata was removed.
    """
    if not asset_ids:
        raise ValidationError("AssetIDs is empty")

    with store_errors("delete_assets", count=len(asset_ids)):
        locators = store.delete_assets(viewer.subject, asset_ids)

    try:
        backend.delete(locators)
    except StorageError as e:
        raise storage_fault(e, "delete", orphaned_locators=locators) from e

    logger.info("assets_deleted", requested=len(asset_ids), objects=len(locators))
    return locators


def patch_assets(
    store: MetadataStore,
    backend: StorageBackend,
    viewer: Viewer,
    create: Sequence[CreateAssetRequest],
    delete: Sequence[str],
) -> dict[str, int]:
    """Create a batch, then delete a batch. A creation failure skips the deletes.

    Returns:
        Total size by asset id for created assets with an original path.
    """
    sizes: dict[str, int] = {}
    if create:
        sizes = create_assets(store, backend, viewer, create)
    if delete:
        delete_assets(store, backend, viewer, delete)
    return sizes


# =============================================================================
# Original representation and filenames
# =============================================================================


def _attach_original(
    store: MetadataStore,
    backend: StorageBackend,
    viewer: Viewer,
    asset_id: str,
    remote_path_original: str,
) -> int:
    require_non_empty(remote_path_original=remote_path_original)

    total_size = probe_total_size(backend, remote_path_original)
    with store_errors(
        "add_path_for_original_asset",
        no_data=NotFoundError(ApiErrorCode.E_NOT_FOUND, "Asset not found"),
        asset_id=asset_id,
    ):
        store.add_path_for_original_asset(
            viewer.subject, asset_id, remote_path_original, total_size
        )

    logger.info("asset_original_attached", asset_id=asset_id, total_size=total_size)
    return total_size


def attach_original_path(
    store: MetadataStore,
    backend: StorageBackend,
    viewer: Viewer,
    asset_id: str,
    remote_path_original: str,
) -> int:
    """Record an uploaded original on an existing asset addressed by UUID.

    Returns:
        The asset's total size, now that both representations exist.
    """
    require_uuid(asset_id, ASSET_ID_LABEL)
    return _attach_original(store, backend, viewer, asset_id, remote_path_original)


def attach_original_paths(
    store: MetadataStore,
    backend: StorageBackend,
    viewer: Viewer,
    paths: dict[str, str],
) -> dict[str, int]:
    """Attach originals to several assets, stopping at the first failure.

    Keys are the client ids the assets were created with, which need not
    be UUIDs.
    """
    if not paths:
        raise ValidationError("payload is empty")

    sizes: dict[str, int] = {}
    for asset_id, remote_path_original in paths.items():
        sizes[asset_id] = _attach_original(
            store, backend, viewer, asset_id, remote_path_original
        )
    return sizes


def set_original_filenames(
    store: MetadataStore, viewer: Viewer, filenames: dict[str, str]
) -> None:
    """Overwrite the original filename of each listed asset. Idempotent."""
    if not filenames:
        raise ValidationError("payload is empty")

    with store_errors("set_original_filenames", count=len(filenames)):
        store.set_original_filenames(viewer.subject, filenames)


def set_original_filename(
    store: MetadataStore, viewer: Viewer, asset_id: str, filename: str
) -> None:
    require_uuid(asset_id, ASSET_ID_LABEL)
    set_original_filenames(store, viewer, {asset_id: filename})


# =============================================================================
# Reads
# =============================================================================


def list_assets(store: MetadataStore, viewer: Viewer) -> list[AssetOut]:
    with store_errors("get_assets", no_data=NotFoundOrEmptyError("No assets")):
        return store.get_assets(viewer.subject)
