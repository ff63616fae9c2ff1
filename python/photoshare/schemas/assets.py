"""Asset-related Pydantic schemas.

Contains request and response models for asset endpoints.
"""

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "CreateAssetRequest",
    "PatchAssetsRequest",
    "OriginalPathRequest",
    "OriginalFilenameRequest",
    "AssetOut",
    "SharedAssetOut",
    "GroupAlbumOut",
]

# =============================================================================
# Request Schemas
# =============================================================================


class CreateAssetRequest(BaseModel):
    """Request body for creating one asset.

    Emptiness and zero dimensions are checked by the asset service so that
    a batch reports the failing item rather than rejecting the whole body.
    """

    asset_id: str = ""
    type: str = ""
    remote_path: str = Field(default="", description="Locator of the low representation")
    remote_path_original: str | None = Field(
        default=None, description="Locator of the original representation, if uploaded"
    )
    create_date: str | None = None
    location: str | None = None
    duration: str | None = None
    original_filename: str | None = None
    original_uti: str | None = None
    pixel_width: int = 0
    pixel_height: int = 0
    md5: str = ""
    key: str = Field(default="", description="Asset key wrapped for the owner")


class PatchAssetsRequest(BaseModel):
    """Bulk create-then-delete request."""

    create: list[CreateAssetRequest] = Field(default_factory=list)
    delete: list[str] = Field(default_factory=list)


class OriginalPathRequest(BaseModel):
    """Request body for attaching an original representation to one asset."""

    remote_path_original: str = ""


class OriginalFilenameRequest(BaseModel):
    """Request body for setting one asset's original filename."""

    original_filename: str = ""


# =============================================================================
# Response Schemas
# =============================================================================


class AssetOut(BaseModel):
    """Response schema for an asset."""

    id: str
    owner_id: str
    type: str
    remote_path: str
    remote_path_original: str | None = None
    create_date: str | None = None
    location: str | None = None
    duration: str | None = None
    original_filename: str | None = None
    original_uti: str | None = None
    pixel_width: int
    pixel_height: int
    md5: str
    key: str
    total_size: int | None = None

    model_config = ConfigDict(from_attributes=True)


class SharedAssetOut(AssetOut):
    """An asset as seen through a group album, with the group-wrapped key."""

    shared_key: str


class GroupAlbumOut(BaseModel):
    """Shared assets of one group."""

    group_id: str
    assets: list[SharedAssetOut]
