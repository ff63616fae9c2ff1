"""Pydantic request and response schemas."""

from photoshare.schemas.assets import (
    AssetOut,
    CreateAssetRequest,
    GroupAlbumOut,
    OriginalFilenameRequest,
    OriginalPathRequest,
    PatchAssetsRequest,
    SharedAssetOut,
)
from photoshare.schemas.groups import (
    AddMembersRequest,
    AmendGroupAssetsRequest,
    AmendSharingRequest,
    CreateGroupRequest,
    GroupInvite,
    GroupMemberOut,
    GroupOut,
    JoinGroupRequest,
)
from photoshare.schemas.info import ValidIdsRequest
from photoshare.schemas.users import (
    ContactMatchesOut,
    CreateUserRequest,
    PublicInfoRequest,
    UserOut,
)

__all__ = [
    "AddMembersRequest",
    "AmendGroupAssetsRequest",
    "AmendSharingRequest",
    "AssetOut",
    "ContactMatchesOut",
    "CreateAssetRequest",
    "CreateGroupRequest",
    "CreateUserRequest",
    "GroupAlbumOut",
    "GroupInvite",
    "GroupMemberOut",
    "GroupOut",
    "JoinGroupRequest",
    "OriginalFilenameRequest",
    "OriginalPathRequest",
    "PatchAssetsRequest",
    "PublicInfoRequest",
    "SharedAssetOut",
    "UserOut",
    "ValidIdsRequest",
]
