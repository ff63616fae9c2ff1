"""Group-related Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

MembershipStatusValue = Literal["invited", "joined"]

__all__ = [
    "MembershipStatusValue",
    "CreateGroupRequest",
    "JoinGroupRequest",
    "GroupInvite",
    "AddMembersRequest",
    "AmendGroupAssetsRequest",
    "AmendSharingRequest",
    "GroupOut",
    "GroupMemberOut",
]

# =============================================================================
# Request Schemas
# =============================================================================


class CreateGroupRequest(BaseModel):
    """Request body for creating a group."""

    name: str = ""
    key: str = Field(default="", description="Group key wrapped for the creator")


class JoinGroupRequest(BaseModel):
    """Request body for accepting an invitation."""

    key: str = Field(default="", description="Group key re-wrapped by the joining user")


class GroupInvite(BaseModel):
    """One invited user and the group key wrapped for them."""

    user_id: str
    key: str


class AddMembersRequest(BaseModel):
    users: list[GroupInvite] = Field(default_factory=list)


class AmendGroupAssetsRequest(BaseModel):
    """Add assets to, or remove them from, a group album."""

    add: bool
    asset_ids: list[str] = Field(default_factory=list)


class AmendSharingRequest(BaseModel):
    """Share or unshare album assets.

    When sharing, `asset_keys[i]` is the key of `asset_ids[i]` wrapped for
    the group.
    """

    share: bool
    asset_ids: list[str] = Field(default_factory=list)
    asset_keys: list[str] = Field(default_factory=list)


# =============================================================================
# Response Schemas
# =============================================================================


class GroupOut(BaseModel):
    """A group as seen by one member."""

    id: str
    name: str
    key: str
    status: MembershipStatusValue


class GroupMemberOut(BaseModel):
    """Another member of a group."""

    id: str
    public_key: str
    status: MembershipStatusValue

    model_config = ConfigDict(from_attributes=True)
