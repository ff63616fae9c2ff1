"""User and contact-matching Pydantic schemas."""

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "CreateUserRequest",
    "UserOut",
    "PublicInfoRequest",
    "ContactMatchesOut",
]


class CreateUserRequest(BaseModel):
    """Request body for registering the caller."""

    public_key: str = Field(default="", description="Caller's public key")
    private_key: str = Field(default="", description="Caller's private key, encrypted client-side")


class UserOut(BaseModel):
    """The caller's own account, including their encrypted private key."""

    id: str
    public_key: str
    private_key: str
    schema_version: str

    model_config = ConfigDict(from_attributes=True)


class PublicInfoRequest(BaseModel):
    """Identifiers to resolve against known users.

    Phone numbers and emails must already be hashed by the client with the
    same digest the server applies to identity-provider contacts.
    """

    ids: list[str] = Field(default_factory=list)
    phone_hashes: list[str] = Field(default_factory=list)
    email_hashes: list[str] = Field(default_factory=list)


class ContactMatchesOut(BaseModel):
    """Result of contact resolution."""

    existing: dict[str, str] = Field(description="Matched user id -> public key")
    unmatched: list[str] = Field(description="Input identifiers that matched no user")
