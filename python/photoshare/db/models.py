"""SQLAlchemy ORM models for photoshare.

Defines all metadata tables using SQLAlchemy 2.x declarative patterns.
Column types are kept portable (no dialect-specific types) so the same
models back PostgreSQL in production and SQLite in tests.
"""

from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

ID_LENGTH = 64


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class MembershipStatus(str, PyEnum):
    """Lifecycle of a user's membership in a group."""

    invited = "invited"
    joined = "joined"


class User(Base):
    """User account model.

    `subject` is the identity provider's subject claim; `id` is the public
    identifier other users see and address.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    subject: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    public_key: Mapped[str] = mapped_column(Text, nullable=False)
    # Encrypted client-side; opaque here.
    private_key: Mapped[str] = mapped_column(Text, nullable=False)
    schema_version: Mapped[str] = mapped_column(Text, nullable=False, default="1")
    phone_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    email_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    apple_id_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_users_phone_hash", "phone_hash"),
        Index("ix_users_email_hash", "email_hash"),
    )

    memberships: Mapped[list["GroupMembership"]] = relationship(
        "GroupMembership", back_populates="user", cascade="all, delete-orphan"
    )


class Group(Base):
    """Group model - a set of users sharing an album."""

    __tablename__ = "groups"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    memberships: Mapped[list["GroupMembership"]] = relationship(
        "GroupMembership", back_populates="group", cascade="all, delete-orphan"
    )
    album: Mapped[list["GroupAsset"]] = relationship(
        "GroupAsset", back_populates="group", cascade="all, delete-orphan"
    )


class GroupMembership(Base):
    """Membership edge (user, group) carrying the group key wrapped for that user."""

    __tablename__ = "group_memberships"

    user_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    group_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("groups.id", ondelete="CASCADE"),
        primary_key=True,
    )
    group_key: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        Text, nullable=False, default=MembershipStatus.invited.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('invited', 'joined')",
            name="ck_group_memberships_status",
        ),
        Index("ix_group_memberships_group_id", "group_id"),
    )

    user: Mapped["User"] = relationship("User", back_populates="memberships")
    group: Mapped["Group"] = relationship("Group", back_populates="memberships")


class Asset(Base):
    """Asset model - one encrypted media item and its stored representations.

    `remote_path` locates the low representation. `remote_path_original` and
    `total_size` are attached together once the original is uploaded.
    """

    __tablename__ = "assets"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    owner_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(Text, nullable=False, default="photo")
    remote_path: Mapped[str] = mapped_column(Text, nullable=False)
    remote_path_original: Mapped[str | None] = mapped_column(Text, nullable=True)
    create_date: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration: Mapped[str | None] = mapped_column(Text, nullable=True)
    original_filename: Mapped[str | None] = mapped_column(Text, nullable=True)
    original_uti: Mapped[str | None] = mapped_column(Text, nullable=True)
    pixel_width: Mapped[int] = mapped_column(Integer, nullable=False)
    pixel_height: Mapped[int] = mapped_column(Integer, nullable=False)
    md5: Mapped[str] = mapped_column(Text, nullable=False, default="")
    key: Mapped[str] = mapped_column(Text, nullable=False)
    total_size: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "pixel_width <> 0 AND pixel_height <> 0",
            name="ck_assets_pixel_dimensions",
        ),
    )

    groups: Mapped[list["GroupAsset"]] = relationship(
        "GroupAsset", back_populates="asset", cascade="all, delete-orphan"
    )


class GroupAsset(Base):
    """Album edge (group, asset).

    A row places the asset in the group's album. A non-NULL `shared_key`
    (the asset key wrapped for the group) makes it visible to members.
    """

    __tablename__ = "group_assets"

    group_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("groups.id", ondelete="CASCADE"),
        primary_key=True,
    )
    asset_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("assets.id", ondelete="CASCADE"),
        primary_key=True,
    )
    shared_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (Index("ix_group_assets_asset_id", "asset_id"),)

    group: Mapped["Group"] = relationship("Group", back_populates="album")
    asset: Mapped["Asset"] = relationship("Asset", back_populates="groups")
