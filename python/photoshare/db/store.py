"""Metadata store.

All persistent state (users, groups, memberships, assets and album edges)
is read and written through the MetadataStore interface. Every operation
runs in its own short session and transaction; a mutation is atomic on
its own, but nothing spans two operations.

Outcomes:
    - a result (or None for mutations)
    - NoDataError: the query legitimately matched nothing, or the acting
      user lacks the membership the mutation is scoped to
    - PersistenceError: the database failed
"""

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Protocol

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from photoshare.auth.identity import ContactIdentifiers
from photoshare.db.models import (
    Asset,
    Group,
    GroupAsset,
    GroupMembership,
    MembershipStatus,
    User,
)
from photoshare.db.session import transaction
from photoshare.schemas.assets import (
    AssetOut,
    CreateAssetRequest,
    GroupAlbumOut,
    SharedAssetOut,
)
from photoshare.schemas.groups import GroupInvite, GroupMemberOut, GroupOut
from photoshare.schemas.users import UserOut
from photoshare.storage.locators import InvalidLocatorError, low_locator_for


class NoDataError(Exception):
    """The query matched nothing."""


class PersistenceError(Exception):
    """The metadata store failed."""


class MetadataStore(Protocol):
    """Primitive metadata operations consumed by the services.

    `subject` is always the acting user's identity-provider subject.
    """

    def create_user(
        self,
        subject: str,
        user_id: str,
        contacts: ContactIdentifiers,
        public_key: str,
        private_key: str,
        schema_version: str = "1",
    ) -> None: ...

    def get_user(self, subject: str) -> UserOut: ...

    def update_user_contact(self, subject: str, contacts: ContactIdentifiers) -> None: ...

    def create_group(self, subject: str, group_id: str, name: str, key: str) -> None: ...

    def get_groups(self, subject: str) -> list[GroupOut]: ...

    def join_group(self, subject: str, group_id: str, key: str) -> None: ...

    def add_users_to_group(
        self, subject: str, group_id: str, invites: Sequence[GroupInvite]
    ) -> list[str]: ...

    def get_users_in_group(self, subject: str, group_id: str) -> list[GroupMemberOut]: ...

    def get_group_member_ids(
        self, group_id: str, exclude_subject: str | None = None
    ) -> list[str]: ...

    def leave_group(self, subject: str, group_id: str) -> None: ...

    def create_asset(
        self, subject: str, asset: CreateAssetRequest, total_size: int | None
    ) -> None: ...

    def delete_assets(self, subject: str, asset_ids: Sequence[str]) -> list[str]: ...

    def add_path_for_original_asset(
        self, subject: str, asset_id: str, remote_path_original: str, total_size: int
    ) -> None: ...

    def set_original_filenames(self, subject: str, filenames: dict[str, str]) -> None: ...

    def add_assets_to_group(
        self, subject: str, group_id: str, asset_ids: Sequence[str]
    ) -> None: ...

    def remove_assets_from_group(
        self, subject: str, group_id: str, asset_ids: Sequence[str]
    ) -> None: ...

    def share_assets(
        self,
        subject: str,
        group_id: str,
        asset_ids: Sequence[str],
        asset_keys: Sequence[str],
    ) -> None: ...

    def unshare_assets(self, subject: str, group_id: str, asset_ids: Sequence[str]) -> None: ...

    def get_assets(self, subject: str) -> list[AssetOut]: ...

    def get_assets_for_all_groups(self, subject: str) -> list[GroupAlbumOut]: ...

    def get_public_info_for_users(
        self,
        ids: Sequence[str],
        phone_hashes: Sequence[str],
        email_hashes: Sequence[str],
    ) -> tuple[dict[str, str], list[str]]: ...

    def verify_identifiers(self, ids: Sequence[str]) -> list[str]: ...


# =============================================================================
# Query helpers
# =============================================================================


def _user_for_subject(db: Session, subject: str) -> User:
    user = db.scalar(select(User).where(User.subject == subject))
    if user is None:
        raise NoDataError(f"No user registered for subject {subject}")
    return user


def _membership(
    db: Session, user: User, group_id: str, *, joined_only: bool = True
) -> GroupMembership:
    membership = db.get(GroupMembership, {"user_id": user.id, "group_id": group_id})
    if membership is None:
        raise NoDataError(f"User {user.id} is not a member of group {group_id}")
    if joined_only and membership.status != MembershipStatus.joined.value:
        raise NoDataError(f"User {user.id} has not joined group {group_id}")
    return membership


def _owned_asset_ids(db: Session, user: User, asset_ids: Sequence[str]) -> list[str]:
    if not asset_ids:
        return []
    owned = set(
        db.scalars(
            select(Asset.id).where(Asset.owner_id == user.id, Asset.id.in_(list(asset_ids)))
        )
    )
    return [asset_id for asset_id in dict.fromkeys(asset_ids) if asset_id in owned]


def _asset_locators(asset: Asset) -> list[str]:
    locators = [asset.remote_path]
    if asset.remote_path_original:
        locators.append(asset.remote_path_original)
        try:
            locators.append(low_locator_for(asset.remote_path_original))
        except InvalidLocatorError:
            pass
    return list(dict.fromkeys(locators))


def _asset_out(asset: Asset) -> AssetOut:
    return AssetOut.model_validate(asset)


# =============================================================================
# SQL implementation
# =============================================================================


class SqlMetadataStore:
    """MetadataStore backed by SQLAlchemy."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        db = self._session_factory()
        try:
            with transaction(db):
                yield db
        except SQLAlchemyError as e:
            raise PersistenceError(f"{operation} failed: {e}") from e
        finally:
            db.close()

    # --- Users ---

    def create_user(
        self,
        subject: str,
        user_id: str,
        contacts: ContactIdentifiers,
        public_key: str,
        private_key: str,
        schema_version: str = "1",
    ) -> None:
        with self._session("create_user") as db:
            db.add(
                User(
                    id=user_id,
                    subject=subject,
                    public_key=public_key,
                    private_key=private_key,
                    schema_version=schema_version,
                    phone_hash=contacts.phone_number,
                    email_hash=contacts.email,
                    apple_id_hash=contacts.apple_id,
                )
            )

    def get_user(self, subject: str) -> UserOut:
        with self._session("get_user") as db:
            return UserOut.model_validate(_user_for_subject(db, subject))

    def update_user_contact(self, subject: str, contacts: ContactIdentifiers) -> None:
        with self._session("update_user_contact") as db:
            user = _user_for_subject(db, subject)
            user.phone_hash = contacts.phone_number
            user.email_hash = contacts.email
            user.apple_id_hash = contacts.apple_id

    # --- Groups and membership ---

    def create_group(self, subject: str, group_id: str, name: str, key: str) -> None:
        with self._session("create_group") as db:
            user = _user_for_subject(db, subject)
            db.add(Group(id=group_id, name=name))
            db.flush()
            db.add(
                GroupMembership(
                    user_id=user.id,
                    group_id=group_id,
                    group_key=key,
                    status=MembershipStatus.joined.value,
                )
            )

    def get_groups(self, subject: str) -> list[GroupOut]:
        with self._session("get_groups") as db:
            user = _user_for_subject(db, subject)
            rows = db.execute(
                select(Group, GroupMembership)
                .join(GroupMembership, GroupMembership.group_id == Group.id)
                .where(GroupMembership.user_id == user.id)
                .order_by(Group.created_at, Group.id)
            ).all()
            if not rows:
                raise NoDataError(f"User {user.id} has no groups")
            return [
                GroupOut(id=group.id, name=group.name, key=m.group_key, status=m.status)
                for group, m in rows
            ]

    def join_group(self, subject: str, group_id: str, key: str) -> None:
        with self._session("join_group") as db:
            user = _user_for_subject(db, subject)
            membership = _membership(db, user, group_id, joined_only=False)
            membership.group_key = key
            membership.status = MembershipStatus.joined.value

    def add_users_to_group(
        self, subject: str, group_id: str, invites: Sequence[GroupInvite]
    ) -> list[str]:
        """Invite users to a group.

        Unknown users and users already in the group are skipped.

        Returns:
            Ids of the users actually invited, in request order.
        """
        with self._session("add_users_to_group") as db:
            user = _user_for_subject(db, subject)
            _membership(db, user, group_id)

            invited: list[str] = []
            for invite in invites:
                if invite.user_id in invited or db.get(User, invite.user_id) is None:
                    continue
                existing = db.get(
                    GroupMembership, {"user_id": invite.user_id, "group_id": group_id}
                )
                if existing is not None:
                    continue
                db.add(
                    GroupMembership(
                        user_id=invite.user_id,
                        group_id=group_id,
                        group_key=invite.key,
                        status=MembershipStatus.invited.value,
                    )
                )
                invited.append(invite.user_id)
            return invited

    def get_users_in_group(self, subject: str, group_id: str) -> list[GroupMemberOut]:
        with self._session("get_users_in_group") as db:
            user = _user_for_subject(db, subject)
            _membership(db, user, group_id, joined_only=False)
            rows = db.execute(
                select(User.id, User.public_key, GroupMembership.status)
                .join(GroupMembership, GroupMembership.user_id == User.id)
                .where(GroupMembership.group_id == group_id, User.id != user.id)
                .order_by(GroupMembership.created_at, User.id)
            ).all()
            if not rows:
                raise NoDataError(f"Group {group_id} has no other members")
            return [
                GroupMemberOut(id=user_id, public_key=public_key, status=status)
                for user_id, public_key, status in rows
            ]

    def get_group_member_ids(
        self, group_id: str, exclude_subject: str | None = None
    ) -> list[str]:
        """Ids of all current members (invited or joined) of a group."""
        with self._session("get_group_member_ids") as db:
            query = (
                select(User.id)
                .join(GroupMembership, GroupMembership.user_id == User.id)
                .where(GroupMembership.group_id == group_id)
                .order_by(GroupMembership.created_at, User.id)
            )
            if exclude_subject is not None:
                query = query.where(User.subject != exclude_subject)
            member_ids = list(db.scalars(query))
            if not member_ids:
                raise NoDataError(f"Group {group_id} has no members to notify")
            return member_ids

    def leave_group(self, subject: str, group_id: str) -> None:
        """Remove the caller's membership; a group left empty is deleted."""
        with self._session("leave_group") as db:
            user = _user_for_subject(db, subject)
            membership = _membership(db, user, group_id, joined_only=False)
            db.delete(membership)
            db.flush()

            remaining = db.scalar(
                select(func.count())
                .select_from(GroupMembership)
                .where(GroupMembership.group_id == group_id)
            )
            if remaining == 0:
                db.execute(delete(GroupAsset).where(GroupAsset.group_id == group_id))
                db.execute(delete(Group).where(Group.id == group_id))

    # --- Assets ---

    def create_asset(
        self, subject: str, asset: CreateAssetRequest, total_size: int | None
    ) -> None:
        with self._session("create_asset") as db:
            user = _user_for_subject(db, subject)
            db.add(
                Asset(
                    id=asset.asset_id,
                    owner_id=user.id,
                    type=asset.type,
                    remote_path=asset.remote_path,
                    remote_path_original=asset.remote_path_original,
                    create_date=asset.create_date,
                    location=asset.location,
                    duration=asset.duration,
                    original_filename=asset.original_filename,
                    original_uti=asset.original_uti,
                    pixel_width=asset.pixel_width,
                    pixel_height=asset.pixel_height,
                    md5=asset.md5,
                    key=asset.key,
                    total_size=total_size,
                )
            )

    def delete_assets(self, subject: str, asset_ids: Sequence[str]) -> list[str]:
        """Delete the caller's assets among `asset_ids`.

        Returns:
            Storage locators of every representation of the deleted assets.
            Ids the caller does not own are ignored.
        """
        with self._session("delete_assets") as db:
            user = _user_for_subject(db, subject)
            owned_ids = _owned_asset_ids(db, user, asset_ids)
            if not owned_ids:
                return []

            assets = {
                asset.id: asset
                for asset in db.scalars(select(Asset).where(Asset.id.in_(owned_ids)))
            }
            locators: list[str] = []
            for asset_id in owned_ids:
                locators.extend(_asset_locators(assets[asset_id]))

            db.execute(delete(GroupAsset).where(GroupAsset.asset_id.in_(owned_ids)))
            db.execute(
                delete(Asset)
                .where(Asset.id.in_(owned_ids))
                .execution_options(synchronize_session=False)
            )
            return list(dict.fromkeys(locators))

    def add_path_for_original_asset(
        self, subject: str, asset_id: str, remote_path_original: str, total_size: int
    ) -> None:
        with self._session("add_path_for_original_asset") as db:
            user = _user_for_subject(db, subject)
            asset = db.get(Asset, asset_id)
            if asset is None or asset.owner_id != user.id:
                raise NoDataError(f"Asset {asset_id} not found")
            asset.remote_path_original = remote_path_original
            asset.total_size = total_size

    def set_original_filenames(self, subject: str, filenames: dict[str, str]) -> None:
        with self._session("set_original_filenames") as db:
            user = _user_for_subject(db, subject)
            for asset_id in _owned_asset_ids(db, user, list(filenames)):
                db.execute(
                    update(Asset)
                    .where(Asset.id == asset_id)
                    .values(original_filename=filenames[asset_id])
                )

    # --- Albums and sharing ---

    def add_assets_to_group(
        self, subject: str, group_id: str, asset_ids: Sequence[str]
    ) -> None:
        with self._session("add_assets_to_group") as db:
            user = _user_for_subject(db, subject)
            _membership(db, user, group_id)
            for asset_id in _owned_asset_ids(db, user, asset_ids):
                if db.get(GroupAsset, {"group_id": group_id, "asset_id": asset_id}) is None:
                    db.add(GroupAsset(group_id=group_id, asset_id=asset_id))

    def remove_assets_from_group(
        self, subject: str, group_id: str, asset_ids: Sequence[str]
    ) -> None:
        with self._session("remove_assets_from_group") as db:
            user = _user_for_subject(db, subject)
            _membership(db, user, group_id)
            owned_ids = _owned_asset_ids(db, user, asset_ids)
            if owned_ids:
                db.execute(
                    delete(GroupAsset).where(
                        GroupAsset.group_id == group_id,
                        GroupAsset.asset_id.in_(owned_ids),
                    )
                )

    def share_assets(
        self,
        subject: str,
        group_id: str,
        asset_ids: Sequence[str],
        asset_keys: Sequence[str],
    ) -> None:
        """Share assets with a group, adding them to its album if needed.

        `asset_keys` is aligned 1:1 with `asset_ids`.
        """
        with self._session("share_assets") as db:
            user = _user_for_subject(db, subject)
            _membership(db, user, group_id)
            keys = dict(zip(asset_ids, asset_keys, strict=True))
            for asset_id in _owned_asset_ids(db, user, asset_ids):
                edge = db.get(GroupAsset, {"group_id": group_id, "asset_id": asset_id})
                if edge is None:
                    db.add(
                        GroupAsset(
                            group_id=group_id, asset_id=asset_id, shared_key=keys[asset_id]
                        )
                    )
                else:
                    edge.shared_key = keys[asset_id]

    def unshare_assets(self, subject: str, group_id: str, asset_ids: Sequence[str]) -> None:
        with self._session("unshare_assets") as db:
            user = _user_for_subject(db, subject)
            _membership(db, user, group_id)
            owned_ids = _owned_asset_ids(db, user, asset_ids)
            if owned_ids:
                db.execute(
                    update(GroupAsset)
                    .where(
                        GroupAsset.group_id == group_id,
                        GroupAsset.asset_id.in_(owned_ids),
                    )
                    .values(shared_key=None)
                )

    def get_assets(self, subject: str) -> list[AssetOut]:
        with self._session("get_assets") as db:
            user = _user_for_subject(db, subject)
            assets = db.scalars(
                select(Asset)
                .where(Asset.owner_id == user.id)
                .order_by(Asset.created_at, Asset.id)
            ).all()
            if not assets:
                raise NoDataError(f"User {user.id} has no assets")
            return [_asset_out(asset) for asset in assets]

    def get_assets_for_all_groups(self, subject: str) -> list[GroupAlbumOut]:
        """Shared assets of every group the caller has joined, grouped by group."""
        with self._session("get_assets_for_all_groups") as db:
            user = _user_for_subject(db, subject)
            rows = db.execute(
                select(GroupAsset.group_id, GroupAsset.shared_key, Asset)
                .join(Asset, Asset.id == GroupAsset.asset_id)
                .join(
                    GroupMembership,
                    (GroupMembership.group_id == GroupAsset.group_id)
                    & (GroupMembership.user_id == user.id),
                )
                .where(
                    GroupMembership.status == MembershipStatus.joined.value,
                    GroupAsset.shared_key.is_not(None),
                )
                .order_by(GroupAsset.group_id, GroupAsset.created_at, Asset.id)
            ).all()
            if not rows:
                raise NoDataError(f"No shared assets for user {user.id}")

            albums: dict[str, list[SharedAssetOut]] = {}
            for group_id, shared_key, asset in rows:
                albums.setdefault(group_id, []).append(
                    SharedAssetOut(**_asset_out(asset).model_dump(), shared_key=shared_key)
                )
            return [
                GroupAlbumOut(group_id=group_id, assets=assets)
                for group_id, assets in albums.items()
            ]

    # --- Contact discovery ---

    def get_public_info_for_users(
        self,
        ids: Sequence[str],
        phone_hashes: Sequence[str],
        email_hashes: Sequence[str],
    ) -> tuple[dict[str, str], list[str]]:
        """Match identifiers in three spaces against known users.

        Returns:
            (existing, unmatched): public key by matched user id (each user
            once), and the input identifiers that matched nobody, in input
            order.
        """
        clauses = []
        if ids:
            clauses.append(User.id.in_(list(ids)))
        if phone_hashes:
            clauses.append(User.phone_hash.in_(list(phone_hashes)))
        if email_hashes:
            clauses.append(User.email_hash.in_(list(email_hashes)))
        if not clauses:
            raise NoDataError("No identifiers supplied")

        with self._session("get_public_info_for_users") as db:
            users = db.scalars(select(User).where(or_(*clauses)).order_by(User.id)).all()
            if not users:
                raise NoDataError("No users matched")

            existing = {user.id: user.public_key for user in users}
            matched_phones = {user.phone_hash for user in users if user.phone_hash}
            matched_emails = {user.email_hash for user in users if user.email_hash}

            unmatched: list[str] = []
            unmatched.extend(i for i in ids if i not in existing)
            unmatched.extend(p for p in phone_hashes if p not in matched_phones)
            unmatched.extend(e for e in email_hashes if e not in matched_emails)
            return existing, list(dict.fromkeys(unmatched))

    def verify_identifiers(self, ids: Sequence[str]) -> list[str]:
        if not ids:
            raise NoDataError("No identifiers supplied")
        with self._session("verify_identifiers") as db:
            known = set(db.scalars(select(User.id).where(User.id.in_(list(ids)))))
            valid = [user_id for user_id in dict.fromkeys(ids) if user_id in known]
            if not valid:
                raise NoDataError("No valid identifiers")
            return valid
