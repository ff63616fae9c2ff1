"""Group membership and album sharing service.

Every mutation:
1. validates its input (no store call on failure),
2. performs one store mutation scoped to the viewer's membership,
3. on success only, notifies the other group members.

Notification is fire-and-forget. A member lookup that finds nobody skips
it, and delivery failures are logged and swallowed. Neither changes the
outcome reported to the caller.

A viewer without the membership a mutation requires gets
E_GROUP_NOT_FOUND, which does not reveal whether the group exists.
"""

from collections.abc import Sequence
from uuid import uuid4

from photoshare.auth.middleware import Viewer
from photoshare.db.store import MetadataStore, NoDataError, PersistenceError
from photoshare.errors import (
    ApiErrorCode,
    NotFoundError,
    NotFoundOrEmptyError,
    ValidationError,
)
from photoshare.logging import get_logger
from photoshare.schemas.assets import GroupAlbumOut
from photoshare.schemas.groups import GroupInvite, GroupMemberOut, GroupOut
from photoshare.services.faults import store_errors
from photoshare.services.notifications import NotificationKind, NotificationSink
from photoshare.services.validation import require_non_empty, require_uuid

logger = get_logger(__name__)

GROUP_ID_LABEL = "Group ID"


def _group_not_found() -> NotFoundError:
    return NotFoundError(ApiErrorCode.E_GROUP_NOT_FOUND, "Group not found")


# =============================================================================
# Notification fan-out
# =============================================================================


def send_notification(
    notifier: NotificationSink,
    user_ids: list[str],
    kind: NotificationKind,
    data: dict[str, str] | None = None,
) -> None:
    """Deliver one notification, logging and swallowing any failure."""
    if not user_ids:
        return
    try:
        notifier.notify(user_ids, kind, data)
    except Exception as e:
        logger.warning(
            "notification_failed", kind=kind.value, recipients=len(user_ids), error=str(e)
        )


def notify_group_members(
    store: MetadataStore,
    notifier: NotificationSink,
    viewer: Viewer,
    group_id: str,
    kind: NotificationKind,
) -> None:
    """Notify every member of a group except the viewer."""
    try:
        member_ids = store.get_group_member_ids(group_id, exclude_subject=viewer.subject)
    except NoDataError:
        return
    except PersistenceError as e:
        logger.warning(
            "notification_member_lookup_failed",
            group_id=group_id,
            kind=kind.value,
            error=str(e),
        )
        return

    send_notification(notifier, member_ids, kind, {"groupid": group_id})


# =============================================================================
# Groups and membership
# =============================================================================


def create_group(store: MetadataStore, viewer: Viewer, name: str, key: str) -> str:
    """Create a group with the viewer as its first joined member.

    Returns:
        The new group's id.
    """
    require_non_empty(name=name, key=key)

    group_id = str(uuid4())
    with store_errors("create_group", group_id=group_id):
        store.create_group(viewer.subject, group_id, name, key)

    logger.info("group_created", group_id=group_id)
    return group_id


def list_groups(store: MetadataStore, viewer: Viewer) -> list[GroupOut]:
    with store_errors("get_groups", no_data=NotFoundOrEmptyError("No groups")):
        return store.get_groups(viewer.subject)


def list_group_members(
    store: MetadataStore, viewer: Viewer, group_id: str
) -> list[GroupMemberOut]:
    """Other members of a group the viewer belongs to."""
    require_uuid(group_id, GROUP_ID_LABEL)
    with store_errors("get_users_in_group", no_data=NotFoundOrEmptyError("No members")):
        return store.get_users_in_group(viewer.subject, group_id)


def list_group_albums(store: MetadataStore, viewer: Viewer) -> list[GroupAlbumOut]:
    """Shared assets across every group the viewer has joined."""
    with store_errors(
        "get_assets_for_all_groups", no_data=NotFoundOrEmptyError("No shared assets")
    ):
        return store.get_assets_for_all_groups(viewer.subject)


def join_group(
    store: MetadataStore,
    notifier: NotificationSink,
    viewer: Viewer,
    group_id: str,
    key: str,
) -> None:
    """Accept an invitation, replacing the wrapped group key."""
    require_uuid(group_id, GROUP_ID_LABEL)
    require_non_empty(key=key)

    with store_errors("join_group", no_data=_group_not_found(), group_id=group_id):
        store.join_group(viewer.subject, group_id, key)

    logger.info("group_joined", group_id=group_id)
    notify_group_members(store, notifier, viewer, group_id, NotificationKind.USER_JOINED_GROUP)


def leave_group(
    store: MetadataStore,
    notifier: NotificationSink,
    viewer: Viewer,
    group_id: str,
) -> None:
    """Leave a group. The last member leaving deletes it."""
    require_uuid(group_id, GROUP_ID_LABEL)

    with store_errors("leave_group", no_data=_group_not_found(), group_id=group_id):
        store.leave_group(viewer.subject, group_id)

    logger.info("group_left", group_id=group_id)
    notify_group_members(store, notifier, viewer, group_id, NotificationKind.USER_LEFT_GROUP)


def add_members(
    store: MetadataStore,
    notifier: NotificationSink,
    viewer: Viewer,
    group_id: str,
    invites: Sequence[GroupInvite],
) -> list[str]:
    """Invite users, each with the group key wrapped for them.

    The invited users (not the existing members) receive the notification.

    Returns:
        Ids of the users actually invited.
    """
    require_uuid(group_id, GROUP_ID_LABEL)
    if not invites:
        raise ValidationError("Empty data supplied")
    for invite in invites:
        require_non_empty(user_id=invite.user_id, key=invite.key)

    with store_errors("add_users_to_group", no_data=_group_not_found(), group_id=group_id):
        invited = store.add_users_to_group(viewer.subject, group_id, invites)

    logger.info("group_members_invited", group_id=group_id, count=len(invited))
    send_notification(notifier, invited, NotificationKind.GROUP_INVITE, {"groupid": group_id})
    return invited


# =============================================================================
# Album and sharing
# =============================================================================


def amend_group_assets(
    store: MetadataStore,
    notifier: NotificationSink,
    viewer: Viewer,
    group_id: str,
    asset_ids: Sequence[str],
    *,
    add: bool,
) -> None:
    """Add the viewer's assets to a group album, or remove them."""
    require_uuid(group_id, GROUP_ID_LABEL)
    if not asset_ids:
        raise ValidationError("AssetIDs is empty")

    operation = "add_assets_to_group" if add else "remove_assets_from_group"
    with store_errors(operation, no_data=_group_not_found(), group_id=group_id):
        if add:
            store.add_assets_to_group(viewer.subject, group_id, asset_ids)
        else:
            store.remove_assets_from_group(viewer.subject, group_id, asset_ids)

    logger.info("group_album_amended", group_id=group_id, add=add, count=len(asset_ids))
    notify_group_members(
        store, notifier, viewer, group_id, NotificationKind.ASSETS_CHANGED_FOR_GROUP
    )


def amend_sharing(
    store: MetadataStore,
    notifier: NotificationSink,
    viewer: Viewer,
    group_id: str,
    asset_ids: Sequence[str],
    asset_keys: Sequence[str] = (),
    *,
    share: bool,
) -> None:
    """Share assets with a group, or withdraw them.

    Sharing needs one group-wrapped key per asset id, aligned by position.
    Unsharing only needs the ids.
    """
    require_uuid(group_id, GROUP_ID_LABEL)
    if not asset_ids:
        raise ValidationError("AssetIDs is empty")
    if share and (not asset_keys or len(asset_keys) != len(asset_ids)):
        raise ValidationError("AssetKeys must contain one key per asset id")

    operation = "share_assets" if share else "unshare_assets"
    with store_errors(operation, no_data=_group_not_found(), group_id=group_id):
        if share:
            store.share_assets(viewer.subject, group_id, asset_ids, asset_keys)
        else:
            store.unshare_assets(viewer.subject, group_id, asset_ids)

    logger.info("group_sharing_amended", group_id=group_id, share=share, count=len(asset_ids))
    kind = (
        NotificationKind.ASSETS_ADDED_TO_GROUP_BY_USER
        if share
        else NotificationKind.ASSETS_CHANGED_FOR_GROUP
    )
    notify_group_members(store, notifier, viewer, group_id, kind)
