"""Push notification delivery.

Notifications are fire-and-forget: callers log delivery failures and never
let them change the outcome of the mutation that triggered them.
"""

from enum import Enum
from typing import Protocol

import httpx

from photoshare.logging import get_logger

logger = get_logger(__name__)

ONESIGNAL_TIMEOUT_S = 10.0


class NotificationKind(str, Enum):
    """Events pushed to group members."""

    USER_JOINED_GROUP = "user_joined_group"
    USER_LEFT_GROUP = "user_left_group"
    GROUP_INVITE = "group_invite"
    ASSETS_CHANGED_FOR_GROUP = "assets_changed_for_group"
    ASSETS_ADDED_TO_GROUP_BY_USER = "assets_added_to_group_by_user"


# Displayed text per event. Clients refresh from the `data` payload.
NOTIFICATION_MESSAGES: dict[NotificationKind, str] = {
    NotificationKind.USER_JOINED_GROUP: "A new member joined your group",
    NotificationKind.USER_LEFT_GROUP: "A member left your group",
    NotificationKind.GROUP_INVITE: "You have been invited to a group",
    NotificationKind.ASSETS_CHANGED_FOR_GROUP: "A group album was updated",
    NotificationKind.ASSETS_ADDED_TO_GROUP_BY_USER: "New photos were shared with your group",
}


class NotificationError(Exception):
    """Notification delivery failed."""


class NotificationSink(Protocol):
    """Delivers push notifications to users."""

    def notify(
        self,
        user_ids: list[str],
        kind: NotificationKind,
        data: dict[str, str] | None = None,
    ) -> None:
        """Send one notification to every user in `user_ids`.

        Raises:
            NotificationError: If delivery failed.
        """
        ...


class NullNotifier:
    """Drops every notification. Used when push credentials are not configured."""

    def notify(
        self,
        user_ids: list[str],
        kind: NotificationKind,
        data: dict[str, str] | None = None,
    ) -> None:
        logger.debug("notification_dropped", kind=kind.value, recipients=len(user_ids))


class OneSignalNotifier:
    """NotificationSink backed by the OneSignal REST API.

    Users are addressed by their public user id, registered by the client
    as the OneSignal external user id.
    """

    def __init__(
        self,
        app_id: str,
        api_key: str,
        url: str = "https://onesignal.com/api/v1/notifications",
        client: httpx.Client | None = None,
    ):
        self.app_id = app_id
        self.url = url
        self._api_key = api_key
        self._client = client or httpx.Client(timeout=ONESIGNAL_TIMEOUT_S)

    def _build_body(
        self, user_ids: list[str], kind: NotificationKind, data: dict[str, str] | None
    ) -> dict:
        return {
            "app_id": self.app_id,
            "include_external_user_ids": user_ids,
            "contents": {"en": NOTIFICATION_MESSAGES[kind]},
            "data": {"type": kind.value, **(data or {})},
        }

    def notify(
        self,
        user_ids: list[str],
        kind: NotificationKind,
        data: dict[str, str] | None = None,
    ) -> None:
        if not user_ids:
            return

        try:
            response = self._client.post(
                self.url,
                headers={"Authorization": f"Basic {self._api_key}"},
                json=self._build_body(user_ids, kind, data),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NotificationError(
                f"OneSignal returned status {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise NotificationError(f"OneSignal request failed: {e}") from e

        logger.info("notification_sent", kind=kind.value, recipients=len(user_ids))

    def close(self) -> None:
        self._client.close()
