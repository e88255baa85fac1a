"""
karmabot.services.slack_service — Slack Web API gateway
=========================================================

Everything the scoring core needs from Slack goes through
:class:`SlackGateway`:

* name lookups for lazily created users and channels,
* bot classification of a vote target,
* ephemeral and channel replies.

The ``users.list`` directory is cached in memory for
``user_cache_ttl_seconds`` and can be dropped explicitly with
:meth:`SlackGateway.invalidate` (e.g. on a ``team_join`` event).  Lookups
never raise for unknown identities; they fall back to ``"(unknown)"``.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from karmabot.constants import UNKNOWN_NAME

logger = logging.getLogger(__name__)

DEFAULT_USERS_PAGE_SIZE = 200


class SlackGateway:
    """Thin, cached wrapper over :class:`slack_sdk.WebClient`."""

    def __init__(self, client: WebClient, *, user_cache_ttl: float = 600) -> None:
        self.client = client
        self._user_cache_ttl = user_cache_ttl
        self._lock = threading.Lock()
        self._users: dict[str, dict[str, Any]] | None = None
        self._users_loaded_at = 0.0

    # -------------------------------------------------------------------
    # User directory
    # -------------------------------------------------------------------
    def _fetch_users(self) -> dict[str, dict[str, Any]]:
        users: dict[str, dict[str, Any]] = {}
        cursor: str | None = None
        while True:
            params: dict[str, Any] = {"limit": DEFAULT_USERS_PAGE_SIZE}
            if cursor:
                params["cursor"] = cursor
            response = self.client.users_list(**params)
            for member in response.get("members", []):
                users[member["id"]] = member
            cursor = (response.get("response_metadata") or {}).get("next_cursor")
            if not cursor:
                break
        logger.info("Slack user directory loaded: %d members", len(users))
        return users

    def get_user_directory(self, *, refresh: bool = False) -> dict[str, dict[str, Any]]:
        """Return the cached ``id → member`` map, reloading when stale.

        A failed reload keeps serving the previous snapshot (or an empty
        map), logs a warning and is not retried until the TTL runs out again.
        """
        with self._lock:
            now = time.monotonic()
            stale = now - self._users_loaded_at > self._user_cache_ttl
            if self._users is None or stale or refresh:
                try:
                    self._users = self._fetch_users()
                    self._users_loaded_at = now
                except SlackApiError as exc:
                    logger.warning("Could not load Slack user directory: %s", exc)
                    self._users_loaded_at = now
                    if self._users is None:
                        return {}
            return self._users

    def invalidate(self) -> None:
        """Drop the cached directory; the next lookup reloads it."""
        with self._lock:
            self._users = None
            self._users_loaded_at = 0.0

    def _find_user(self, user_id: str) -> dict[str, Any] | None:
        user = self.get_user_directory().get(user_id)
        if user is None:
            # New members appear between refreshes; retry once with a fresh list.
            user = self.get_user_directory(refresh=True).get(user_id)
        return user

    def is_bot(self, user_id: str) -> bool:
        user = self.get_user_directory().get(user_id)
        return bool(user and user.get("is_bot"))

    def resolve_display_name(self, user_id: str) -> str:
        """Real name of *user_id*, else their username, else ``"(unknown)"``."""
        user = self._find_user(user_id)
        if user is None:
            return UNKNOWN_NAME
        real_name = (user.get("profile") or {}).get("real_name")
        if not real_name:
            return user.get("name") or UNKNOWN_NAME
        return real_name

    def resolve_channel_name(self, channel_id: str) -> str:
        try:
            response = self.client.conversations_info(channel=channel_id)
        except SlackApiError as exc:
            logger.warning("Could not resolve channel %s: %s", channel_id, exc)
            return UNKNOWN_NAME
        return (response.get("channel") or {}).get("name") or UNKNOWN_NAME

    # -------------------------------------------------------------------
    # Outgoing messages
    # -------------------------------------------------------------------
    @staticmethod
    def _payload(message: str | dict, **base: str) -> dict[str, Any]:
        # A dict payload (attachments, blocks) is merged in place of ``text``.
        if isinstance(message, dict):
            return {**base, **message}
        return {**base, "text": message}

    def send_ephemeral(self, message: str | dict, channel_id: str, user_id: str) -> bool:
        """Post a reply only *user_id* can see.  Returns ``False`` on failure."""
        payload = self._payload(message, channel=channel_id, user=user_id)
        try:
            self.client.chat_postEphemeral(**payload)
        except SlackApiError as exc:
            logger.error("Error posting ephemeral reply to %s: %s", channel_id, exc)
            return False
        return True

    def send_message(self, message: str | dict, channel_id: str) -> bool:
        """Post a message visible to the whole channel.  Returns ``False`` on failure."""
        payload = self._payload(message, channel=channel_id)
        try:
            self.client.chat_postMessage(**payload)
        except SlackApiError as exc:
            logger.error("Error posting message to %s: %s", channel_id, exc)
            return False
        return True
