"""
tests/test_slack_service.py — Slack Gateway Tests
==================================================
The WebClient is a MagicMock; no network traffic.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from karmabot.constants import UNKNOWN_NAME
from karmabot.services.slack_service import SlackGateway

MEMBERS = [
    {"id": "UALICE", "name": "alice", "profile": {"real_name": "Alice Smith"}},
    {"id": "UBOB", "name": "bob", "profile": {"real_name": ""}},
    {"id": "UKARMABOT", "name": "karmabot", "is_bot": True, "profile": {"real_name": "karmabot"}},
]


def _api_error(message: str = "ratelimited") -> SlackApiError:
    return SlackApiError(message, {"ok": False, "error": message})


@pytest.fixture
def client() -> MagicMock:
    client = MagicMock(spec=WebClient)
    client.users_list.return_value = {"members": MEMBERS, "response_metadata": {"next_cursor": ""}}
    client.conversations_info.return_value = {"channel": {"id": "CGENERAL", "name": "general"}}
    return client


@pytest.fixture
def gateway(client) -> SlackGateway:
    return SlackGateway(client, user_cache_ttl=600)


class TestDirectory:
    def test_real_name_preferred(self, gateway):
        assert gateway.resolve_display_name("UALICE") == "Alice Smith"

    def test_username_fallback(self, gateway):
        assert gateway.resolve_display_name("UBOB") == "bob"

    def test_unknown_user_refreshes_once(self, gateway, client):
        assert gateway.resolve_display_name("UGHOST") == UNKNOWN_NAME
        assert client.users_list.call_count == 2

    def test_directory_is_cached(self, gateway, client):
        gateway.resolve_display_name("UALICE")
        gateway.is_bot("UKARMABOT")
        assert client.users_list.call_count == 1

    def test_invalidate_forces_reload(self, gateway, client):
        gateway.resolve_display_name("UALICE")
        gateway.invalidate()
        gateway.resolve_display_name("UALICE")
        assert client.users_list.call_count == 2

    def test_stale_directory_reloads(self, client):
        gateway = SlackGateway(client, user_cache_ttl=600)
        with patch("karmabot.services.slack_service.time.monotonic", side_effect=[1000.0, 1700.0]):
            gateway.is_bot("UALICE")
            gateway.is_bot("UALICE")
        assert client.users_list.call_count == 2

    def test_failed_refresh_waits_for_next_ttl(self, client):
        client.users_list.side_effect = [
            {"members": MEMBERS, "response_metadata": {"next_cursor": ""}},
            _api_error(),
        ]
        gateway = SlackGateway(client, user_cache_ttl=600)
        with patch(
            "karmabot.services.slack_service.time.monotonic",
            side_effect=[1000.0, 1700.0, 1800.0],
        ):
            assert gateway.is_bot("UKARMABOT")
            assert gateway.is_bot("UKARMABOT")
            assert gateway.is_bot("UKARMABOT")
        assert client.users_list.call_count == 2

    def test_pagination(self, client):
        client.users_list.side_effect = [
            {"members": MEMBERS[:1], "response_metadata": {"next_cursor": "page2"}},
            {"members": MEMBERS[1:], "response_metadata": {"next_cursor": ""}},
        ]
        directory = SlackGateway(client).get_user_directory()
        assert set(directory) == {"UALICE", "UBOB", "UKARMABOT"}
        assert client.users_list.call_args_list[1].kwargs["cursor"] == "page2"

    def test_failed_load_keeps_previous_snapshot(self, gateway, client):
        gateway.get_user_directory()
        client.users_list.side_effect = _api_error()
        assert "UALICE" in gateway.get_user_directory(refresh=True)

    def test_failed_first_load_is_empty(self, gateway, client):
        client.users_list.side_effect = _api_error()
        assert gateway.get_user_directory() == {}
        assert gateway.resolve_display_name("UALICE") == UNKNOWN_NAME

    def test_is_bot(self, gateway):
        assert gateway.is_bot("UKARMABOT")
        assert not gateway.is_bot("UALICE")
        assert not gateway.is_bot("UGHOST")


class TestChannels:
    def test_channel_name(self, gateway, client):
        assert gateway.resolve_channel_name("CGENERAL") == "general"
        client.conversations_info.assert_called_once_with(channel="CGENERAL")

    def test_channel_not_found(self, gateway, client):
        client.conversations_info.side_effect = _api_error("channel_not_found")
        assert gateway.resolve_channel_name("CGONE") == UNKNOWN_NAME


class TestSending:
    def test_ephemeral_text(self, gateway, client):
        assert gateway.send_ephemeral("hi", "CGENERAL", "UALICE")
        client.chat_postEphemeral.assert_called_once_with(channel="CGENERAL", user="UALICE", text="hi")

    def test_message_with_attachments(self, gateway, client):
        payload = {"attachments": [{"text": "board"}]}
        assert gateway.send_message(payload, "CGENERAL")
        client.chat_postMessage.assert_called_once_with(channel="CGENERAL", attachments=[{"text": "board"}])

    def test_send_failure_returns_false(self, gateway, client):
        client.chat_postMessage.side_effect = _api_error("not_in_channel")
        assert not gateway.send_message("hi", "CGENERAL")
