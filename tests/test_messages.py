"""
tests/test_messages.py — Reply Text Tests
==========================================
"""

from __future__ import annotations

import random

import pytest

from karmabot.engine.messages import (
    MESSAGES,
    NO_USERS_ON_LEADERBOARD,
    THANKYOU_MESSAGES,
    Operation,
    get_random_message,
    help_text,
    leaderboard_attachment,
    leaderboard_link,
    thank_you,
)


class TestRandomMessage:
    def test_plus_message_shape(self):
        text = get_random_message("plus", "UBOB", 3, random.Random(1))
        assert text.endswith("*<@UBOB>* is now on 3 points.")

    def test_singular_point(self):
        assert get_random_message(Operation.MINUS, "UBOB", 1, random.Random(1)).endswith(
            "is now on 1 point."
        )

    def test_self_message_shape(self):
        text = get_random_message("selfPlus", "UALICE", rng=random.Random(2))
        assert text.startswith("<@UALICE> ")
        body = text.removeprefix("<@UALICE> ")
        assert any(body in s.messages for s in MESSAGES[Operation.SELF])

    def test_invalid_operation(self):
        with pytest.raises(ValueError, match="Invalid operation"):
            get_random_message("double", "UBOB")

    def test_pinned_rng_is_deterministic(self):
        a = get_random_message("plus", "UBOB", 2, random.Random(42))
        b = get_random_message("plus", "UBOB", 2, random.Random(42))
        assert a == b


def test_thank_you_mentions_user():
    text = thank_you("UALICE", random.Random(0))
    assert text.startswith("<@UALICE> ")
    assert text.removeprefix("<@UALICE> ") in THANKYOU_MESSAGES


def test_help_text_mentions_window():
    text = help_text("karmabot", 5)
    assert "`<@karmabot> undo`" in text
    assert "only works 5 minutes" in text
    assert "leaderboard" in text


class TestLeaderboardAttachment:
    def test_empty_leaderboard(self):
        payload = leaderboard_attachment([], "CGENERAL", "general")
        assert payload == {
            "attachments": [{"text": NO_USERS_ON_LEADERBOARD, "color": "danger"}]
        }

    def test_lines_and_link(self):
        payload = leaderboard_attachment(
            ["1. <@UBOB> [3 points] :muscle:"], "CGENERAL", "general", "https://karma.example.com"
        )
        attachment = payload["attachments"][0]
        assert attachment["color"] == "good"
        assert "<#CGENERAL|general>" in attachment["text"]
        assert attachment["fields"][0]["value"] == "1. <@UBOB> [3 points] :muscle:"
        assert "https://karma.example.com?channel=CGENERAL" in attachment["fields"][1]["value"]

    def test_no_link_without_url(self):
        payload = leaderboard_attachment(["1. <@UBOB> [3 points] :muscle:"], "CGENERAL", "general")
        assert len(payload["attachments"][0]["fields"]) == 1


def test_leaderboard_link_encodes_channel():
    assert leaderboard_link("https://k.example.com/lb", "C1 2") == "https://k.example.com/lb?channel=C1+2"
