"""
karmabot.constants — Shared Constants & Helpers
================================================

Single source of truth for identity-token matching and the small
presentation helpers shared by the ranking, reply and feed code.
"""

from __future__ import annotations

import re

# Value of a channel filter meaning "every channel".
ALL_CHANNELS = "all"

# Display fallback for identities/channels Slack cannot resolve.
UNKNOWN_NAME = "(unknown)"

# Decoration for the leader of a ranked list.
WINNER_MARKER_USER = ":muscle:"
WINNER_MARKER_THING = ":tada:"

# ---------------------------------------------------------------------------
# Identity tokens
# ---------------------------------------------------------------------------
_USER_ID_RE = re.compile(r"U[A-Z0-9]+")


def is_user(item: str) -> bool:
    """True if *item* looks like a Slack user ID, e.g. ``U12345678``."""
    return bool(_USER_ID_RE.search(item or ""))


def maybe_link_item(item: str) -> str:
    """Link user IDs with Slack mrkdwn (``<@U123>``); leave things as-is."""
    return f"<@{item}>" if is_user(item) else item


def make_handle(display_name: str) -> str:
    """Lower-case *display_name* with spaces removed: ``"Ada Lovelace"`` → ``"adalovelace"``."""
    return "".join(display_name.split(" ")).lower()


# ---------------------------------------------------------------------------
# Plurals
# ---------------------------------------------------------------------------
def is_plural(number: int) -> bool:
    """Anything but 1 or -1 takes a plural noun."""
    return abs(number) != 1


def format_points(score: int) -> str:
    return f"{score} point{'s' if is_plural(score) else ''}"
