"""
karmabot.engine.ranking — Competition ranking of aggregated scores
===================================================================

Ranks items by their scores, returning them as human-readable lines for
Slack or as records for the web leaderboard.  Items which draw share a
rank and the next rank is skipped: two users on 54 are both 1st, the next
user on 52 is 3rd and the one after on 34 is 4th.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from karmabot.constants import (
    WINNER_MARKER_THING,
    WINNER_MARKER_USER,
    format_points,
    is_user,
    maybe_link_item,
)

__all__ = ["ScoreRow", "RankedItem", "rank_items"]

ITEM_TYPES = ("users", "things")
FORMATS = ("slack", "object")


@dataclass(frozen=True, slots=True)
class ScoreRow:
    """One aggregated (item, score) pair as returned by the store."""
    item: str
    score: int
    name: str | None = None  # Stored display name, when the item is a user


@dataclass(frozen=True, slots=True)
class RankedItem:
    rank: int
    item: str       # Display name
    score: str      # "3 points"
    item_id: str    # Raw identifier


def _title(text: str) -> str:
    return text[:1].upper() + text[1:]


def rank_items(
    scores: Iterable[ScoreRow],
    item_type: str = "users",
    fmt: str = "slack",
) -> list[str] | list[RankedItem]:
    """Rank *scores* (already sorted by score, descending).

    Parameters
    ----------
    scores:
        Aggregated rows, highest score first.
    item_type:
        ``"users"`` keeps only Slack user IDs, ``"things"`` only free-text
        items.  A mixed ranking is never produced.
    fmt:
        ``"slack"`` → ``"1. <@U1> [3 points] :muscle:"`` lines.
        ``"object"`` → :class:`RankedItem` records.
    """
    if item_type not in ITEM_TYPES:
        raise ValueError(f"item_type must be one of {ITEM_TYPES}, got {item_type!r}")
    if fmt not in FORMATS:
        raise ValueError(f"fmt must be one of {FORMATS}, got {fmt!r}")

    want_users = item_type == "users"
    items: list = []
    last_score: int | None = None
    last_rank = 0

    for row in scores:
        row_is_user = is_user(row.item)
        if row_is_user != want_users:
            continue

        rank = last_rank if row.score == last_score else len(items) + 1

        if fmt == "slack":
            line = f"{rank}. {_title(maybe_link_item(row.item))} [{format_points(row.score)}]"
            if not items:
                line += " " + (WINNER_MARKER_USER if row_is_user else WINNER_MARKER_THING)
            items.append(line)
        else:
            display = row.name if row_is_user and row.name else row.item
            items.append(RankedItem(
                rank=rank,
                item=_title(display),
                score=format_points(row.score),
                item_id=row.item,
            ))

        last_rank = rank
        last_score = row.score

    return items
