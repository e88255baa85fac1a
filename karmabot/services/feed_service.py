"""
karmabot.services.feed_service — Leaderboard, Feed & Profile Queries
=====================================================================

Read-only aggregation over the score table.  Three query shapes:

* **Top scores** — points per recipient, highest first (feeds
  :func:`karmabot.engine.ranking.rank_items`).
* **Feed** — every point with voter, recipient and channel names, newest
  first, paginated and searchable by voter name.
* **Profile** — one user's rank, totals, who gives them points, and a
  day-by-day received/sent activity series.

All three accept a channel filter: ``"all"``, one channel ID, or a
comma-separated list of IDs (OR-combined).  Filters, dates and search text
are always bound parameters.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import ColumnElement, Select, and_, func, or_, select
from sqlalchemy.orm import Session, aliased

from karmabot.constants import ALL_CHANNELS, UNKNOWN_NAME
from karmabot.database.engine import get_session
from karmabot.database.models import Channel, Direction, Score, User
from karmabot.engine.ranking import RankedItem, ScoreRow, rank_items

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20

Recipient = aliased(User, name="recipient")
Voter = aliased(User, name="voter")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class FeedEntry:
    score_id: str
    timestamp: datetime
    to_user: str
    from_user: str
    channel_name: str
    description: str | None


@dataclass(frozen=True, slots=True)
class FeedPage:
    count: int
    rows: list[FeedEntry]


@dataclass(frozen=True, slots=True)
class ActivityPoint:
    date: str  # YYYY-MM-DD
    received: int
    sent: int


@dataclass(frozen=True, slots=True)
class VoterShare:
    name: str
    value: int


@dataclass(slots=True)
class UserProfile:
    username: str
    user_id: str | None
    name: str
    rank: int = 0
    received_total: int = 0
    given_total: int = 0
    received_by_voter: list[VoterShare] = field(default_factory=list)
    activity: list[ActivityPoint] = field(default_factory=list)
    count: int = 0
    feed: list[FeedEntry] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Filter helpers
# ---------------------------------------------------------------------------
def parse_channel_filter(channel_filter: str | Iterable[str] | None) -> list[str] | None:
    """Normalise a channel filter to a list of IDs, or ``None`` for all channels."""
    if channel_filter is None:
        return None
    if isinstance(channel_filter, str):
        parts = channel_filter.split(",")
    else:
        parts = list(channel_filter)
    ids = [p.strip() for p in parts if p and p.strip()]
    if not ids or ALL_CHANNELS in ids:
        return None
    return ids


def _score_conditions(
    channel_filter: str | Iterable[str] | None,
    start: datetime | None,
    end: datetime | None,
) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = []
    channel_ids = parse_channel_filter(channel_filter)
    if channel_ids is not None:
        conditions.append(Score.channel_id.in_(channel_ids))
    if start is not None:
        conditions.append(Score.timestamp >= start)
    if end is not None:
        conditions.append(Score.timestamp <= end)
    return conditions


def _joined(stmt: Select) -> Select:
    """Join a score select to the channel, recipient and voter rows."""
    return (
        stmt.select_from(Score)
        .join(Channel, Score.channel_id == Channel.channel_id)
        .join(Recipient, Score.to_user_id == Recipient.user_id)
        .join(Voter, Score.from_user_id == Voter.user_id)
    )


def _name_contains(column, search: str) -> ColumnElement[bool]:
    return column.icontains(search, autoescape=True)


def _page(stmt: Select, page: int | None, page_size: int | None) -> Select:
    """Apply LIMIT/OFFSET.  Only when both are ``None`` is the result unpaginated."""
    if page is None and page_size is None:
        return stmt
    if page is None:
        page = 1
    if page_size is None:
        page_size = DEFAULT_PAGE_SIZE
    if page < 1 or page_size < 1:
        raise ValueError(f"page and page_size must be positive (got {page}, {page_size})")
    return stmt.limit(page_size).offset((page - 1) * page_size)


def _day_key(value: Any) -> str:
    # func.date() returns a string on SQLite and a date on PostgreSQL/MySQL.
    if isinstance(value, (date, datetime)):
        return value.isoformat()[:10]
    return str(value)[:10]


def month_start(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _feed_query(
    session: Session,
    conditions: list[ColumnElement[bool]],
    page: int | None,
    page_size: int | None,
) -> FeedPage:
    count = session.scalar(
        _joined(select(func.count(Score.score_id))).where(*conditions)
    ) or 0

    rows = session.execute(
        _page(
            _joined(
                select(
                    Score.score_id,
                    Score.timestamp,
                    Recipient.user_name.label("to_user"),
                    Voter.user_name.label("from_user"),
                    Channel.channel_name,
                    Score.description,
                )
            )
            .where(*conditions)
            .order_by(Score.timestamp.desc(), Score.score_id.desc()),
            page,
            page_size,
        )
    ).all()

    return FeedPage(
        count=count,
        rows=[
            FeedEntry(
                score_id=r.score_id,
                timestamp=r.timestamp,
                to_user=r.to_user,
                from_user=r.from_user,
                channel_name=r.channel_name,
                description=r.description,
            )
            for r in rows
        ],
    )


# ---------------------------------------------------------------------------
# Top scores
# ---------------------------------------------------------------------------
def get_top_scores(
    engine: Engine,
    channel_filter: str | Iterable[str] | None = ALL_CHANNELS,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[ScoreRow]:
    """Points per recipient within the window and channels, highest first.

    Defaults to all time.  Ties are ordered by recipient ID so the output is
    deterministic.
    """
    points = func.count(Score.score_id).label("points")
    with get_session(engine) as session:
        rows = session.execute(
            select(Score.to_user_id, User.user_name, points)
            .select_from(Score)
            .join(User, User.user_id == Score.to_user_id)
            .where(*_score_conditions(channel_filter, start, end))
            .group_by(Score.to_user_id, User.user_name)
            .order_by(points.desc(), Score.to_user_id)
        ).all()
    return [ScoreRow(item=r.to_user_id, score=r.points, name=r.user_name) for r in rows]


def get_leaderboard(
    engine: Engine,
    channel_filter: str | Iterable[str] | None = ALL_CHANNELS,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[RankedItem]:
    """Ranked users for the web leaderboard."""
    return rank_items(get_top_scores(engine, channel_filter, start, end), "users", "object")


def get_channels(engine: Engine) -> list[dict[str, str]]:
    """Every channel a vote has been recorded in, sorted by name."""
    with get_session(engine) as session:
        rows = session.scalars(select(Channel).order_by(Channel.channel_name)).all()
        return [{"channel_id": c.channel_id, "channel_name": c.channel_name} for c in rows]


# ---------------------------------------------------------------------------
# Feed
# ---------------------------------------------------------------------------
def get_feed(
    engine: Engine,
    channel_filter: str | Iterable[str] | None = ALL_CHANNELS,
    start: datetime | None = None,
    end: datetime | None = None,
    *,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    search: str | None = None,
    default_window: str = "month",
    now: datetime | None = None,
) -> FeedPage:
    """Paginated feed of points, newest first, with the total match count.

    With no dates the feed covers the current calendar month
    (``default_window="month"``) or all time (``"all"``).  *search* matches
    the voter's display name, case-insensitively.
    """
    if start is None and end is None and default_window == "month":
        start = month_start(now or datetime.now())

    conditions = _score_conditions(channel_filter, start, end)
    if search:
        conditions.append(_name_contains(Voter.user_name, search))

    with get_session(engine) as session:
        return _feed_query(session, conditions, page, page_size)


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------
def merge_activity(
    received: Mapping[str, int],
    sent: Mapping[str, int],
) -> list[ActivityPoint]:
    """Merge two ``day → count`` maps into one chronological series.

    A day missing from one map counts as zero on that axis.
    """
    days = sorted(set(received) | set(sent))
    return [
        ActivityPoint(date=day, received=received.get(day, 0), sent=sent.get(day, 0))
        for day in days
    ]


def _daily_counts(session: Session, column, user_id: str, conditions) -> dict[str, int]:
    day = func.date(Score.timestamp).label("day")
    rows = session.execute(
        select(day, func.count(Score.score_id).label("cnt"))
        .where(column == user_id, *conditions)
        .group_by(day)
    ).all()
    return {_day_key(r.day): r.cnt for r in rows}


def find_user_by_handle(session: Session, username: str) -> User | None:
    return session.scalar(
        select(User).where(User.user_handle == username.lower()).limit(1)
    )


def _direction_condition(direction: Direction, user_id: str) -> ColumnElement[bool]:
    if direction is Direction.RECEIVED:
        return Score.to_user_id == user_id
    if direction is Direction.GIVEN:
        return Score.from_user_id == user_id
    return or_(Score.to_user_id == user_id, Score.from_user_id == user_id)


def get_profile(
    engine: Engine,
    username: str,
    direction: Direction | str = Direction.ALL,
    channel_filter: str | Iterable[str] | None = ALL_CHANNELS,
    *,
    page: int | None = None,
    page_size: int | None = None,
    search: str | None = None,
) -> UserProfile:
    """Full profile for the user whose handle is *username*.

    The feed is unpaginated unless *page* or *page_size* is given; a
    missing *page_size* then defaults to ``DEFAULT_PAGE_SIZE``.  An unknown handle or a user without activity yields zeros and empty
    series, never an error.
    """
    try:
        direction = Direction(direction)
    except ValueError:
        direction = Direction.ALL

    with get_session(engine) as session:
        user = find_user_by_handle(session, username)
        if user is None:
            logger.info("Profile requested for unknown handle %r", username)
            return UserProfile(username=username, user_id=None, name=UNKNOWN_NAME)

        user_id = user.user_id
        profile = UserProfile(username=username, user_id=user_id, name=user.user_name)
        channel_conditions = _score_conditions(channel_filter, None, None)

        profile.received_total = session.scalar(
            select(func.count(Score.score_id))
            .where(Score.to_user_id == user_id, *channel_conditions)
        ) or 0
        profile.given_total = session.scalar(
            select(func.count(Score.score_id))
            .where(Score.from_user_id == user_id, *channel_conditions)
        ) or 0

        points = func.count(Score.score_id).label("cnt")
        profile.received_by_voter = [
            VoterShare(name=r.user_name, value=r.cnt)
            for r in session.execute(
                select(Voter.user_name, points)
                .select_from(Score)
                .join(Voter, Score.from_user_id == Voter.user_id)
                .where(Score.to_user_id == user_id, *channel_conditions)
                .group_by(Score.from_user_id, Voter.user_name)
                .order_by(points.desc(), Voter.user_name)
            ).all()
        ]

        profile.activity = merge_activity(
            _daily_counts(session, Score.to_user_id, user_id, channel_conditions),
            _daily_counts(session, Score.from_user_id, user_id, channel_conditions),
        )

        feed_conditions = [_direction_condition(direction, user_id), *channel_conditions]
        if search:
            feed_conditions.append(or_(
                _name_contains(Voter.user_name, search),
                _name_contains(Recipient.user_name, search),
            ))
        feed = _feed_query(session, [and_(*feed_conditions)], page, page_size)
        profile.count = feed.count
        profile.feed = feed.rows

    for ranked in get_leaderboard(engine, channel_filter):
        if ranked.item_id == user_id:
            profile.rank = ranked.rank
            break

    return profile
