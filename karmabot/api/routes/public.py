"""
karmabot.api.routes.public — Read-only endpoints for the web leaderboard
==========================================================================

Dates travel as Unix epoch seconds and are read as local time.  The
``channel`` parameter takes ``all``, one channel ID, or a comma-separated
list of IDs.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy import Engine

from karmabot.api.deps import get_config, get_engine
from karmabot.config import KarmaConfig
from karmabot.constants import ALL_CHANNELS
from karmabot.database.models import Direction
from karmabot.services import feed_service

router = APIRouter(tags=["public"])


def _from_epoch(value: int | None) -> datetime | None:
    return datetime.fromtimestamp(value) if value is not None else None


# ---------------------------------------------------------------------------
# GET /leaderboard
# ---------------------------------------------------------------------------
@router.get("/leaderboard")
def get_leaderboard(
    channel: str = Query(ALL_CHANNELS),
    start_date: int | None = Query(None, alias="startDate"),
    end_date: int | None = Query(None, alias="endDate"),
    engine: Engine = Depends(get_engine),
):
    """Ranked users for the window; all time when no dates are given."""
    ranked = feed_service.get_leaderboard(
        engine, channel, _from_epoch(start_date), _from_epoch(end_date)
    )
    return [asdict(r) for r in ranked]


# ---------------------------------------------------------------------------
# GET /channels
# ---------------------------------------------------------------------------
@router.get("/channels")
def get_channels(engine: Engine = Depends(get_engine)):
    return feed_service.get_channels(engine)


# ---------------------------------------------------------------------------
# GET /feed
# ---------------------------------------------------------------------------
@router.get("/feed")
def get_feed(
    channel: str = Query(ALL_CHANNELS),
    start_date: int | None = Query(None, alias="startDate"),
    end_date: int | None = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    items_per_page: int | None = Query(None, alias="itemsPerPage", ge=1, le=100),
    search: str | None = Query(None),
    engine: Engine = Depends(get_engine),
    cfg: KarmaConfig = Depends(get_config),
):
    """Paginated point feed, newest first.  Defaults to the current month."""
    feed = feed_service.get_feed(
        engine,
        channel,
        _from_epoch(start_date),
        _from_epoch(end_date),
        page=page,
        page_size=items_per_page or cfg.default_page_size,
        search=search,
        default_window=cfg.default_feed_window,
    )
    return asdict(feed)


# ---------------------------------------------------------------------------
# GET /profile
# ---------------------------------------------------------------------------
@router.get("/profile")
def get_profile(
    username: str = Query(..., min_length=1),
    direction: Direction = Query(Direction.ALL),
    channel: str = Query(ALL_CHANNELS),
    page: int | None = Query(None, ge=1),
    items_per_page: int | None = Query(None, alias="itemsPerPage", ge=1, le=100),
    search: str | None = Query(None),
    engine: Engine = Depends(get_engine),
    cfg: KarmaConfig = Depends(get_config),
):
    """Rank, totals, top voters, daily activity and feed for one user.

    Without ``page`` or ``itemsPerPage`` the whole feed is returned.
    """
    if page is not None and items_per_page is None:
        items_per_page = cfg.default_page_size
    profile = feed_service.get_profile(
        engine,
        username,
        direction,
        channel,
        page=page,
        page_size=items_per_page,
        search=search,
    )
    return asdict(profile)
