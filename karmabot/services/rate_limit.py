"""
karmabot.services.rate_limit — Daily vote ceiling
==================================================

A voter may cast at most ``daily_vote_limit`` points per calendar day
(server local time).  The count comes straight from the score table, so
undone votes no longer count against the voter.

This is a soft limit: the check and the vote that follows are separate
statements, so two votes racing at the ceiling can both be accepted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, select

from karmabot.database.engine import get_session
from karmabot.database.models import Score
from karmabot.engine.messages import DAILY_LIMIT_REACHED

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    allowed: bool
    message: str | None = None
    votes_today: int = 0


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def count_votes_today(engine: Engine, voter_id: str, now: datetime | None = None) -> int:
    """Score events cast by *voter_id* since local midnight."""
    since = start_of_day(now or datetime.now())
    with get_session(engine) as session:
        return session.scalar(
            select(func.count(Score.score_id)).where(
                Score.from_user_id == voter_id,
                Score.timestamp >= since,
            )
        ) or 0


def check_daily_limit(
    engine: Engine,
    voter_id: str,
    limit: int,
    now: datetime | None = None,
) -> RateLimitResult:
    """Decide whether *voter_id* may cast one more vote today."""
    votes_today = count_votes_today(engine, voter_id, now)
    if votes_today + 1 > limit:
        logger.info(
            "Daily limit reached for %s (%d/%d)", voter_id, votes_today, limit
        )
        return RateLimitResult(
            allowed=False, message=DAILY_LIMIT_REACHED, votes_today=votes_today
        )
    return RateLimitResult(allowed=True, votes_today=votes_today)
