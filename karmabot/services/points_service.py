"""
karmabot.services.points_service — Applying & Reversing Votes
==============================================================

The only code that writes score events.

* Users and channels are created lazily the first time they appear.  The
  insert runs in a SAVEPOINT so two simultaneous first votes for the same
  person don't fail: the loser's ``IntegrityError`` is swallowed and the
  winner's row is used.
* A score is never stored; :func:`get_user_score` counts events.
* Undo deletes the event instead of writing a negative one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from karmabot.constants import make_handle
from karmabot.database.engine import get_session
from karmabot.database.models import Channel, Score, User

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from karmabot.services.slack_service import SlackGateway

logger = logging.getLogger(__name__)

NameResolver = Callable[[str], str]


# ---------------------------------------------------------------------------
# Lazy creation
# ---------------------------------------------------------------------------
def ensure_user(session: Session, user_id: str, resolve_name: NameResolver) -> User:
    """Fetch the User row, inserting it (with a Slack name lookup) if absent."""
    user = session.get(User, user_id)
    if user is not None:
        return user

    display_name = resolve_name(user_id)
    user = User(
        user_id=user_id,
        user_name=display_name,
        user_handle=make_handle(display_name),
    )
    try:
        with session.begin_nested():   # SAVEPOINT
            session.add(user)
    except IntegrityError:
        # Someone else created it between our read and insert.
        logger.debug("User %s created concurrently; re-reading", user_id)
        user = session.get(User, user_id, populate_existing=True)
    else:
        logger.info("Created user %s (%s)", user_id, display_name)
    return user


def ensure_channel(session: Session, channel_id: str, resolve_name: NameResolver) -> Channel:
    """Fetch the Channel row, inserting it (with a Slack name lookup) if absent."""
    channel = session.get(Channel, channel_id)
    if channel is not None:
        return channel

    channel = Channel(channel_id=channel_id, channel_name=resolve_name(channel_id))
    try:
        with session.begin_nested():
            session.add(channel)
    except IntegrityError:
        logger.debug("Channel %s created concurrently; re-reading", channel_id)
        channel = session.get(Channel, channel_id, populate_existing=True)
    else:
        logger.info("Created channel %s (#%s)", channel_id, channel.channel_name)
    return channel


# ---------------------------------------------------------------------------
# Derived score
# ---------------------------------------------------------------------------
def get_user_score(session: Session, user_id: str, channel_id: str) -> int:
    """Number of points *user_id* has received in *channel_id*."""
    return session.scalar(
        select(func.count(Score.score_id)).where(
            Score.to_user_id == user_id,
            Score.channel_id == channel_id,
        )
    ) or 0


def is_suspended(engine: Engine, user_id: str, now: datetime | None = None) -> datetime | None:
    """Return the user's ``banned_until`` if it lies in the future, else ``None``."""
    now = now or datetime.now()
    with get_session(engine) as session:
        banned_until = session.scalar(
            select(User.banned_until).where(User.user_id == user_id)
        )
    if banned_until is not None and banned_until > now:
        return banned_until
    return None


# ---------------------------------------------------------------------------
# Votes
# ---------------------------------------------------------------------------
def apply_vote(
    engine: Engine,
    gateway: SlackGateway,
    recipient_id: str,
    voter_id: str,
    channel_id: str,
    reason: str | None = None,
    *,
    now: datetime | None = None,
) -> int:
    """Record one point from *voter_id* to *recipient_id* and return the new total.

    1. Ensure both users exist (lazy create with a Slack name lookup).
    2. Ensure the channel exists.
    3. Insert the score event.
    4. Return the recipient's derived score in that channel.

    Self-votes must be filtered out by the caller before getting here.
    """
    with get_session(engine) as session:
        ensure_user(session, recipient_id, gateway.resolve_display_name)
        ensure_user(session, voter_id, gateway.resolve_display_name)
        ensure_channel(session, channel_id, gateway.resolve_channel_name)

        session.add(Score(
            timestamp=now or datetime.now(),
            to_user_id=recipient_id,
            from_user_id=voter_id,
            channel_id=channel_id,
            description=reason,
        ))
        session.flush()

        score = get_user_score(session, recipient_id, channel_id)

    logger.info("%s now on %d in %s", recipient_id, score, channel_id)
    return score


def reverse_vote(
    engine: Engine,
    voter_id: str,
    recipient_id: str,
    channel_id: str,
    window_seconds: int,
    *,
    now: datetime | None = None,
) -> int | None:
    """Delete *voter_id*'s newest point to *recipient_id* in *channel_id*.

    Only a vote cast within the last *window_seconds* (inclusive) qualifies.
    Returns the recipient's recomputed score, or ``None`` if no vote
    qualified (the window ran out).
    """
    cutoff = (now or datetime.now()) - timedelta(seconds=window_seconds)

    with get_session(engine) as session:
        score_id = session.scalar(
            select(Score.score_id)
            .where(
                Score.from_user_id == voter_id,
                Score.to_user_id == recipient_id,
                Score.channel_id == channel_id,
                Score.timestamp >= cutoff,
            )
            .order_by(Score.timestamp.desc())
            .limit(1)
        )
        if score_id is None:
            return None

        session.execute(delete(Score).where(Score.score_id == score_id))
        score = get_user_score(session, recipient_id, channel_id)

    logger.info("Undo by %s: %s now on %d in %s", voter_id, recipient_id, score, channel_id)
    return score
