"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

from datetime import datetime
from unittest.mock import MagicMock

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from karmabot.config import KarmaConfig
from karmabot.constants import UNKNOWN_NAME, make_handle
from karmabot.database.models import Base, Channel, Score, User
from karmabot.services.slack_service import SlackGateway

# Display names the fake Slack directory knows about.
NAMES = {
    "UALICE": "Alice Smith",
    "UBOB": "Bob Jones",
    "UCAROL": "Carol White",
    "UKARMABOT": "karmabot",
}
CHANNELS = {
    "CGENERAL": "general",
    "CRANDOM": "random",
}
BOT_ID = "UKARMABOT"


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with the user, channel and score tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used for the Slack webhook).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a transactional session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def cfg() -> KarmaConfig:
    return KarmaConfig()


@pytest.fixture
def gateway() -> MagicMock:
    """A SlackGateway double backed by the NAMES / CHANNELS tables."""
    gw = MagicMock(spec=SlackGateway)
    gw.resolve_display_name.side_effect = lambda user_id: NAMES.get(user_id, UNKNOWN_NAME)
    gw.resolve_channel_name.side_effect = lambda channel_id: CHANNELS.get(channel_id, UNKNOWN_NAME)
    gw.is_bot.side_effect = lambda user_id: user_id == BOT_ID
    gw.send_ephemeral.return_value = True
    gw.send_message.return_value = True
    return gw


@pytest.fixture
def add_score(db_engine: Engine):
    """Factory that writes one score event, creating users/channel as needed."""

    def _add(
        to_user: str,
        from_user: str,
        channel: str = "CGENERAL",
        timestamp: datetime | None = None,
        description: str | None = None,
    ) -> str:
        with Session(db_engine) as session:
            for user_id in (to_user, from_user):
                if session.get(User, user_id) is None:
                    name = NAMES.get(user_id, user_id)
                    session.add(User(user_id=user_id, user_name=name, user_handle=make_handle(name)))
            if session.get(Channel, channel) is None:
                session.add(Channel(channel_id=channel, channel_name=CHANNELS.get(channel, channel)))
            session.flush()
            score = Score(
                timestamp=timestamp or datetime.now(),
                to_user_id=to_user,
                from_user_id=from_user,
                channel_id=channel,
                description=description,
            )
            session.add(score)
            session.commit()
            return score.score_id

    return _add
