"""
karmabot.database.models — SQLAlchemy 2.0 Data Models
======================================================

Tables:
- user     — Slack members seen as voter or recipient (lazily created)
- channel  — Slack channels a vote happened in (lazily created)
- score    — One immutable row per point given; totals are COUNTs of rows

Timestamps are naive local server time so "today" and day buckets follow
the server's calendar.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all karmabot ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class Direction(enum.StrEnum):
    """Which side of a user's activity a profile feed shows."""
    RECEIVED = "received"
    GIVEN = "given"
    ALL = "all"


# ---------------------------------------------------------------------------
# Users: one row per Slack member
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "user"

    user_id: Mapped[str] = mapped_column(String(32), primary_key=True)  # Slack ID, e.g. U0123ABC
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    user_handle: Mapped[str] = mapped_column(String(255), nullable=False)
    banned_until: Mapped[datetime | None] = mapped_column(DateTime, default=None)

    __table_args__ = (
        Index("ix_user_handle", "user_handle"),
    )

    def __repr__(self) -> str:
        return f"<User id={self.user_id} name={self.user_name!r}>"


# ---------------------------------------------------------------------------
# Channels
# ---------------------------------------------------------------------------
class Channel(Base):
    __tablename__ = "channel"

    channel_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    channel_name: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<Channel id={self.channel_id} name={self.channel_name!r}>"


# ---------------------------------------------------------------------------
# Score: append-only point transfer, undo deletes the row
# ---------------------------------------------------------------------------
class Score(Base):
    __tablename__ = "score"

    score_id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.now
    )
    to_user_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("user.user_id"), nullable=False
    )
    from_user_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("user.user_id"), nullable=False
    )
    channel_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("channel.channel_id"), nullable=False
    )
    description: Mapped[str | None] = mapped_column(Text, default=None)

    recipient: Mapped[User] = relationship(foreign_keys=[to_user_id])
    voter: Mapped[User] = relationship(foreign_keys=[from_user_id])
    channel: Mapped[Channel] = relationship()

    __table_args__ = (
        Index("ix_score_to_user", "to_user_id"),
        Index("ix_score_from_user", "from_user_id"),
        Index("ix_score_channel", "channel_id"),
        Index("ix_score_timestamp", "timestamp"),
    )

    def __repr__(self) -> str:
        return (
            f"<Score id={self.score_id} {self.from_user_id}→{self.to_user_id} "
            f"ch={self.channel_id}>"
        )
