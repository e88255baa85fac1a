"""
karmabot.services.karma_service — Inbound Slack event pipeline
================================================================

Takes one Slack event, decides what it means, updates the score store and
produces the reply.  The pipeline for a vote is::

    interpret → minus? → self-vote? → suspended? → daily limit
              → apply_vote → record in undo ledger → "plus" reply

``<@bot> undo`` pops the voter's ledger entry and reverses the newest
matching score inside the undo window.  ``help``, ``thanks`` and
``leaderboard`` only read.

:meth:`KarmaService.interpret_event` is pure decision-making plus store
access and returns a :class:`Reply`; :meth:`KarmaService.handle_event`
validates the raw event, calls it and delivers the reply through the
:class:`~karmabot.services.slack_service.SlackGateway`.
"""

from __future__ import annotations

import enum
import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from karmabot.engine.commands import (
    EventType,
    Help,
    Leaderboard,
    PlusMinus,
    Thanks,
    Undo,
    interpret,
)
from karmabot.engine.messages import (
    NOTHING_TO_UNDO,
    STORE_FAILURE,
    SUSPENDED,
    UNDO_EXPIRED,
    Operation,
    get_random_message,
    help_text,
    leaderboard_attachment,
    thank_you,
)
from karmabot.engine.ranking import rank_items
from karmabot.errors import StoreFailure
from karmabot.services.feed_service import get_top_scores
from karmabot.services.points_service import apply_vote, is_suspended, reverse_vote
from karmabot.services.rate_limit import check_daily_limit

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from karmabot.config import KarmaConfig
    from karmabot.engine.undo import UndoLedger
    from karmabot.services.slack_service import SlackGateway

logger = logging.getLogger(__name__)

# Events that change the user directory rather than carry a command.
DIRECTORY_EVENTS = frozenset({"team_join", "user_change"})


class Outcome(enum.StrEnum):
    """What an interpreted event ended up doing."""
    APPLIED = "applied"
    SELF_VOTE = "self_vote"
    SUSPENDED = "suspended"
    RATE_LIMITED = "rate_limited"
    UNDONE = "undone"
    NOTHING_TO_UNDO = "nothing_to_undo"
    EXPIRED = "expired"
    HELP = "help"
    THANKS = "thanks"
    LEADERBOARD = "leaderboard"


@dataclass(frozen=True, slots=True)
class Reply:
    """A message for Slack: ephemeral to *user_id*, or to the whole channel."""
    outcome: Outcome
    message: str | dict
    channel_id: str
    user_id: str
    ephemeral: bool = True


class KarmaService:
    """Owns the undo ledger and ties the scoring core to Slack."""

    def __init__(
        self,
        engine: Engine,
        cfg: KarmaConfig,
        gateway: SlackGateway,
        ledger: UndoLedger,
        rng: random.Random | None = None,
    ) -> None:
        self.engine = engine
        self.cfg = cfg
        self.gateway = gateway
        self.ledger = ledger
        self.rng = rng or random.Random()

    # -------------------------------------------------------------------
    # Interpretation
    # -------------------------------------------------------------------
    def interpret_event(
        self,
        event_type: str,
        text: str,
        voter_id: str,
        channel_id: str,
        *,
        now: datetime | None = None,
    ) -> Reply | None:
        """Act on one event and return the reply, or ``None`` for a no-op.

        Raises
        ------
        StoreFailure
            If the score store fails; nothing is retried.
        """
        command = interpret(event_type, text, self.gateway.is_bot)
        if command is None:
            return None

        match command:
            case PlusMinus():
                return self._vote(command, voter_id, channel_id, now)
            case Undo():
                return self._undo(voter_id, channel_id, now)
            case Help():
                return Reply(
                    Outcome.HELP,
                    help_text(self.cfg.bot_name, self.cfg.undo_window_minutes),
                    channel_id,
                    voter_id,
                )
            case Thanks():
                return Reply(
                    Outcome.THANKS,
                    thank_you(voter_id, self.rng),
                    channel_id,
                    voter_id,
                )
            case Leaderboard():
                return self._leaderboard(voter_id, channel_id)
        return None

    def _vote(
        self,
        command: PlusMinus,
        voter_id: str,
        channel_id: str,
        now: datetime | None,
    ) -> Reply | None:
        recipient_id = command.target

        if command.operation == "-":
            # Down votes are accepted by the parser but never scored.
            logger.debug("Minus vote from %s for %s ignored", voter_id, recipient_id)
            return None

        if recipient_id == voter_id:
            logger.info("Self-vote by %s in %s ignored", voter_id, channel_id)
            return Reply(
                Outcome.SELF_VOTE,
                get_random_message(Operation.SELF, voter_id, rng=self.rng),
                channel_id,
                voter_id,
            )

        banned_until = is_suspended(self.engine, voter_id, now)
        if banned_until is not None:
            logger.info("Suspended voter %s tried to vote", voter_id)
            return Reply(
                Outcome.SUSPENDED,
                SUSPENDED.format(until=banned_until),
                channel_id,
                voter_id,
            )

        limit = check_daily_limit(self.engine, voter_id, self.cfg.daily_vote_limit, now)
        if not limit.allowed:
            return Reply(Outcome.RATE_LIMITED, limit.message, channel_id, voter_id)

        score = apply_vote(
            self.engine,
            self.gateway,
            recipient_id,
            voter_id,
            channel_id,
            command.reason,
            now=now,
        )
        self.ledger.record(voter_id, recipient_id)

        return Reply(
            Outcome.APPLIED,
            get_random_message(Operation.PLUS, recipient_id, score, self.rng),
            channel_id,
            voter_id,
        )

    def _undo(self, voter_id: str, channel_id: str, now: datetime | None) -> Reply:
        recipient_id = self.ledger.pop(voter_id)
        if recipient_id is None:
            return Reply(
                Outcome.NOTHING_TO_UNDO,
                NOTHING_TO_UNDO.format(user=voter_id),
                channel_id,
                voter_id,
            )

        score = reverse_vote(
            self.engine,
            voter_id,
            recipient_id,
            channel_id,
            self.cfg.undo_window_seconds,
            now=now,
        )
        if score is None:
            logger.info("Undo by %s for %s outside the window", voter_id, recipient_id)
            return Reply(
                Outcome.EXPIRED,
                UNDO_EXPIRED.format(minutes=self.cfg.undo_window_minutes),
                channel_id,
                voter_id,
            )

        return Reply(
            Outcome.UNDONE,
            get_random_message(Operation.MINUS, recipient_id, score, self.rng),
            channel_id,
            voter_id,
        )

    def _leaderboard(self, voter_id: str, channel_id: str) -> Reply:
        lines = rank_items(get_top_scores(self.engine, channel_id), "users", "slack")
        attachment = leaderboard_attachment(
            lines[: self.cfg.leaderboard_limit],
            channel_id,
            self.gateway.resolve_channel_name(channel_id),
            self.cfg.leaderboard_url,
        )
        return Reply(Outcome.LEADERBOARD, attachment, channel_id, voter_id)

    # -------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------
    def deliver(self, reply: Reply) -> bool:
        if reply.ephemeral:
            return self.gateway.send_ephemeral(reply.message, reply.channel_id, reply.user_id)
        return self.gateway.send_message(reply.message, reply.channel_id)

    def handle_event(self, event: dict[str, Any]) -> Reply | None:
        """Validate a raw Slack ``event`` object, act on it and send the reply.

        Events without a type, with a subtype (edits, joins, bot posts) or
        without text are dropped with a warning.  A store failure is logged
        and answered with a generic apology so the voter isn't left waiting.
        """
        event_type = event.get("type")
        if not event_type:
            logger.warning("Dropping event without a type: %r", event)
            return None
        if event_type in DIRECTORY_EVENTS:
            logger.info("Slack %s event; dropping cached user directory", event_type)
            self.gateway.invalidate()
            return None
        if event.get("subtype"):
            logger.warning("Ignoring %s event with subtype %s", event_type, event["subtype"])
            return None
        if event.get("bot_id"):
            logger.debug("Ignoring %s event posted by bot %s", event_type, event["bot_id"])
            return None
        if event_type not in (EventType.MESSAGE, EventType.APP_MENTION):
            logger.warning("Unsupported event type %r", event_type)
            return None

        text = (event.get("text") or "").strip()
        user_id = event.get("user")
        channel_id = event.get("channel")
        if not text or not user_id or not channel_id:
            logger.warning("Dropping %s event with missing fields", event_type)
            return None

        try:
            reply = self.interpret_event(event_type, text, user_id, channel_id)
        except StoreFailure:
            logger.exception("Score store failed handling %s from %s", event_type, user_id)
            self.gateway.send_ephemeral(STORE_FAILURE, channel_id, user_id)
            return None

        if reply is not None:
            self.deliver(reply)
        return reply
