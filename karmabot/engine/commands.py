"""
karmabot.engine.commands — Message text → directive
=====================================================

Turns the text of an inbound Slack event into one of the directives the
bot acts on.  Pure functions: bot classification is injected so nothing
here touches Slack or the database.

Recognised forms::

    <@U123> ++ great demo        → PlusMinus("U123", "+", "great demo")
    <@U123> --                   → PlusMinus("U123", "-", None)
    <@U123> —                    → PlusMinus("U123", "-", None)   (iOS em-dash)
    <@BOT> undo                  → Undo()          (message event, bot target)
    <@BOT> help | leaderboard | thanks   → Help() / Leaderboard() / Thanks()
                                           (app_mention event)
"""

from __future__ import annotations

import enum
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from karmabot.constants import is_user

__all__ = [
    "EventType",
    "PlusMinus",
    "Undo",
    "Help",
    "Thanks",
    "Leaderboard",
    "Command",
    "VoteDirective",
    "parse_vote",
    "extract_command",
    "interpret",
]


class EventType(enum.StrEnum):
    """Slack event types the bot subscribes to."""
    MESSAGE = "message"
    APP_MENTION = "app_mention"


# ---------------------------------------------------------------------------
# Directives
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class PlusMinus:
    target: str
    operation: str  # "+" or "-"
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class Undo:
    pass


@dataclass(frozen=True, slots=True)
class Help:
    pass


@dataclass(frozen=True, slots=True)
class Thanks:
    pass


@dataclass(frozen=True, slots=True)
class Leaderboard:
    pass


Command = PlusMinus | Undo | Help | Thanks | Leaderboard


@dataclass(frozen=True, slots=True)
class VoteDirective:
    """Raw parse of a mention + operator, before bot classification."""
    target: str
    operation: str  # "+", "-" or "undo"
    reason: str | None = None


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------
_VOTE_RE = re.compile(
    r"<@([A-Za-z0-9]+)>+\s*(\+{2}|-{2}|—|undo)\s*(.+)?",
    re.IGNORECASE | re.DOTALL,
)

# Mention-prefixed commands, mapped to their directive.
APP_COMMANDS: dict[str, Callable[[], Command]] = {
    "leaderboard": Leaderboard,
    "help": Help,
    "thx": Thanks,
    "thanks": Thanks,
    "thankyou": Thanks,
}


def parse_vote(text: str) -> VoteDirective | None:
    """Extract the first ``<@ID> ++|--|—|undo [reason]`` directive from *text*.

    Returns ``None`` when there is no match or the mention is not a user ID.
    """
    match = _VOTE_RE.search(text or "")
    if match is None:
        return None

    target = match.group(1)
    if not is_user(target):
        return None

    token = match.group(2)
    operation = "undo" if token.lower() == "undo" else token[0].replace("—", "-")

    reason = (match.group(3) or "").strip() or None
    return VoteDirective(target=target, operation=operation, reason=reason)


def extract_command(text: str, commands: Iterable[str]) -> str | None:
    """Return the command word that occurs earliest in *text*.

    Commands match as whole words, case-insensitively, so ``help`` is not
    found inside ``helpful``.
    """
    first_location: int | None = None
    first_command: str | None = None
    for command in commands:
        match = re.search(rf"\b{re.escape(command)}\b", text or "", re.IGNORECASE)
        if match and (first_location is None or match.start() < first_location):
            first_location = match.start()
            first_command = command
    return first_command


def interpret(
    event_type: str,
    text: str,
    is_bot: Callable[[str], bool],
) -> Command | None:
    """Classify an event's text into a directive, or ``None`` to ignore it.

    ``message`` events carry votes and ``<@bot> undo``; ``app_mention``
    events carry the mention-prefixed commands.
    """
    if event_type == EventType.APP_MENTION:
        command = extract_command(text, APP_COMMANDS)
        return APP_COMMANDS[command]() if command else None

    if event_type != EventType.MESSAGE:
        return None

    directive = parse_vote(text)
    if directive is None:
        return None

    if is_bot(directive.target):
        return Undo() if directive.operation == "undo" else None

    if directive.operation == "undo":
        return None

    return PlusMinus(
        target=directive.target,
        operation=directive.operation,
        reason=directive.reason,
    )
