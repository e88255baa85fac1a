"""
karmabot.engine.messages — Reply text
======================================

Randomised replies for votes, undo and thanks, plus the help text and the
Slack leaderboard attachment.  Every function takes an optional
:class:`random.Random` so tests can pin the choice.
"""

from __future__ import annotations

import enum
import random
from dataclasses import dataclass
from urllib.parse import urlencode

from karmabot.constants import format_points, maybe_link_item


class Operation(enum.StrEnum):
    PLUS = "plus"
    MINUS = "minus"
    SELF = "selfPlus"


@dataclass(frozen=True, slots=True)
class MessageSet:
    probability: int
    messages: tuple[str, ...]


_SHIFTY = MessageSet(1, (":shifty:",))

MESSAGES: dict[Operation, tuple[MessageSet, ...]] = {
    Operation.PLUS: (
        MessageSet(100, (
            "Congrats!",
            "Got it!",
            "Bravo.",
            "Oh well done.",
            "Nice work!",
            "Well done.",
            "Exquisite.",
            "Lovely.",
            "Superb.",
            "Classic!",
            "Charming.",
            "Noted.",
            "Well, well!",
            "Well played.",
            "Sincerest congratulations.",
            "Delicious.",
        )),
        _SHIFTY,
    ),
    Operation.MINUS: (
        MessageSet(100, (
            "Oh RLY?",
            "Oh, really?",
            "Oh :slightly_frowning_face:.",
            "I see.",
            "Ouch.",
            "Oh là là.",
            "Oh.",
            "Condolences.",
        )),
        _SHIFTY,
    ),
    Operation.SELF: (
        MessageSet(100, (
            "Hahahahahahaha no.",
            "Nope.",
            "No. Just no.",
            "Not cool!",
        )),
        _SHIFTY,
    ),
}

THANKYOU_MESSAGES: tuple[str, ...] = (
    "Don't mention it!",
    "You're welcome.",
    "Pleasure!",
    "No thank YOU!",
    (
        "++ for taking the time to say thanks!\n..."
        "just kidding, I can't `++` you. But it's the thought that counts, right??"
    ),
)

NOTHING_TO_UNDO = "<@{user}> there is nothing to undo!"
UNDO_EXPIRED = "You can undo only for duration of {minutes} minutes after up voting!"
DAILY_LIMIT_REACHED = "You have reached your daily voting limit!"
SUSPENDED = "You can't vote until {until:%Y-%m-%d %H:%M}."
STORE_FAILURE = "Sorry, I couldn't record that right now. Please try again in a moment."
NO_USERS_ON_LEADERBOARD = "No Users on Leaderboard."


def _choose_set(sets: tuple[MessageSet, ...], rng: random.Random) -> tuple[str, ...]:
    total = sum(s.probability for s in sets)
    remaining = rng.randrange(total)
    for message_set in sets:
        remaining -= message_set.probability
        if remaining < 0:
            return message_set.messages
    raise RuntimeError(f"No message set selected (total probability {total})")


def get_random_message(
    operation: Operation | str,
    item: str,
    score: int = 0,
    rng: random.Random | None = None,
) -> str:
    """Pick a reply for *operation* about *item* and render it.

    ``plus`` / ``minus`` → ``"Nice work! *<@U1>* is now on 3 points."``
    ``selfPlus``         → ``"<@U1> Nope."``
    """
    try:
        operation = Operation(operation)
    except ValueError:
        raise ValueError(f"Invalid operation: {operation}") from None

    rng = rng or random.Random()
    message = rng.choice(_choose_set(MESSAGES[operation], rng))

    if operation is Operation.SELF:
        return f"{maybe_link_item(item)} {message}"
    return f"{message} *{maybe_link_item(item)}* is now on {format_points(score)}."


def thank_you(user_id: str, rng: random.Random | None = None) -> str:
    rng = rng or random.Random()
    return f"<@{user_id}> {rng.choice(THANKYOU_MESSAGES)}"


def help_text(bot_name: str, undo_minutes: int) -> str:
    return (
        "Sure, here's what I can do:\n\n"
        "• `<@Someone> ++ [reason]`: Add a point to user, optionally you can add a reason.\n"
        f"• `<@{bot_name}> undo`: Undo last added point "
        f"(only works {undo_minutes} minutes after you gave ++).\n"
        f"• `<@{bot_name}> leaderboard`: Display the leaderboard.\n"
        f"• `<@{bot_name}> help`: Display this message.\n\n"
    )


def leaderboard_link(base_url: str, channel_id: str) -> str:
    """URL of the web leaderboard pre-filtered to *channel_id*."""
    return f"{base_url}?{urlencode({'channel': channel_id})}"


def leaderboard_attachment(
    lines: list[str],
    channel_id: str,
    channel_name: str,
    leaderboard_url: str = "",
) -> dict:
    """Build the Slack ``attachments`` payload for the in-channel leaderboard."""
    if not lines:
        return {"attachments": [{"text": NO_USERS_ON_LEADERBOARD, "color": "danger"}]}

    fields: list[dict] = [{"value": "\n".join(lines), "short": True}]
    if leaderboard_url:
        fields.append({
            "value": f"\nOr see the <{leaderboard_link(leaderboard_url, channel_id)}|whole list>. "
        })

    return {
        "attachments": [
            {
                "text": (
                    f"Here you go. Best people in channel <#{channel_id}|{channel_name}>."
                ),
                "color": "good",
                "fields": fields,
            }
        ]
    }
