"""
karmabot.engine.undo — Last-vote-per-voter ledger
==================================================

Remembers, per voter, who they most recently gave a point to, so that
``<@bot> undo`` knows which vote to reverse.  Only the newest vote is
undoable: recording a new vote replaces the previous entry.

The ledger lives in process memory only.  It is lost on restart and is not
shared between instances; running more than one instance needs a shared,
expiring key-value store instead.  No lock is taken: each voter owns one
key, and two racing writes by the same voter resolve last-write-wins.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class UndoLedger:
    """Maps voter ID → recipient ID of that voter's latest ``++``."""

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    def record(self, voter_id: str, recipient_id: str) -> None:
        """Remember *recipient_id* as *voter_id*'s latest vote."""
        self._entries[voter_id] = recipient_id

    def peek(self, voter_id: str) -> str | None:
        return self._entries.get(voter_id)

    def pop(self, voter_id: str) -> str | None:
        """Remove and return *voter_id*'s entry (``None`` if there is none)."""
        recipient = self._entries.pop(voter_id, None)
        if recipient is not None:
            logger.debug("Undo ledger entry consumed: %s → %s", voter_id, recipient)
        return recipient

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, voter_id: object) -> bool:
        return voter_id in self._entries
