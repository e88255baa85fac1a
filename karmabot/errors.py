"""
karmabot.errors — Exceptions raised by the scoring core
========================================================

Most outcomes (rate limited, expired undo, self vote) are ordinary results
reported back to the voter.  Only persistence failures are exceptions.
"""

from __future__ import annotations


class KarmaError(Exception):
    """Base class for karmabot errors."""


class StoreFailure(KarmaError):
    """A read or write against the score store failed.

    Raised from :func:`karmabot.database.engine.get_session` with the
    original SQLAlchemy error chained as ``__cause__``.  Never retried by
    the core.
    """
