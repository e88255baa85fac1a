"""
karmabot — Peer Recognition Points for Slack
=============================================
Members award each other points with ``<@someone> ++ reason``.  Points are
stored as immutable score events; totals, leaderboards, the activity feed and
profiles are all derived from those events on demand.

Package layout::

    karmabot/
    ├── config.py          # YAML → typed Python config
    ├── errors.py          # KarmaError / StoreFailure
    ├── constants.py       # Identity-token helpers, plurals, markers
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + session + async helper
    │   └── models.py      # user, channel, score
    ├── engine/
    │   ├── commands.py    # Message text → directive
    │   ├── ranking.py     # Competition ranking of (item, score) rows
    │   ├── messages.py    # Reply pools, help text, leaderboard attachment
    │   └── undo.py        # In-memory "last vote per voter" ledger
    ├── services/
    │   ├── points_service.py  # Lazy user/channel creation, apply/reverse votes
    │   ├── rate_limit.py      # Daily vote ceiling
    │   ├── feed_service.py    # Top scores, feed, profile aggregation
    │   ├── slack_service.py   # Slack Web API gateway + directory cache
    │   └── karma_service.py   # Event handling: interpret → apply → reply
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Dependency wiring
        └── routes/        # Slack webhook + read-only endpoints
"""

__version__ = "0.1.0"
