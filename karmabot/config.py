"""
karmabot.config — YAML Configuration Loader
============================================

**Why this file exists:**
This module reads ``config.yaml`` for the soft settings of the bot (vote
ceiling, undo window, pagination, leaderboard link).  Secrets such as the
Slack token and ``DATABASE_URL`` stay in ``.env`` and are read where they
are needed.

Usage::

    from karmabot.config import load_config

    cfg = load_config()              # reads ./config.yaml by default
    print(cfg.daily_vote_limit)      # 300
    print(cfg.undo_window_minutes)   # 5
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

FEED_WINDOWS = frozenset({"month", "all"})


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class KarmaConfig:
    """Immutable configuration loaded from ``config.yaml``.

    Every field has a default so tests and tools can build one directly.
    """

    bot_name: str = "karmabot"

    # Voting
    daily_vote_limit: int = 300
    undo_window_seconds: int = 300

    # Feed / profile queries
    default_page_size: int = 20
    default_feed_window: str = "month"  # "month" or "all"

    # Leaderboard reply
    leaderboard_limit: int = 5
    leaderboard_url: str = ""

    # Slack directory cache
    user_cache_ttl_seconds: int = 600

    @property
    def undo_window_minutes(self) -> int:
        return self.undo_window_seconds // 60


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> KarmaConfig:
    """Read *path* and return a :class:`KarmaConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ValueError
        If a value is out of range (non-positive limits, unknown feed window).
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    defaults = KarmaConfig()
    cfg = KarmaConfig(
        bot_name=str(raw.get("bot_name", defaults.bot_name)),
        daily_vote_limit=int(raw.get("daily_vote_limit", defaults.daily_vote_limit)),
        undo_window_seconds=int(
            raw.get("undo_window_seconds", defaults.undo_window_seconds)
        ),
        default_page_size=int(raw.get("default_page_size", defaults.default_page_size)),
        default_feed_window=str(
            raw.get("default_feed_window", defaults.default_feed_window)
        ).lower(),
        leaderboard_limit=int(raw.get("leaderboard_limit", defaults.leaderboard_limit)),
        leaderboard_url=str(raw.get("leaderboard_url") or ""),
        user_cache_ttl_seconds=int(
            raw.get("user_cache_ttl_seconds", defaults.user_cache_ttl_seconds)
        ),
    )
    _validate(cfg)
    return cfg


def _validate(cfg: KarmaConfig) -> None:
    for name in ("daily_vote_limit", "undo_window_seconds", "default_page_size",
                 "leaderboard_limit"):
        if getattr(cfg, name) <= 0:
            raise ValueError(f"{name} must be positive, got {getattr(cfg, name)}")
    if cfg.user_cache_ttl_seconds < 0:
        raise ValueError("user_cache_ttl_seconds must not be negative")
    if cfg.default_feed_window not in FEED_WINDOWS:
        raise ValueError(
            f"default_feed_window must be one of {sorted(FEED_WINDOWS)}, "
            f"got {cfg.default_feed_window!r}"
        )
