"""
karmabot.api.deps — FastAPI dependency injection
==================================================
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from slack_sdk import WebClient
from slack_sdk.signature import SignatureVerifier
from sqlalchemy import Engine

from karmabot.config import KarmaConfig, load_config
from karmabot.database.engine import create_db_engine
from karmabot.engine.undo import UndoLedger
from karmabot.services.karma_service import KarmaService
from karmabot.services.slack_service import SlackGateway

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> KarmaConfig:
    path = os.getenv("KARMABOT_CONFIG", "config.yaml")
    try:
        return load_config(path)
    except FileNotFoundError:
        logger.warning("No config file at %s; using defaults", path)
        return KarmaConfig()


@lru_cache(maxsize=1)
def get_gateway() -> SlackGateway:
    cfg = get_config()
    client = WebClient(token=os.getenv("SLACK_BOT_TOKEN"))
    return SlackGateway(client, user_cache_ttl=cfg.user_cache_ttl_seconds)


@lru_cache(maxsize=1)
def get_signature_verifier() -> SignatureVerifier | None:
    """Verifier for the Slack signing secret, or ``None`` when it isn't set."""
    secret = os.getenv("SLACK_SIGNING_SECRET")
    if not secret:
        logger.warning("SLACK_SIGNING_SECRET is not set; Slack requests are not verified")
        return None
    return SignatureVerifier(secret)


@lru_cache(maxsize=1)
def get_karma_service() -> KarmaService:
    # One service (and so one undo ledger) per process.
    return KarmaService(get_engine(), get_config(), get_gateway(), UndoLedger())
