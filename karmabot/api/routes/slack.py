"""
karmabot.api.routes.slack — Slack Events API webhook
======================================================

Slack expects an answer within three seconds, so the endpoint only
verifies and acknowledges the request; the event itself is processed as a
background task on a worker thread.
"""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from slack_sdk.signature import SignatureVerifier

from karmabot.api.deps import get_karma_service, get_signature_verifier
from karmabot.database.engine import run_db
from karmabot.services.karma_service import KarmaService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["slack"])


@router.post("/slack/events")
async def slack_events(
    request: Request,
    background_tasks: BackgroundTasks,
    service: KarmaService = Depends(get_karma_service),
    verifier: SignatureVerifier | None = Depends(get_signature_verifier),
):
    body = await request.body()
    if verifier is not None and not verifier.is_valid_request(body, dict(request.headers)):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid Slack signature")

    try:
        payload = json.loads(body or b"{}")
    except json.JSONDecodeError:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Body is not JSON")
    if not isinstance(payload, dict):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Body is not a JSON object")

    if payload.get("type") == "url_verification":
        return {"challenge": payload.get("challenge")}

    # Slack re-sends events it thinks timed out; the first delivery already ran.
    if request.headers.get("X-Slack-Retry-Num"):
        logger.debug("Skipping Slack retry %s", request.headers["X-Slack-Retry-Num"])
        return {"ok": True}

    event = payload.get("event")
    if payload.get("type") != "event_callback" or not isinstance(event, dict):
        logger.warning("Unsupported Slack payload type %r", payload.get("type"))
        return {"ok": True}

    background_tasks.add_task(run_db, service.handle_event, event)
    return {"ok": True}
