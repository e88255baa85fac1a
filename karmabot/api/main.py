"""
karmabot.api.main — FastAPI application entry point
=====================================================

Serves the Slack Events API webhook and the read-only leaderboard, feed and
profile endpoints.

Run with::

    uvicorn karmabot.api.main:app --port 3000
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

load_dotenv()

from karmabot.api.deps import get_engine  # noqa: E402
from karmabot.api.routes.public import router as public_router  # noqa: E402
from karmabot.api.routes.slack import router as slack_router  # noqa: E402
from karmabot.database.engine import init_db  # noqa: E402
from karmabot.errors import StoreFailure  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — create tables and warm the DB engine."""
    engine = get_engine()
    init_db(engine)
    logger.info("karmabot API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("karmabot API shutting down")


app = FastAPI(
    title="karmabot API",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(StoreFailure)
async def store_failure_handler(request: Request, exc: StoreFailure):
    logger.error("Score store failure on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Score store unavailable"},
    )


app.include_router(slack_router, prefix="/api")
app.include_router(public_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
