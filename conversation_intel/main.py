"""
FastAPI application entry point for the Conversation Intelligence API.

This module configures logging and CORS, builds the conversation engine once
in the application lifespan, registers the API routers and starts the ASGI
server when executed directly.

The database is optional: without DATABASE_URL the analysis, scoring and A/B
endpoints still work, while routing stored conversations is unavailable.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from conversation_intel import __version__
from conversation_intel.api import api_router
from conversation_intel.core.config import get_settings
from conversation_intel.core.database import close_db, init_db
from conversation_intel.jobs.quality_alerts import run_escalation_notifier
from conversation_intel.services.engine import build_engine
from conversation_intel.services.repository import load_profiles

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application startup and shutdown events.

    On startup:
        - Initialize the database pool when DATABASE_URL is configured
        - Load persisted personalization profiles
        - Build the conversation engine onto app.state.engine
        - Start escalation alert delivery when SLACK_WEBHOOK_URL is set

    On shutdown:
        - Stop escalation alert delivery
        - Close the database pool
    """
    logger.info("Conversation Intelligence API starting")
    settings = get_settings()
    profiles = []

    if settings.database_url:
        try:
            await init_db()
            logger.info("Database connection pool initialized")
            profiles = await load_profiles()
            logger.info(f"Loaded {len(profiles)} persisted personalization profiles")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            # Continue startup; analysis and scoring endpoints do not need the DB
    else:
        logger.warning("DATABASE_URL not configured; conversation routing is unavailable")

    app.state.engine = build_engine(settings, profiles=profiles)

    notifier = None
    if settings.slack_webhook_url:
        notifier = asyncio.create_task(
            run_escalation_notifier(app.state.engine, settings.escalation_notify_interval_seconds)
        )

    yield

    logger.info("Conversation Intelligence API shutting down")
    if notifier is not None:
        notifier.cancel()
        try:
            await notifier
        except asyncio.CancelledError:
            pass
    try:
        await close_db()
        logger.info("Database connection pool closed")
    except Exception as e:
        logger.error(f"Error closing database pool: {e}")


# Create FastAPI application
app = FastAPI(
    title="Conversation Intelligence API",
    version=__version__,
    description=(
        "Sales conversation intelligence: message analysis, response routing, "
        "escalation triggers, A/B tested response strategies and quality monitoring."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring and load balancer probes.

    Returns:
        Dict with status and whether the engine is ready
    """
    return {
        "status": "healthy",
        "engine": getattr(app.state, "engine", None) is not None,
    }


@app.get("/")
async def root():
    """
    Root endpoint providing API information.

    Returns:
        Dict with API name and version
    """
    return {
        "name": "Conversation Intelligence API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "conversation_intel.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
