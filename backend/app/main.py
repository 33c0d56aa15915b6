"""
DealDine Backend API
FastAPI application that turns restaurant promo email into deals and
reminds users before those deals expire.
"""

import asyncio
import logging
import os
from typing import List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from app.db import create_supabase_client
from app.exceptions import ConfigurationError
from app.routers import auth, deals, notifications, preferences
from app.services.deal_store import DealStore
from app.services.extractor import create_extraction_client
from app.services.gmail_client import GmailClient
from app.services.mailer import SmtpMailer
from app.services.notifier import ExpiryNotifier, run_periodic_sweeps

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="DealDine API",
    description="AI-powered restaurant deal extraction from promotional email",
    version="0.1.0",
)


def get_cors_origins() -> List[str]:
    """
    Build the list of allowed CORS origins.

    Always includes the frontend dev server (FRONTEND_URL, default
    http://localhost:3000). Additional origins are read from the CORS_ORIGINS
    environment variable as a comma-separated list, e.g.:
        CORS_ORIGINS=https://dealdine.app,https://preview.dealdine.app

    Duplicates are removed while preserving order.
    """
    always_included = [
        os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/"),
    ]

    extra_origins: List[str] = []
    cors_env = os.getenv("CORS_ORIGINS", "").strip()
    if cors_env:
        extra_origins = [o.strip() for o in cors_env.split(",") if o.strip()]

    # Deduplicate while preserving order
    seen: set = set()
    origins: List[str] = []
    for origin in always_included + extra_origins:
        if origin not in seen:
            seen.add(origin)
            origins.append(origin)

    return origins


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(deals.router, prefix="/api", tags=["deals"])
app.include_router(preferences.router, prefix="/api/preferences", tags=["preferences"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])


def _notifier_interval() -> float:
    try:
        return float(os.getenv("NOTIFIER_INTERVAL_SECONDS", "0") or 0)
    except ValueError:
        return 0.0


@app.on_event("startup")
async def init_collaborators() -> None:
    """
    Build the Supabase, Claude, Gmail and SMTP collaborators once and park
    them on app.state. A collaborator whose configuration is missing is left
    as None; endpoints that need it answer 503.
    """
    store: Optional[DealStore] = None
    try:
        store = DealStore(create_supabase_client())
    except ConfigurationError as e:
        logger.warning(f"Database not configured: {e}")

    mailer: Optional[SmtpMailer] = None
    try:
        mailer = SmtpMailer.from_env()
    except ConfigurationError as e:
        logger.warning(f"Notification mail not configured: {e}")

    extraction_client = None
    if os.getenv("ANTHROPIC_API_KEY"):
        extraction_client = create_extraction_client()
    else:
        logger.warning("ANTHROPIC_API_KEY is not set; deal scanning is disabled")

    app.state.store = store
    app.state.extraction_client = extraction_client
    app.state.gmail_factory = GmailClient.from_tokens
    app.state.notifier = ExpiryNotifier(store, mailer) if store and mailer else None
    app.state.sweep_task = None

    interval = _notifier_interval()
    if app.state.notifier is not None and interval > 0:
        app.state.sweep_task = asyncio.create_task(
            run_periodic_sweeps(app.state.notifier, interval)
        )

    logger.info(
        "DealDine API running on port %s",
        os.getenv("HOST_PORT") or os.getenv("PORT", "8000"),
    )


@app.on_event("shutdown")
async def stop_background_sweeps() -> None:
    task = getattr(app.state, "sweep_task", None)
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


@app.get("/")
async def root():
    return {"message": "DealDine API", "version": "0.1.0"}


@app.get("/health")
async def health():
    return {"status": "healthy", "service": "dealdine-backend"}


@app.get("/health/db")
async def health_db():
    """
    Test the Supabase database connection with a one-row select from users.
    Returns 503 on failure.
    """
    store = getattr(app.state, "store", None)
    if store is None:
        raise HTTPException(
            status_code=503,
            detail="Database client unavailable: SUPABASE_URL / SUPABASE_SERVICE_KEY not configured",
        )

    try:
        await asyncio.to_thread(
            store.client.table("users").select("id").limit(1).execute
        )
        return {"status": "ok", "database": "reachable"}
    except Exception as exc:
        logger.error(f"Database health check failed: {exc}")
        raise HTTPException(
            status_code=503,
            detail=f"Database connection failed: {str(exc)}",
        )
