"""
CineChat — FastAPI Application

Thin HTTP surface over the conversation engine: one chat endpoint plus
session management and a few static helpers for the chat widget.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, List

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from cinechat.agents.fallback import FallbackProvider
from cinechat.agents.reference_analyzer import default_profile_table
from cinechat.clients import CatalogProvider, TMDBCatalog
from cinechat.config import settings
from cinechat.models import ChatMessage, ChatReply, ChatRequest, MediaType, QuickAction, SessionInfo
from cinechat.pipeline import QUICK_ACTIONS, create_welcome_message
from cinechat.sessions import (
    cleanup_expired,
    delete_session,
    get_or_create_session,
    get_session,
    session_count,
)

logger = logging.getLogger(__name__)

# ── Shared catalog ────────────────────────────────────────

catalog: CatalogProvider = TMDBCatalog()
fallback_provider = FallbackProvider(catalog)


def use_catalog(provider: CatalogProvider) -> None:
    """Swap the catalog backing every new session."""
    global catalog, fallback_provider
    catalog = provider
    fallback_provider = FallbackProvider(provider)


# ── Lifespan: startup/shutdown ────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize and tear down shared resources."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
    )
    logger.info("🎬 CineChat starting up…")
    logger.info("   TMDB: %s (%s)", settings.tmdb_base_url, settings.tmdb_language)

    try:
        logger.info("   Loaded %d known title profiles", len(default_profile_table()))
    except (OSError, ValueError) as exc:
        logger.warning("   Could not load known title profiles: %s", exc)

    yield  # app runs here

    logger.info("🎬 CineChat shutting down…")
    close = getattr(catalog, "aclose", None)
    if close is not None:
        await close()


# ── App instance ──────────────────────────────────────────

app = FastAPI(
    title="CineChat",
    version="1.0.0",
    description="Conversational movie & TV discovery engine",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    t0 = time.perf_counter()
    response = await call_next(request)
    elapsed = (time.perf_counter() - t0) * 1000
    logger.info(
        "%s %s → %d (%.0f ms)",
        request.method,
        request.url.path,
        response.status_code,
        elapsed,
    )
    return response


# ── Health endpoint ───────────────────────────────────────


@app.get("/api/health")
async def health():
    """Health check — verifies the catalog answers."""
    status = {"status": "ok", "catalog": "unknown", "sessions": session_count()}
    try:
        page = await catalog.trending(MediaType.MOVIE, settings.trending_window)
        status["catalog"] = "ok"
        status["catalog_trending"] = len(page.items)
    except Exception as exc:
        status["catalog"] = f"error: {exc}"
    status["status"] = "ok" if status["catalog"] == "ok" else "degraded"
    return status


# ── Chat endpoint ─────────────────────────────────────────


@app.post("/api/chat", response_model=ChatReply)
async def chat(body: ChatRequest):
    """Process one user message in a (possibly new) conversation."""
    if not body.message.strip():
        raise HTTPException(status_code=422, detail="Message must not be empty")

    session_id, orchestrator = get_or_create_session(body.session_id, catalog, fallback_provider)

    try:
        response = await orchestrator.process_message(body.message)
    except Exception as exc:
        logger.exception("Chat turn failed")
        raise HTTPException(status_code=503, detail=f"Could not complete the request: {exc}")

    return ChatReply(
        session_id=session_id,
        message=response.message,
        suggested_follow_ups=response.suggested_follow_ups,
    )


@app.get("/api/welcome", response_model=ChatMessage)
async def welcome():
    return create_welcome_message()


@app.get("/api/quick-actions", response_model=List[QuickAction])
async def quick_actions():
    return QUICK_ACTIONS


# ── Session endpoints ─────────────────────────────────────


@app.get("/api/session/{session_id}", response_model=SessionInfo)
async def get_session_info(session_id: str):
    """Recommendation stats for a conversation."""
    orchestrator = get_session(session_id)
    if not orchestrator:
        raise HTTPException(status_code=404, detail="Session not found")
    return SessionInfo(session_id=session_id, stats=orchestrator.get_stats())


@app.post("/api/session/{session_id}/reset", response_model=SessionInfo)
async def reset_session(session_id: str):
    """Forget everything recommended so far, keeping the session id."""
    orchestrator = get_session(session_id)
    if not orchestrator:
        raise HTTPException(status_code=404, detail="Session not found")
    orchestrator.reset_conversation()
    return SessionInfo(session_id=session_id, stats=orchestrator.get_stats())


@app.delete("/api/session/{session_id}")
async def delete_session_endpoint(session_id: str):
    """Delete a conversation session."""
    if not delete_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"status": "deleted"}


@app.post("/api/sessions/cleanup")
async def cleanup_sessions():
    """Remove expired sessions."""
    count = cleanup_expired()
    return {"removed": count}
