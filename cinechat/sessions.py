"""
CineChat — Session Manager

In-memory session store for multi-turn conversations. Every session
owns its own ChatOrchestrator (and therefore its own history); nothing
is shared between conversations except the catalog client.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

from cinechat.agents.fallback import FallbackProvider
from cinechat.clients import CatalogProvider
from cinechat.config import settings
from cinechat.pipeline import ChatOrchestrator

# ── In-memory store ───────────────────────────────────────

_sessions: Dict[str, ChatOrchestrator] = {}
_timestamps: Dict[str, datetime] = {}
_SESSION_TTL = timedelta(minutes=settings.session_ttl_minutes)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def get_or_create_session(
    session_id: Optional[str],
    catalog: CatalogProvider,
    fallback: Optional[FallbackProvider] = None,
) -> Tuple[str, ChatOrchestrator]:
    """Return (session_id, orchestrator), creating the session if needed."""
    if session_id and session_id in _sessions:
        _timestamps[session_id] = _now()
        return session_id, _sessions[session_id]

    new_id = session_id or str(uuid.uuid4())
    orchestrator = ChatOrchestrator(catalog, fallback=fallback)
    _sessions[new_id] = orchestrator
    _timestamps[new_id] = _now()
    return new_id, orchestrator


def get_session(session_id: str) -> Optional[ChatOrchestrator]:
    """Get a session by ID."""
    return _sessions.get(session_id)


def delete_session(session_id: str) -> bool:
    """Delete a session. Returns True if it existed."""
    existed = session_id in _sessions
    _sessions.pop(session_id, None)
    _timestamps.pop(session_id, None)
    return existed


def cleanup_expired(now: Optional[datetime] = None) -> int:
    """Remove sessions idle for longer than the TTL. Returns count removed."""
    now = now or _now()
    expired = [sid for sid, ts in _timestamps.items() if now - ts > _SESSION_TTL]
    for sid in expired:
        _sessions.pop(sid, None)
        _timestamps.pop(sid, None)
    return len(expired)


def session_count() -> int:
    return len(_sessions)


def clear_sessions() -> None:
    _sessions.clear()
    _timestamps.clear()
