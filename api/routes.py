"""All REST + SSE endpoints for the FastAPI backend."""

import json
import logging
import re
import time
from typing import Union

import config
from fastapi import APIRouter, HTTPException, Query
from sse_starlette.sse import EventSourceResponse

from rendering.graph import find_graph_bindings, graph_view
from tracekit.grouping import group_entries, groups_to_dicts
from tracekit.logging import get_recent_errors, tagged
from tracekit.store import SessionExistsError, SessionStore, StoreFullError

from .models import (
    DeleteResponse,
    ErrorResponse,
    EntryPayload,
    IngestResponse,
    ServerStatus,
    SessionPayload,
    session_from_entries,
)
from .streaming import StoreEventChannel, stream_messages

logger = logging.getLogger("tracelens")

router = APIRouter(prefix="/api")

# These are injected by app.py lifespan
store: SessionStore = None  # type: ignore[assignment]
channel: StoreEventChannel = None  # type: ignore[assignment]
_start_time: float = 0.0

_NOT_FOUND = {404: {"model": ErrorResponse}}


# session ids: alphanumeric + underscore/dot/colon/dash; anything else is not found
_SAFE_ID_RE = re.compile(r"^[a-zA-Z0-9_.:-]+$")


def _validate_session_id(value: str) -> None:
    if not _SAFE_ID_RE.match(value):
        raise HTTPException(status_code=404, detail=f"Session '{value}' not found")


def _get_session_or_404(session_id: str):
    _validate_session_id(session_id)
    session = store.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found")
    return session


# ---- Server ----


@router.get("/status")
async def server_status():
    return ServerStatus(
        sessions=len(store),
        max_sessions=store.max_sessions,
        subscribers=channel.subscriber_count if channel is not None else 0,
        uptime_seconds=round(time.time() - _start_time, 1),
    ).model_dump()


@router.get("/errors")
async def recent_errors(limit: int = Query(default=50, ge=1, le=500)):
    """Most recent warnings and errors from the server log."""
    return {"errors": get_recent_errors(limit=limit)}


# ---- Sessions ----


@router.get("/debug")
async def list_sessions():
    return {"sessions": [s.to_dict() for s in store.get_sessions()]}


@router.post("/debug", responses={409: {"model": ErrorResponse}, 429: {"model": ErrorResponse}})
async def ingest_session(payload: Union[SessionPayload, list[EntryPayload]]):
    """Store one producer run.

    Accepts a session object or a bare list of entries. Malformed payloads
    are rejected by validation (422) before they reach the store.
    """
    if isinstance(payload, list):
        session = session_from_entries(payload)
    else:
        session = payload.to_session()
    try:
        stored = store.add_session(session)
    except SessionExistsError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StoreFullError as e:
        raise HTTPException(status_code=429, detail=str(e))
    return IngestResponse(id=stored.id, entries=len(stored.entries)).model_dump()


@router.delete("/debug", responses=_NOT_FOUND)
async def delete_session(id: str = Query(..., min_length=1)):
    """Delete a session by id."""
    _validate_session_id(id)
    if not store.remove_session(id):
        raise HTTPException(status_code=404, detail=f"Session '{id}' not found")
    return DeleteResponse().model_dump()


@router.get("/debug/counts")
async def session_counts():
    """Binding count per entry, per session (cheap polling)."""
    return {"counts": store.get_counts()}


@router.get("/debug/stream")
async def session_stream():
    """Live session stream.

    First message is ``{"type": "init", "payload": [sessions]}``, then one
    message per change: ``{"type": "add", "payload": session}`` or
    ``{"type": "delete", "id": ...}``. Keep-alive pings are SSE comments.
    Clients should reconnect on disconnect; they get a fresh snapshot.
    """

    async def event_generator():
        # Unnamed events: browsers deliver them to EventSource.onmessage
        async for message in stream_messages(channel):
            yield {"data": json.dumps(message)}

    logger.debug("[Stream] Client connected", extra=tagged("stream"))
    return EventSourceResponse(event_generator(), ping=config.STREAM_KEEPALIVE_SECONDS)


@router.get("/debug/{session_id}/outline", responses=_NOT_FOUND)
async def session_outline(session_id: str):
    """Step outline of a session: singles and (nested) loops."""
    session = _get_session_or_404(session_id)
    return {
        "id": session.id,
        "entries": len(session.entries),
        "groups": groups_to_dicts(group_entries(session.entries)),
    }


@router.get("/debug/{session_id}/entries/{index}/graphs", responses=_NOT_FOUND)
async def entry_graphs(session_id: str, index: int):
    """Normalized, colored graphs for every graph binding of one entry."""
    session = _get_session_or_404(session_id)
    if not 0 <= index < len(session.entries):
        raise HTTPException(
            status_code=404,
            detail=f"Entry {index} out of range (session has {len(session.entries)})",
        )
    entry = session.entries[index]
    return {
        "line": entry.line,
        "graphs": [graph_view(b, p) for b, p in find_graph_bindings(entry)],
    }
