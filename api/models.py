"""Pydantic request/response schemas for the FastAPI backend."""

from typing import Any, Optional

from pydantic import BaseModel, Field

from tracekit.models import Binding, Entry, Session


# ---- Requests ----

class BindingPayload(BaseModel):
    id: str
    value: Any = None


class EntryPayload(BaseModel):
    line: int = Field(..., ge=0, description="Source line of the recorded event")
    file: Optional[str] = None
    content: list[BindingPayload] = Field(default_factory=list)

    def to_entry(self) -> Entry:
        return Entry(
            line=self.line,
            file=self.file,
            content=tuple(Binding(id=b.id, value=b.value) for b in self.content),
        )


class SessionPayload(BaseModel):
    """One producer run. ``id`` is optional; the store assigns one if absent."""

    entries: list[EntryPayload]
    code: Optional[str] = None
    file: Optional[str] = None
    id: Optional[str] = Field(
        default=None, min_length=1, max_length=128, pattern=r"^[a-zA-Z0-9_.:-]+$"
    )

    def to_session(self) -> Session:
        return Session(
            id=self.id,
            entries=tuple(e.to_entry() for e in self.entries),
            code=self.code,
            file=self.file,
        )


def session_from_entries(entries: list[EntryPayload]) -> Session:
    """Bare entry list (the producer's original format) → Session."""
    return Session(entries=tuple(e.to_entry() for e in entries))


# ---- Responses ----

class IngestResponse(BaseModel):
    ok: bool = True
    id: str
    entries: int = 0


class DeleteResponse(BaseModel):
    ok: bool = True


class ServerStatus(BaseModel):
    status: str = "ok"
    sessions: int = 0
    max_sessions: int = 0
    subscribers: int = 0
    uptime_seconds: float = 0.0


class ErrorResponse(BaseModel):
    detail: str
