"""
Store change events.

    SessionStore.add_session / remove_session → StoreEvent → listeners[]
      ├── StoreLogListener   → Python logger (file + console)
      └── StoreEventChannel  → per-client asyncio queues for the SSE stream

Listeners are plain callables taking one StoreEvent. They are invoked
synchronously inside the mutating call.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .models import Session


# ---- Event type constants ----

SESSION_ADDED = "add"
SESSION_DELETED = "delete"

# Stream-only message type: the full snapshot sent when a client connects
SNAPSHOT = "init"


@dataclass(frozen=True)
class StoreEvent:
    """A single change to the session collection.

    Fields:
        type: SESSION_ADDED or SESSION_DELETED.
        session_id: Id of the affected session.
        session: The full session (SESSION_ADDED only).
    """
    type: str
    session_id: str
    session: Optional[Session] = None

    @classmethod
    def added(cls, session: Session) -> "StoreEvent":
        return cls(type=SESSION_ADDED, session_id=session.id, session=session)

    @classmethod
    def deleted(cls, session_id: str) -> "StoreEvent":
        return cls(type=SESSION_DELETED, session_id=session_id)

    def to_message(self) -> dict:
        """Stream message: ``{"type": "add", "payload": {...}}`` or ``{"type": "delete", "id": ...}``."""
        if self.type == SESSION_ADDED:
            return {"type": SESSION_ADDED, "payload": self.session.to_dict()}
        return {"type": SESSION_DELETED, "id": self.session_id}


def snapshot_message(sessions: list[Session]) -> dict:
    return {"type": SNAPSHOT, "payload": [s.to_dict() for s in sessions]}


StoreListener = Callable[[StoreEvent], None]


class StoreLogListener:
    """Writes one log line per store event."""

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def __call__(self, event: StoreEvent) -> None:
        if event.type == SESSION_ADDED:
            s = event.session
            where = f" ({s.label})" if s.label else ""
            self._logger.info(
                f"[Store] Session {event.session_id[:8]} added{where}: {len(s.entries)} entries",
                extra={"log_tag": "session"},
            )
        else:
            self._logger.info(
                f"[Store] Session {event.session_id[:8]} deleted",
                extra={"log_tag": "session"},
            )
