"""In-memory session store with synchronous publish/subscribe."""

import threading
import uuid
from typing import Callable, Optional

from .events import StoreEvent, StoreListener
from .logging import log_error
from .models import Session


class SessionStoreError(Exception):
    """Base class for store rejections."""


class SessionExistsError(SessionStoreError):
    pass


class StoreFullError(SessionStoreError):
    pass


class SessionStore:
    """Ordered collection of sessions plus a listener set.

    Sessions keep arrival order and are never reordered. A stored session
    is frozen; the only mutations are whole-session add and remove.

    Thread-safe: one re-entrant lock covers mutation and notification, so
    two add calls never interleave and every listener registered when a
    mutation starts has been called before that mutation returns. The lock
    is re-entrant so listeners may read the store while being notified.

    Listener exceptions are logged and swallowed here; they never abort
    the mutation or starve the remaining listeners.
    """

    def __init__(self, max_sessions: int = 0):
        self._sessions: list[Session] = []
        self._listeners: list[StoreListener] = []
        self._lock = threading.RLock()
        self.max_sessions = max_sessions

    # ---- Mutation ----

    def add_session(self, session: Session) -> Session:
        """Store *session*, assigning an id if it has none, and notify listeners.

        Raises:
            SessionExistsError: a stored session already has this id.
            StoreFullError: ``max_sessions`` reached.
        """
        with self._lock:
            if self.max_sessions and len(self._sessions) >= self.max_sessions:
                raise StoreFullError(
                    f"Maximum sessions ({self.max_sessions}) reached. "
                    f"Delete an existing session first."
                )
            if session.id is None:
                session = session.with_id(uuid.uuid4().hex)
            elif self._index_of(session.id) is not None:
                raise SessionExistsError(f"Session '{session.id}' already exists")
            self._sessions.append(session)
            self._emit(StoreEvent.added(session))
        return session

    def remove_session(self, session_id: str) -> bool:
        """Remove the session with *session_id*. Returns False if there was none."""
        with self._lock:
            idx = self._index_of(session_id)
            if idx is None:
                return False
            del self._sessions[idx]
            self._emit(StoreEvent.deleted(session_id))
        return True

    # ---- Queries ----

    def get_sessions(self) -> list[Session]:
        with self._lock:
            return list(self._sessions)

    def get_session(self, session_id: str) -> Optional[Session]:
        with self._lock:
            idx = self._index_of(session_id)
            return None if idx is None else self._sessions[idx]

    def get_counts(self) -> list[list[int]]:
        """Binding count of every entry, per session."""
        with self._lock:
            return [[len(e.content) for e in s.entries] for s in self._sessions]

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    # ---- Subscription ----

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register *listener* for every later add/delete. Returns the disposer."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                try:
                    self._listeners.remove(listener)
                except ValueError:
                    pass

        return unsubscribe

    def subscribe_with_snapshot(
        self, listener: StoreListener
    ) -> tuple[list[Session], Callable[[], None]]:
        """Subscribe and snapshot atomically.

        Every session is then seen exactly once: either in the snapshot or
        through a later "add" event.
        """
        with self._lock:
            unsubscribe = self.subscribe(listener)
            return list(self._sessions), unsubscribe

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    # ---- Teardown ----

    def close(self) -> None:
        """Drop all listeners and sessions (server shutdown)."""
        with self._lock:
            self._listeners.clear()
            self._sessions.clear()

    # ---- Internals ----

    def _index_of(self, session_id: str) -> Optional[int]:
        for i, s in enumerate(self._sessions):
            if s.id == session_id:
                return i
        return None

    def _emit(self, event: StoreEvent) -> None:
        # Snapshot the list: a listener may unsubscribe itself mid-dispatch
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:
                log_error(
                    "Store listener failed",
                    exc=exc,
                    context={
                        "listener": getattr(listener, "__qualname__", repr(listener)),
                        "event": event.type,
                        "session_id": event.session_id,
                    },
                )
