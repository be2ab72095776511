"""
Observer-side copy of the session list, kept current from stream messages.

The live stream sends one "init" snapshot, then "add"/"delete" deltas.
SessionMirror applies them and tracks what the observer is looking at:

  - a new session, or a new step in the selected latest session, moves the
    selection to the latest entry;
  - selections are clamped when sessions disappear;
  - the selected graph binding is kept by id across steps while it exists,
    otherwise the first graph binding of the entry is selected.
"""

import logging
from typing import Optional

from rendering.graph import find_graph_bindings

from .events import SESSION_ADDED, SESSION_DELETED, SNAPSHOT
from .models import Entry, Session

logger = logging.getLogger("tracelens")


class SessionMirror:

    def __init__(self):
        self.sessions: list[Session] = []
        self.selected_session = 0
        self.selected_entry = 0
        self.selected_graph: Optional[str] = None
        self._last_session_count = 0
        self._last_step_count = 0

    # ---- Stream messages ----

    def apply(self, message: dict) -> bool:
        """Apply one stream message. Returns False for unknown message types."""
        mtype = message.get("type")
        if mtype == SNAPSHOT:
            self.sessions = [Session.from_dict(s) for s in message.get("payload") or []]
        elif mtype == SESSION_ADDED:
            self._upsert(Session.from_dict(message["payload"]))
        elif mtype == SESSION_DELETED:
            sid = message.get("id")
            self.sessions = [s for s in self.sessions if s.id != sid]
        else:
            logger.debug(f"[Mirror] Ignoring stream message of type {mtype!r}")
            return False
        self._reconcile()
        return True

    def _upsert(self, session: Session) -> None:
        for i, existing in enumerate(self.sessions):
            if existing.id == session.id:
                self.sessions[i] = session
                return
        self.sessions.append(session)

    # ---- Selection ----

    @property
    def active_session(self) -> Optional[Session]:
        if 0 <= self.selected_session < len(self.sessions):
            return self.sessions[self.selected_session]
        return None

    @property
    def active_entry(self) -> Optional[Entry]:
        session = self.active_session
        if session is None or not 0 <= self.selected_entry < len(session.entries):
            return None
        return session.entries[self.selected_entry]

    @property
    def latest_session(self) -> Optional[Session]:
        return self.sessions[-1] if self.sessions else None

    def select_session(self, index: int) -> None:
        self.selected_session = index
        self.selected_entry = 0
        self._clamp()
        self._sync_graph()

    def select_entry(self, index: int) -> None:
        self.selected_entry = index
        self._clamp()
        self._sync_graph()

    def select_graph(self, binding_id: str) -> bool:
        ids = [b.id for b, _ in find_graph_bindings(self.active_entry)]
        if binding_id not in ids:
            return False
        self.selected_graph = binding_id
        return True

    def _clamp(self) -> None:
        if not self.sessions:
            self.selected_session = 0
            self.selected_entry = 0
            return
        clamped = min(max(self.selected_session, 0), len(self.sessions) - 1)
        if clamped != self.selected_session:
            self.selected_session = clamped
            self.selected_entry = 0
            return
        steps = len(self.sessions[clamped].entries)
        self.selected_entry = min(max(self.selected_entry, 0), max(0, steps - 1))

    def _follow_latest(self) -> None:
        if not self.sessions:
            self._last_session_count = 0
            self._last_step_count = 0
            return
        latest_index = len(self.sessions) - 1
        latest_steps = len(self.sessions[latest_index].entries)
        is_new_session = len(self.sessions) != self._last_session_count
        is_new_step = latest_steps != self._last_step_count

        if is_new_session or (is_new_step and self.selected_session == latest_index):
            self.selected_session = latest_index
            if latest_steps > 0:
                self.selected_entry = latest_steps - 1

        self._last_session_count = len(self.sessions)
        self._last_step_count = latest_steps

    def _sync_graph(self) -> None:
        graphs = find_graph_bindings(self.active_entry)
        ids = [b.id for b, _ in graphs]
        if self.selected_graph in ids:
            return
        self.selected_graph = ids[0] if ids else None

    def _reconcile(self) -> None:
        self._clamp()
        self._follow_latest()
        self._sync_graph()
