"""Trace sessions: data model, session store, store events and step grouping."""

from .events import SESSION_ADDED, SESSION_DELETED, StoreEvent, StoreLogListener
from .grouping import LoopGroup, LoopIteration, SingleStep, flatten_groups, group_entries
from .models import Binding, Entry, GraphPayload, Session
from .store import SessionExistsError, SessionStore, SessionStoreError, StoreFullError

__all__ = [
    "Binding",
    "Entry",
    "GraphPayload",
    "LoopGroup",
    "LoopIteration",
    "SESSION_ADDED",
    "SESSION_DELETED",
    "Session",
    "SessionExistsError",
    "SessionStore",
    "SessionStoreError",
    "SingleStep",
    "StoreEvent",
    "StoreFullError",
    "StoreLogListener",
    "flatten_groups",
    "group_entries",
]
