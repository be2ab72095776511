"""
Trace data model.

A Session is one producer run: an ordered tuple of Entries plus optional
source text. Each Entry is one recorded instrumentation hit at a source
line, carrying zero or more Bindings (named captured values).

All types are frozen dataclasses. A stored session is never mutated; the
store only appends and removes whole sessions.

Wire format (``to_dict``/``from_dict``) uses the producer's JSON shape:

    {"id": "...", "code": "...", "file": "main.cpp",
     "entries": [{"line": 12, "file": "main.cpp",
                  "content": [{"id": "adj", "value": ...}]}]}
"""

from dataclasses import dataclass, replace
from typing import Any, Optional


@dataclass(frozen=True)
class Binding:
    id: str
    value: Any = None

    def to_dict(self) -> dict:
        return {"id": self.id, "value": self.value}

    @classmethod
    def from_dict(cls, data: dict) -> "Binding":
        return cls(id=str(data["id"]), value=data.get("value"))


@dataclass(frozen=True)
class Entry:
    """One recorded hit at ``(line, file)``. Only the location drives loop inference."""

    line: int
    content: tuple = ()
    file: Optional[str] = None

    @property
    def location(self) -> tuple:
        return (self.line, self.file)

    def to_dict(self) -> dict:
        out: dict = {"line": self.line}
        if self.file is not None:
            out["file"] = self.file
        out["content"] = [b.to_dict() for b in self.content]
        return out

    @classmethod
    def from_dict(cls, data: dict) -> "Entry":
        return cls(
            line=int(data["line"]),
            file=data.get("file"),
            content=tuple(Binding.from_dict(b) for b in data.get("content") or ()),
        )


@dataclass(frozen=True)
class Session:
    entries: tuple = ()
    id: Optional[str] = None
    code: Optional[str] = None
    file: Optional[str] = None

    def with_id(self, session_id: str) -> "Session":
        return replace(self, id=session_id)

    @property
    def label(self) -> Optional[str]:
        """Basename of ``file`` (either path separator), or None."""
        if not self.file:
            return None
        return self.file.replace("\\", "/").split("/")[-1]

    def to_dict(self) -> dict:
        out: dict = {
            "id": self.id,
            "entries": [e.to_dict() for e in self.entries],
        }
        if self.code is not None:
            out["code"] = self.code
        if self.file is not None:
            out["file"] = self.file
        return out

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        return cls(
            id=data.get("id"),
            entries=tuple(Entry.from_dict(e) for e in data.get("entries") or ()),
            code=data.get("code"),
            file=data.get("file"),
        )


@dataclass(frozen=True)
class GraphPayload:
    """A binding value explicitly tagged ``{"kind": "graph", ...}``."""

    adjacency: Any
    label: Optional[str] = None
    raw_id: Optional[str] = None

    def to_dict(self) -> dict:
        out: dict = {"kind": "graph", "adjacency": self.adjacency}
        if self.label is not None:
            out["label"] = self.label
        if self.raw_id is not None:
            out["rawId"] = self.raw_id
        return out
