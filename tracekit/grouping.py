"""
Step grouping and loop detection.

Turns a flat, ordered entry list into an outline of steps. A run of
consecutive, identical blocks of source locations becomes a loop; each
iteration's body (everything after the loop head) is grouped again, so
nested loops fall out of the recursion.

Locations are compared as ``(line, file)``; binding values never are.

The search takes the *first* block length that repeats, not the longest
or most natural one.

Groups reference the caller's entry list by index range; nothing is sliced
or copied.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Union

from .models import Entry


@dataclass(frozen=True)
class SingleStep:
    line: int
    entry_index: int
    entry: Entry
    file: Optional[str] = None

    def to_dict(self) -> dict:
        out = {"type": "single", "line": self.line, "entryIndex": self.entry_index,
               "entry": self.entry.to_dict()}
        if self.file is not None:
            out["file"] = self.file
        return out


@dataclass(frozen=True)
class LoopIteration:
    """One pass through a loop: entries ``[start, end)``, headed by ``entry_index``."""

    entry_index: int
    entry: Entry
    start: int
    end: int
    nested_groups: tuple = ()

    def to_dict(self) -> dict:
        return {
            "entryIndex": self.entry_index,
            "entry": self.entry.to_dict(),
            "range": {"start": self.start, "end": self.end},
            "nestedGroups": groups_to_dicts(self.nested_groups),
        }


@dataclass(frozen=True)
class LoopGroup:
    line: int
    start_index: int
    iterations: tuple
    file: Optional[str] = None

    @property
    def end_index(self) -> int:
        return self.iterations[-1].end

    def to_dict(self) -> dict:
        out = {"type": "loop", "line": self.line, "startIndex": self.start_index,
               "iterations": [it.to_dict() for it in self.iterations]}
        if self.file is not None:
            out["file"] = self.file
        return out


StepGroup = Union[SingleStep, LoopGroup]


def group_entries(entries: Sequence[Entry]) -> list[StepGroup]:
    """Group *entries* into singles and (nested) loops covering every index once."""
    return _build_groups(entries, 0, len(entries))


def flatten_groups(groups: Sequence[StepGroup]) -> list[int]:
    """Entry indexes covered by *groups*, in outline order."""
    out: list[int] = []
    for g in groups:
        if isinstance(g, SingleStep):
            out.append(g.entry_index)
            continue
        for it in g.iterations:
            out.append(it.entry_index)
            out.extend(flatten_groups(it.nested_groups))
    return out


def groups_to_dicts(groups: Sequence[StepGroup]) -> list[dict]:
    return [g.to_dict() for g in groups]


def _same_block(entries: Sequence[Entry], a: int, b: int, length: int, end: int) -> bool:
    """True if ``[a, a+length)`` and ``[b, b+length)`` visit the same locations."""
    if b + length > end:
        return False
    for k in range(length):
        if entries[a + k].location != entries[b + k].location:
            return False
    return True


def _detect_loop(entries: Sequence[Entry], start: int, end: int) -> Optional[tuple[int, int]]:
    """Return ``(block_length, iteration_count)`` for a loop headed at *start*, or None."""
    base = entries[start].location
    for offset in range(start + 1, end):
        if entries[offset].location != base:
            continue
        length = offset - start
        if not _same_block(entries, start, offset, length, end):
            continue

        count = 2
        next_start = offset + length
        while _same_block(entries, start, next_start, length, end):
            count += 1
            next_start += length
        return length, count
    return None


def _build_groups(entries: Sequence[Entry], lo: int, hi: int) -> list[StepGroup]:
    groups: list[StepGroup] = []
    i = lo
    while i < hi:
        found = _detect_loop(entries, i, hi)
        if found is None:
            entry = entries[i]
            groups.append(SingleStep(line=entry.line, entry_index=i, entry=entry, file=entry.file))
            i += 1
            continue

        length, count = found
        iterations = []
        for k in range(count):
            it_start = i + k * length
            it_end = it_start + length
            iterations.append(LoopIteration(
                entry_index=it_start,
                entry=entries[it_start],
                start=it_start,
                end=it_end,
                nested_groups=tuple(_build_groups(entries, it_start + 1, it_end)),
            ))
        head = entries[i]
        groups.append(LoopGroup(line=head.line, start_index=i,
                                iterations=tuple(iterations), file=head.file))
        i += length * count
    return groups
