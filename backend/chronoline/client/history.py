"""Bounded linear undo/redo history."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from chronoline.client.storage.base import generate_id
from chronoline.models.base import utc_now

DEFAULT_CAPACITY = 100


class HistoryEntry(BaseModel):
    id: str = Field(default_factory=generate_id)
    timestamp: datetime = Field(default_factory=utc_now)
    action: str
    data: dict[str, Any] = Field(default_factory=dict)


class History:
    """
    Editor-style undo stack.

    ``index`` points at the most recently applied entry (-1 when nothing can
    be undone). Recording a new entry drops everything after ``index``; when
    the stack grows past ``capacity`` the oldest entry is evicted.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        self.capacity = capacity
        self.entries: list[HistoryEntry] = []
        self.index = -1

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def can_undo(self) -> bool:
        return self.index >= 0

    @property
    def can_redo(self) -> bool:
        return self.index < len(self.entries) - 1

    def record(self, action: str, data: dict[str, Any]) -> HistoryEntry:
        entry = HistoryEntry(action=action, data=data)
        del self.entries[self.index + 1:]
        self.entries.append(entry)
        self.index = len(self.entries) - 1

        if len(self.entries) > self.capacity:
            self.entries.pop(0)
            self.index -= 1
        return entry

    def undo(self) -> HistoryEntry | None:
        """Step back; returns the entry to reverse."""
        if not self.can_undo:
            return None
        entry = self.entries[self.index]
        self.index -= 1
        return entry

    def redo(self) -> HistoryEntry | None:
        """Step forward; returns the entry to reapply."""
        if not self.can_redo:
            return None
        self.index += 1
        return self.entries[self.index]

    def clear(self) -> None:
        self.entries.clear()
        self.index = -1
