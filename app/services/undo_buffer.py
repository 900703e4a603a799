"""Single-slot undo for deleted sets."""

from __future__ import annotations

from dataclasses import dataclass

from app.core.constants import UNDO_WINDOW_SECONDS
from app.schemas.session import SessionSet
from app.services.clock import Clock, SystemClock


@dataclass(frozen=True)
class UndoEntry:
    exercise_id: str
    set: SessionSet
    original_index: int
    expires_at: float


class UndoBuffer:
    """Holds at most one deleted set; a newer deletion silently replaces it."""

    def __init__(self, clock: Clock | None = None, window_seconds: float = UNDO_WINDOW_SECONDS):
        self.clock = clock or SystemClock()
        self.window_seconds = window_seconds
        self._entry: UndoEntry | None = None

    def push(self, exercise_id: str, deleted: SessionSet, original_index: int) -> UndoEntry:
        self._entry = UndoEntry(
            exercise_id=exercise_id,
            set=deleted,
            original_index=original_index,
            expires_at=self.clock.now() + self.window_seconds,
        )
        return self._entry

    def pending(self) -> UndoEntry | None:
        """The entry if it has not expired yet (expired entries are dropped here)."""
        if self._entry is not None and self.clock.now() >= self._entry.expires_at:
            self._entry = None
        return self._entry

    def pop(self) -> UndoEntry | None:
        entry = self.pending()
        self._entry = None
        return entry

    def clear(self) -> None:
        self._entry = None
