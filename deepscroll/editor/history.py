"""Bounded linear undo/redo history of full-raster snapshots."""

from __future__ import annotations

from dataclasses import dataclass

from PIL import Image

from deepscroll.core.config import HISTORY_LIMIT


@dataclass(frozen=True)
class HistorySnapshot:
    """A full copy of the edit buffer; the image must not be mutated."""

    image: Image.Image

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size


@dataclass(frozen=True)
class HistoryState:
    can_undo: bool
    can_redo: bool


class HistoryStack:
    """
    Snapshots plus a cursor. Pushing discards everything after the cursor (no
    branching timeline) and evicts the oldest snapshot once the limit is reached.
    """

    def __init__(self, limit: int = HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError("history limit must be at least 1")
        self.limit = limit
        self._snapshots: list[HistorySnapshot] = []
        self._cursor = -1

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current(self) -> HistorySnapshot | None:
        if self._cursor < 0:
            return None
        return self._snapshots[self._cursor]

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._snapshots) - 1

    @property
    def state(self) -> HistoryState:
        return HistoryState(can_undo=self.can_undo, can_redo=self.can_redo)

    def reset(self, snapshot: HistorySnapshot) -> None:
        """Start over with a single initial snapshot."""
        self._snapshots = [snapshot]
        self._cursor = 0

    def push(self, snapshot: HistorySnapshot) -> None:
        del self._snapshots[self._cursor + 1:]
        self._snapshots.append(snapshot)
        if len(self._snapshots) > self.limit:
            del self._snapshots[0]
        self._cursor = len(self._snapshots) - 1

    def undo(self) -> HistorySnapshot | None:
        if not self.can_undo:
            return None
        self._cursor -= 1
        return self._snapshots[self._cursor]

    def redo(self) -> HistorySnapshot | None:
        if not self.can_redo:
            return None
        self._cursor += 1
        return self._snapshots[self._cursor]
