"""Edit buffer: the working raster plus its undo history."""

from __future__ import annotations

from typing import Callable

from PIL import Image

from deepscroll.editor.history import HistorySnapshot, HistoryStack, HistoryState


class EditBuffer:
    """
    Owns the mutable raster the tools draw into.

    Starts as a copy of the stitched image with a single history snapshot.
    Restoring a snapshot replaces content and dimensions wholesale, since crop
    changes the size.
    """

    def __init__(
        self,
        image: Image.Image,
        *,
        history_limit: int | None = None,
        on_history_change: Callable[[HistoryState], None] | None = None,
    ) -> None:
        self._image = image.convert("RGBA")  # always a private copy
        self.history = HistoryStack(history_limit) if history_limit else HistoryStack()
        self._on_history_change = on_history_change
        self.history.reset(self.snapshot())
        self._notify()

    @property
    def image(self) -> Image.Image:
        return self._image

    @property
    def size(self) -> tuple[int, int]:
        return self._image.size

    @property
    def width(self) -> int:
        return self._image.width

    @property
    def height(self) -> int:
        return self._image.height

    def snapshot(self) -> HistorySnapshot:
        return HistorySnapshot(image=self._image.copy())

    def replace(self, image: Image.Image) -> None:
        """Swap in a new raster (crop). Does not touch history."""
        self._image = image.convert("RGBA")

    def save_state(self) -> None:
        self.history.push(self.snapshot())
        self._notify()

    def undo(self) -> HistorySnapshot | None:
        snapshot = self.history.undo()
        if snapshot is not None:
            self._restore(snapshot)
        return snapshot

    def redo(self) -> HistorySnapshot | None:
        snapshot = self.history.redo()
        if snapshot is not None:
            self._restore(snapshot)
        return snapshot

    def _restore(self, snapshot: HistorySnapshot) -> None:
        self._image = snapshot.image.copy()
        self._notify()

    def _notify(self) -> None:
        if self._on_history_change is not None:
            self._on_history_change(self.history.state)
