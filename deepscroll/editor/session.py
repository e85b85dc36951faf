"""Editor session: tool dispatch, pointer gestures, commands and export."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from PIL import Image

from deepscroll.core.config import EditorConfig
from deepscroll.core.errors import NoCaptureDataError, StitchError
from deepscroll.core.types import CaptureMetadata, Point, Rect, Tool
from deepscroll.editor import tools
from deepscroll.editor.buffer import EditBuffer
from deepscroll.editor.history import HistorySnapshot, HistoryState
from deepscroll.editor.render import render
from deepscroll.messaging.payload import EditorPayload
from deepscroll.stitch.stitcher import Stitcher
from deepscroll.store.slice_store import SliceStore

logger = logging.getLogger(__name__)

# Tools that act on a dragged selection rectangle when the pointer is released
_SELECTION_TOOLS = {Tool.BLUR, Tool.REDACT, Tool.CROP, Tool.RECT}


@dataclass(frozen=True)
class UndoCommand:
    pass


@dataclass(frozen=True)
class RedoCommand:
    pass


@dataclass(frozen=True)
class ExportCommand:
    path: str | None = None
    fmt: str = "PNG"


EditorCommand = UndoCommand | RedoCommand | ExportCommand


@dataclass
class PendingText:
    """Handle returned by begin_text(); commit it once with the entered text."""

    point: Point  # buffer coordinates
    committed: bool = False


class EditorSession:
    """
    Owns the edit buffer of one stitched capture.

    Two ways in:
      - direct tool calls in buffer coordinates (crop, redact, blur, arrow, ...)
      - pointer_down / pointer_move / pointer_up in screen coordinates, which
        subtract the beautify padding and dispatch to the active tool.

    Each committing call returns True and pushes one history snapshot; rejected
    selections return False and leave history alone.
    """

    def __init__(
        self,
        image: Image.Image,
        *,
        metadata: CaptureMetadata | None = None,
        config: EditorConfig | None = None,
        on_history_change: Callable[[HistoryState], None] | None = None,
    ) -> None:
        self.config = config or EditorConfig()
        self.metadata = metadata
        self.buffer = EditBuffer(
            image,
            history_limit=self.config.history_limit,
            on_history_change=on_history_change,
        )
        self.active_tool = Tool.SELECT
        self.beautified = False
        self.has_footer = False

        self._start: Point | None = None
        self._current: Point | None = None
        self._stroked = False

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    @classmethod
    def from_fragment(
        cls,
        fragment: str,
        store: SliceStore,
        *,
        stitcher: Stitcher | None = None,
        config: EditorConfig | None = None,
        on_history_change: Callable[[HistoryState], None] | None = None,
    ) -> EditorSession:
        """
        Build a session from the editor URL fragment. Ids missing from the store
        are skipped; if nothing loads, or stitching fails, NoCaptureDataError.
        A malformed fragment raises ProtocolError.
        """
        payload = EditorPayload.decode(fragment)
        records = []
        for slice_id in payload.ids:
            record = store.get(slice_id)
            if record is None:
                logger.warning("Slice %s missing from store; skipped", slice_id)
                continue
            records.append(record)
        if not records:
            raise NoCaptureDataError()

        dpr = payload.meta.device_pixel_ratio if payload.meta else 1.0
        try:
            image = (stitcher or Stitcher()).stitch_records(records, dpr)
        except StitchError as exc:
            logger.error("Stitching failed: %s", exc)
            raise NoCaptureDataError() from exc
        return cls(image, metadata=payload.meta, config=config, on_history_change=on_history_change)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def image(self) -> Image.Image:
        return self.buffer.image

    @property
    def history_state(self) -> HistoryState:
        return self.buffer.history.state

    def select_tool(self, tool: Tool | str) -> None:
        self.active_tool = Tool(tool)
        self._reset_gesture()

    def to_buffer(self, pos: Point) -> Point:
        return tools.to_buffer_coords(pos, self.beautified, self.config.beautify_padding)

    # ------------------------------------------------------------------
    # Tools (buffer coordinates)
    # ------------------------------------------------------------------

    def crop(self, bounds: Rect) -> bool:
        cropped = tools.crop_image(self.buffer.image, bounds, self.config)
        if cropped is None:
            return False
        self.buffer.replace(cropped)
        self.buffer.save_state()
        return True

    def redact(self, bounds: Rect) -> bool:
        return self._commit(tools.apply_redaction(self.buffer.image, bounds, self.config))

    def blur(self, bounds: Rect) -> bool:
        return self._commit(tools.apply_pixelation(self.buffer.image, bounds, self.config))

    def arrow(self, head: Point, tail: Point) -> bool:
        return self._commit(tools.draw_arrow(self.buffer.image, head, tail, self.config))

    def rect(self, p1: Point, p2: Point) -> bool:
        return self._commit(tools.draw_rect(self.buffer.image, Rect.from_points(p1, p2), self.config))

    def draw_segment(self, start: Point, end: Point) -> None:
        """One pen segment, drawn straight into the buffer. History is pushed per stroke."""
        tools.draw_pen_line(self.buffer.image, start, end, self.config)

    def begin_text(self, point: Point) -> PendingText:
        return PendingText(point=point)

    def commit_text(self, handle: PendingText, content: str | None) -> bool:
        if handle.committed or not content:
            return False
        handle.committed = True
        return self._commit(tools.draw_text(self.buffer.image, content, handle.point, self.config))

    # ------------------------------------------------------------------
    # Pointer gestures (screen coordinates)
    # ------------------------------------------------------------------

    def pointer_down(self, pos: Point) -> None:
        if self.active_tool is Tool.SELECT:
            return
        self._start = pos
        self._current = pos
        self._stroked = False

    def pointer_move(self, pos: Point) -> None:
        if self._start is None:
            return
        if self.active_tool is Tool.DRAW:
            self.draw_segment(self.to_buffer(self._current), self.to_buffer(pos))
            self._stroked = True
        self._current = pos

    def pointer_up(self) -> PendingText | None:
        """Commit the gesture. For the text tool, returns the handle awaiting input."""
        if self._start is None:
            return None
        start, end = self.to_buffer(self._start), self.to_buffer(self._current)
        tool = self.active_tool
        stroked = self._stroked
        self._reset_gesture()

        if tool is Tool.DRAW:
            if stroked:
                self.buffer.save_state()
        elif tool is Tool.ARROW:
            # head stays where the gesture started, the tail follows the drag
            self.arrow(head=start, tail=end)
        elif tool is Tool.TEXT:
            return self.begin_text(end)
        elif tool in _SELECTION_TOOLS:
            bounds = Rect.from_points(start, end)
            if tool is Tool.CROP:
                self.crop(bounds)
            elif tool is Tool.REDACT:
                self.redact(bounds)
            elif tool is Tool.BLUR:
                self.blur(bounds)
            else:
                self.rect(start, end)
        return None

    def selection_preview(self) -> Rect | None:
        """Rectangle being dragged, in screen coordinates, for overlay drawing."""
        if self._start is None or self.active_tool not in _SELECTION_TOOLS:
            return None
        return Rect.from_points(self._start, self._current)

    # ------------------------------------------------------------------
    # History and commands
    # ------------------------------------------------------------------

    def undo(self) -> HistorySnapshot | None:
        return self.buffer.undo()

    def redo(self) -> HistorySnapshot | None:
        return self.buffer.redo()

    def execute(self, command: EditorCommand) -> HistorySnapshot | bytes | None:
        if isinstance(command, UndoCommand):
            return self.undo()
        if isinstance(command, RedoCommand):
            return self.redo()
        if isinstance(command, ExportCommand):
            return self.export(command.path, fmt=command.fmt)
        raise TypeError(f"Unknown editor command: {command!r}")

    def render(self) -> Image.Image:
        return render(
            self.buffer.image,
            beautified=self.beautified,
            has_footer=self.has_footer,
            metadata=self.metadata,
            config=self.config,
        )

    def export(self, path: str | None = None, *, fmt: str = "PNG") -> bytes:
        """Encode the rendered image; also write it to `path` when given."""
        image = self.render()
        if fmt.upper() in ("JPEG", "JPG"):
            image = image.convert("RGB")
        out = io.BytesIO()
        image.save(out, format=fmt.upper().replace("JPG", "JPEG"))
        data = out.getvalue()
        if path is not None:
            Path(path).write_bytes(data)
            logger.info("Exported %dx%d image to %s", image.width, image.height, path)
        return data

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _commit(self, changed: bool) -> bool:
        if changed:
            self.buffer.save_state()
        return changed

    def _reset_gesture(self) -> None:
        self._start = None
        self._current = None
        self._stroked = False
