"""Unit tests for EditorSession: tools, pointer gestures, commands, rendering and export."""

from __future__ import annotations

import io
import os
import tempfile

import pytest
from PIL import Image

from deepscroll.core.errors import NoCaptureDataError, ProtocolError
from deepscroll.core.types import CaptureMetadata, Point, Rect, Tool
from deepscroll.editor.history import HistoryState
from deepscroll.editor.render import footer_label, render
from deepscroll.editor.session import EditorSession, ExportCommand, RedoCommand, UndoCommand
from deepscroll.messaging.payload import EditorPayload
from deepscroll.store.slice_store import MemorySliceStore
from tests.fakes import make_page_image, png_bytes

WHITE = (255, 255, 255, 255)
BLACK = (0, 0, 0, 255)


def make_session(width=200, height=200, **kw) -> EditorSession:
    return EditorSession(Image.new("RGBA", (width, height), WHITE), **kw)


def drag(session: EditorSession, start: Point, *moves: Point):
    session.pointer_down(start)
    for pos in moves:
        session.pointer_move(pos)
    return session.pointer_up()


class TestDirectTools:
    def setup_method(self):
        self.session = make_session()

    def test_crop_changes_dimensions(self):
        assert self.session.crop(Rect(10, 10, 50, 40))
        assert self.session.image.size == (50, 40)

    def test_crop_undo_restores_size(self):
        self.session.crop(Rect(10, 10, 50, 40))
        self.session.undo()
        assert self.session.image.size == (200, 200)

    def test_small_crop_ignored(self):
        assert not self.session.crop(Rect(10, 10, 5, 40))
        assert self.session.image.size == (200, 200)
        assert len(self.session.buffer.history) == 1

    def test_redact_pushes_history(self):
        assert self.session.redact(Rect(0, 0, 20, 20))
        assert len(self.session.buffer.history) == 2

    def test_rejected_redact_leaves_history(self):
        assert not self.session.redact(Rect(0, 0, 1, 1))
        assert len(self.session.buffer.history) == 1

    def test_short_arrow_leaves_history(self):
        assert not self.session.arrow(Point(10, 10), Point(12, 12))
        assert len(self.session.buffer.history) == 1

    def test_history_capped_at_twenty(self):
        for i in range(25):
            self.session.redact(Rect(i, i, 5, 5))
        assert len(self.session.buffer.history) == 20
        for _ in range(19):
            assert self.session.undo() is not None
        assert self.session.undo() is None


class TestTextTool:
    def setup_method(self):
        self.session = make_session(height=100)

    def test_two_phase_commit(self):
        handle = self.session.begin_text(Point(20, 60))
        assert len(self.session.buffer.history) == 1
        assert self.session.commit_text(handle, "Note")
        assert len(self.session.buffer.history) == 2

    def test_empty_or_cancelled_text_is_noop(self):
        handle = self.session.begin_text(Point(20, 60))
        assert not self.session.commit_text(handle, "")
        assert not self.session.commit_text(handle, None)
        assert len(self.session.buffer.history) == 1

    def test_handle_is_single_use(self):
        handle = self.session.begin_text(Point(20, 60))
        assert self.session.commit_text(handle, "one")
        assert not self.session.commit_text(handle, "two")
        assert len(self.session.buffer.history) == 2

    def test_text_gesture_returns_handle(self):
        self.session.select_tool(Tool.TEXT)
        handle = drag(self.session, Point(30, 50))
        assert handle is not None
        assert handle.point == Point(30, 50)


class TestPointerGestures:
    def setup_method(self):
        self.session = make_session()

    def test_select_tool_does_nothing(self):
        drag(self.session, Point(10, 10), Point(100, 100))
        assert len(self.session.buffer.history) == 1

    def test_crop_gesture_in_beautify_mode(self):
        self.session.beautified = True
        self.session.select_tool("crop")
        drag(self.session, Point(70, 70), Point(110, 100))
        assert self.session.image.size == (40, 30)

    def test_redact_gesture_any_direction(self):
        self.session.select_tool(Tool.REDACT)
        drag(self.session, Point(50, 50), Point(20, 30))
        assert self.session.image.getpixel((25, 35)) == BLACK
        assert self.session.image.getpixel((60, 60)) == WHITE

    def test_blur_gesture_uses_buffer_coordinates(self):
        self.session.beautified = True
        self.session.select_tool(Tool.BLUR)
        drag(self.session, Point(60, 60), Point(160, 160))
        assert len(self.session.buffer.history) == 2

    def test_draw_stroke_is_one_history_entry(self):
        self.session.select_tool(Tool.DRAW)
        drag(self.session, Point(10, 10), Point(50, 50), Point(80, 20), Point(120, 60))
        assert len(self.session.buffer.history) == 2

    def test_draw_without_movement_pushes_nothing(self):
        self.session.select_tool(Tool.DRAW)
        drag(self.session, Point(10, 10))
        assert len(self.session.buffer.history) == 1

    def test_arrow_head_at_gesture_start(self):
        self.session.select_tool(Tool.ARROW)
        drag(self.session, Point(150, 100), Point(50, 100))
        assert len(self.session.buffer.history) == 2

    def test_selection_preview(self):
        self.session.select_tool(Tool.RECT)
        self.session.pointer_down(Point(30, 30))
        self.session.pointer_move(Point(10, 50))
        assert self.session.selection_preview() == Rect(10, 30, 20, 20)
        self.session.pointer_up()
        assert self.session.selection_preview() is None

    def test_switching_tool_cancels_gesture(self):
        self.session.select_tool(Tool.REDACT)
        self.session.pointer_down(Point(10, 10))
        self.session.select_tool(Tool.CROP)
        assert self.session.pointer_up() is None
        assert len(self.session.buffer.history) == 1


class TestCommandsAndHistory:
    def setup_method(self):
        self.changes: list[HistoryState] = []
        self.session = make_session(on_history_change=self.changes.append)

    def test_undo_redo_commands(self):
        self.session.redact(Rect(0, 0, 20, 20))
        self.session.execute(UndoCommand())
        assert self.session.image.getpixel((5, 5)) == WHITE
        self.session.execute(RedoCommand())
        assert self.session.image.getpixel((5, 5)) == BLACK

    def test_history_change_callback(self):
        self.session.redact(Rect(0, 0, 20, 20))
        self.session.undo()
        assert self.changes == [
            HistoryState(can_undo=False, can_redo=False),
            HistoryState(can_undo=True, can_redo=False),
            HistoryState(can_undo=False, can_redo=True),
        ]

    def test_unknown_command(self):
        with pytest.raises(TypeError):
            self.session.execute("undo")


class TestRenderAndExport:
    def setup_method(self):
        self.metadata = CaptureMetadata(url="https://news.example.com/a", captured_at=1_700_000_000_000)
        self.session = make_session(width=200, height=100, metadata=self.metadata)

    def test_plain_render_matches_buffer(self):
        assert self.session.render().size == (200, 100)

    def test_beautify_and_footer_dimensions(self):
        self.session.beautified = True
        self.session.has_footer = True
        assert self.session.render().size == (320, 260)

    def test_footer_only(self):
        self.session.has_footer = True
        image = self.session.render()
        assert image.size == (200, 140)
        assert image.getpixel((2, 138)) == BLACK

    def test_beautify_frame_is_opaque(self):
        image = render(Image.new("RGBA", (50, 50), WHITE), beautified=True)
        assert image.getpixel((0, 0))[3] == 255
        assert image.getpixel((85, 85)) == WHITE

    def test_export_returns_png(self):
        data = self.session.export()
        assert data.startswith(b"\x89PNG")
        assert Image.open(io.BytesIO(data)).size == (200, 100)

    def test_export_command_writes_file(self):
        path = os.path.join(tempfile.mkdtemp(), "capture.png")
        self.session.execute(ExportCommand(path=path))
        with Image.open(path) as image:
            assert image.size == (200, 100)

    def test_export_jpeg(self):
        data = self.session.export(fmt="jpg")
        assert Image.open(io.BytesIO(data)).format == "JPEG"

    def test_export_leaves_buffer_unchanged(self):
        self.session.beautified = True
        self.session.export()
        assert self.session.image.size == (200, 100)

    def test_footer_label(self):
        label = footer_label(self.metadata)
        assert label.startswith("news.example.com • ")

    def test_footer_label_without_metadata(self):
        assert footer_label(None).startswith("DeepScroll Capture • ")


class TestFromFragment:
    def setup_method(self):
        self.store = MemorySliceStore()
        page = make_page_image(width=60, height=1900)
        self.page = page
        self.ids = [
            self.store.put(png_bytes(page.crop((0, 0, 60, 1000))), 0),
            self.store.put(png_bytes(page.crop((0, 900, 60, 1900))), 900),
        ]

    def test_stitches_payload_ids(self):
        fragment = EditorPayload(ids=self.ids, meta=CaptureMetadata(device_pixel_ratio=1.0)).editor_url()
        session = EditorSession.from_fragment(fragment, self.store)
        assert session.image.tobytes() == self.page.tobytes()

    def test_legacy_payload(self):
        session = EditorSession.from_fragment("#[1, 2]", self.store)
        assert session.metadata is None
        assert session.image.size == (60, 1900)

    def test_missing_ids_are_skipped(self):
        session = EditorSession.from_fragment(EditorPayload(ids=[self.ids[0], 99]).encode(), self.store)
        assert session.image.size == (60, 1000)

    def test_nothing_found(self):
        with pytest.raises(NoCaptureDataError):
            EditorSession.from_fragment(EditorPayload(ids=[98, 99]).encode(), self.store)

    def test_corrupt_slice(self):
        bad = self.store.put(b"garbage", 0)
        with pytest.raises(NoCaptureDataError):
            EditorSession.from_fragment(EditorPayload(ids=[bad]).encode(), self.store)

    def test_malformed_ids_raise_protocol_error(self):
        with pytest.raises(ProtocolError):
            EditorSession.from_fragment('["x"]', self.store)


class TestBeautifyGradient:
    def test_tall_capture_corners_follow_stops(self):
        image = render(Image.new("RGBA", (100, 5000), WHITE), beautified=True)
        assert image.size == (220, 5120)
        top_left = image.getpixel((0, 0))
        bottom_right = image.getpixel((219, 5119))
        assert all(abs(a - b) <= 4 for a, b in zip(top_left, (0x1A, 0x1A, 0x2E, 255)))
        assert all(abs(a - b) <= 4 for a, b in zip(bottom_right, (0x0F, 0x34, 0x60, 255)))

    def test_frame_is_darker_in_the_middle_band(self):
        image = render(Image.new("RGBA", (100, 100), WHITE), beautified=True)
        # top-right sits on the middle stop, whose red is below the first stop's
        assert image.getpixel((219, 0))[0] < image.getpixel((0, 0))[0]
