"""Unit tests for the message protocol, editor payload and background service."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from deepscroll.capture.rate_limiter import CaptureRateLimiter
from deepscroll.core.errors import ProtocolError
from deepscroll.core.types import CaptureMetadata
from deepscroll.messaging.background import BackgroundService, TabContext
from deepscroll.messaging.payload import EDITOR_URL, EditorPayload
from deepscroll.messaging.protocol import (
    CaptureResponse,
    CaptureVisibleTab,
    MessageType,
    OpenEditor,
    StartDeepScroll,
    TriggerCaptureFlow,
    parse_message,
)
from deepscroll.store.slice_store import MemorySliceStore
from tests.fakes import FakeClock


def make_tab(tab_id=1, raster=b"png", **kw) -> TabContext:
    return TabContext(tab_id=tab_id, screenshot=AsyncMock(return_value=raster), **kw)


class TestProtocol:
    def test_wire_keys(self):
        assert CaptureVisibleTab(y=900).to_dict() == {"type": "CAPTURE_VISIBLE_TAB", "y": 900}
        assert OpenEditor(slice_ids=[1, 2], pixel_ratio=2.0).to_dict() == {
            "type": "OPEN_EDITOR",
            "sliceIds": [1, 2],
            "pixelRatio": 2.0,
        }
        assert TriggerCaptureFlow(tab_id=7).to_dict() == {"type": "TRIGGER_CAPTURE_FLOW", "tabId": 7}

    def test_parse_each_type(self):
        assert isinstance(parse_message({"type": "START_DEEPSCROLL"}), StartDeepScroll)
        assert parse_message({"type": "CAPTURE_VISIBLE_TAB", "y": "300"}).y == 300
        assert parse_message({"type": "OPEN_EDITOR", "sliceIds": [3]}).pixel_ratio == 1.0
        assert parse_message({"type": "TRIGGER_CAPTURE_FLOW", "tabId": 4}).tab_id == 4

    def test_typed_message_passes_through(self):
        message = StartDeepScroll()
        assert parse_message(message) is message

    def test_unknown_type(self):
        with pytest.raises(ProtocolError):
            parse_message({"type": "SELF_DESTRUCT"})

    def test_missing_required_field(self):
        with pytest.raises(ProtocolError):
            parse_message({"type": "CAPTURE_VISIBLE_TAB"})
        with pytest.raises(ProtocolError):
            parse_message({"type": "TRIGGER_CAPTURE_FLOW"})

    def test_non_integer_y(self):
        with pytest.raises(ProtocolError):
            parse_message({"type": "CAPTURE_VISIBLE_TAB", "y": "top"})
        with pytest.raises(ProtocolError):
            parse_message({"type": "CAPTURE_VISIBLE_TAB", "y": None})

    def test_message_type_values(self):
        assert StartDeepScroll.type is MessageType.START_DEEPSCROLL

    def test_capture_response(self):
        assert CaptureResponse(success=True, slice_id=5).to_dict() == {"success": True, "sliceId": 5}
        assert CaptureResponse(success=False, error="quota").to_dict() == {"success": False, "error": "quota"}
        assert CaptureResponse.from_dict(None) == CaptureResponse(success=False, error="no response")


class TestEditorPayload:
    def test_current_format(self):
        meta = CaptureMetadata(url="https://example.com", title="Ex", captured_at=1.0, device_pixel_ratio=2.0)
        decoded = EditorPayload.decode(EditorPayload(ids=[1, 2, 3], meta=meta).encode())
        assert decoded.ids == [1, 2, 3]
        assert decoded.meta == meta

    def test_full_url_and_hash(self):
        url = EditorPayload(ids=[4]).editor_url()
        assert url.startswith(EDITOR_URL + "#")
        assert EditorPayload.decode(url).ids == [4]
        assert EditorPayload.decode("#" + EditorPayload(ids=[4]).encode()).ids == [4]

    def test_legacy_array(self):
        decoded = EditorPayload.decode("%5B1%2C2%5D")
        assert decoded.ids == [1, 2]
        assert decoded.meta is None

    def test_empty_fragment(self):
        with pytest.raises(ProtocolError):
            EditorPayload.decode("#")

    def test_malformed_json(self):
        with pytest.raises(ProtocolError):
            EditorPayload.decode("#%7Bnope")

    def test_non_integer_ids(self):
        with pytest.raises(ProtocolError):
            EditorPayload.decode('["a"]')
        with pytest.raises(ProtocolError):
            EditorPayload.decode('{"ids": [1, {"id": 2}]}')

    def test_ids_must_be_a_list(self):
        with pytest.raises(ProtocolError):
            EditorPayload.decode('{"ids": 5}')

    def test_unexpected_json_type(self):
        with pytest.raises(ProtocolError):
            EditorPayload.decode("42")


class TestBackgroundService:
    def setup_method(self):
        self.clock = FakeClock()
        self.store = MemorySliceStore()
        self.opened: list[str] = []
        self.service = BackgroundService(
            self.store,
            limiter=CaptureRateLimiter(self.store, clock=self.clock, sleep=self.clock.sleep),
            editor_opener=self.opened.append,
        )

    # ------------------------------------------------------------------ CAPTURE_VISIBLE_TAB

    @pytest.mark.asyncio
    async def test_capture_stores_slice(self):
        tab = make_tab(raster=b"tile")
        response = await self.service.handle({"type": "CAPTURE_VISIBLE_TAB", "y": 300}, sender=tab)
        assert response == {"success": True, "sliceId": 1}
        assert self.store.get(1).y_offset == 300
        tab.screenshot.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_capture_failure_response(self):
        tab = TabContext(tab_id=1, screenshot=AsyncMock(side_effect=RuntimeError("Tab has been closed")))
        response = await self.service.handle(CaptureVisibleTab(y=0).to_dict(), sender=tab)
        assert response["success"] is False
        assert "closed" in response["error"]

    @pytest.mark.asyncio
    async def test_capture_without_sender(self):
        response = await self.service.handle(CaptureVisibleTab(y=0).to_dict())
        assert response["success"] is False

    @pytest.mark.asyncio
    async def test_captures_from_two_tabs_share_the_limit(self):
        await self.service.handle(CaptureVisibleTab(y=0).to_dict(), sender=make_tab(1))
        await self.service.handle(CaptureVisibleTab(y=0).to_dict(), sender=make_tab(2))
        assert self.clock.sleeps == [pytest.approx(0.8)]

    # ------------------------------------------------------------------ OPEN_EDITOR

    @pytest.mark.asyncio
    async def test_open_editor_builds_payload(self):
        tab = make_tab(url="https://example.com/thread", title="Thread")
        result = await self.service.handle(OpenEditor(slice_ids=[1, 2], pixel_ratio=2.0).to_dict(), sender=tab)
        assert result is None
        assert self.opened == [self.service.last_editor_url]
        payload = EditorPayload.decode(self.opened[0])
        assert payload.ids == [1, 2]
        assert payload.meta.url == "https://example.com/thread"
        assert payload.meta.title == "Thread"
        assert payload.meta.device_pixel_ratio == 2.0
        assert payload.meta.captured_at > 0

    @pytest.mark.asyncio
    async def test_open_editor_reads_page(self):
        page = MagicMock()
        page.url = "https://example.com/live"
        page.title = AsyncMock(return_value="Live")
        tab = make_tab(page=page)
        await self.service.handle(OpenEditor(slice_ids=[1]).to_dict(), sender=tab)
        meta = EditorPayload.decode(self.service.last_editor_url).meta
        assert (meta.url, meta.title) == ("https://example.com/live", "Live")

    # ------------------------------------------------------------------ TRIGGER_CAPTURE_FLOW

    @pytest.mark.asyncio
    async def test_trigger_sends_start(self):
        tab = make_tab(tab_id=3, deliver=AsyncMock())
        self.service.register_tab(tab)
        response = await self.service.handle(TriggerCaptureFlow(tab_id=3).to_dict())
        assert response == {"success": True}
        await self.service.drain()
        tab.deliver.assert_awaited_once_with({"type": "START_DEEPSCROLL"})

    @pytest.mark.asyncio
    async def test_trigger_unknown_tab_is_logged(self, caplog):
        await self.service.handle(TriggerCaptureFlow(tab_id=404).to_dict())
        await self.service.drain()
        assert "tab 404" in caplog.text

    @pytest.mark.asyncio
    async def test_trigger_delivery_failure_is_swallowed(self):
        tab = make_tab(tab_id=5, deliver=AsyncMock(side_effect=RuntimeError("Cannot access chrome:// URL")))
        self.service.register_tab(tab)
        assert await self.service.handle(TriggerCaptureFlow(tab_id=5).to_dict()) == {"success": True}
        await self.service.drain()

    @pytest.mark.asyncio
    async def test_start_message_ignored(self):
        assert await self.service.handle(StartDeepScroll().to_dict()) is None

    def test_unregister(self):
        self.service.register_tab(make_tab(tab_id=9))
        self.service.unregister_tab(9)
        assert self.service.get_tab(9) is None
