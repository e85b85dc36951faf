"""In-memory stand-ins for a live page, used across the test suite."""

from __future__ import annotations

import io

from PIL import Image

from deepscroll.capture.host import ScrollHost
from deepscroll.core.errors import InjectionError
from deepscroll.core.types import CaptureMetadata, ElementInfo, ScrollTarget


class FakeClock:
    """Monotonic clock that only moves when something sleeps on it."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += max(0.0, seconds)


class FakeScrollHost(ScrollHost):
    """
    A document (or an inner element) of a given height.

    Scroll positions are clamped to the scrollable range like a real browser.
    `grow_by` adds that many pixels to the document on every scroll (infinite feed).
    """

    def __init__(
        self,
        document_height: int = 2000,
        viewport_height: int = 1000,
        *,
        elements: list[ElementInfo] | None = None,
        grow_by: int = 0,
        virtualized: bool = False,
        restricted: bool = False,
        dpr: float = 1.0,
    ) -> None:
        self.document_height = document_height
        self.viewport_height = viewport_height
        self.elements = elements or []
        self.grow_by = grow_by
        self.virtualized = virtualized
        self.restricted = restricted
        self.dpr = dpr

        self.scroll_tops: dict[str | None, int] = {}
        self.visibility: dict[str, str] = {el.element_id: "" for el in self.elements}
        self.scroll_calls: list[tuple[str | None, int]] = []
        self.scroll_events = 0
        self.visibility_writes: list[tuple[str, str]] = []

    @property
    def scroll_top(self) -> int:
        return self.scroll_tops.get(None, 0)

    def _element(self, element_id: str) -> ElementInfo:
        return next(el for el in self.elements if el.element_id == element_id)

    async def prepare(self) -> None:
        if self.restricted:
            raise InjectionError("Cannot access contents of the page")

    async def document_dimensions(self) -> tuple[int, int]:
        return self.document_height, self.viewport_height

    async def enumerate_elements(self) -> list[ElementInfo]:
        return list(self.elements)

    async def dimensions(self, target: ScrollTarget) -> tuple[int, int]:
        if target.is_window:
            return self.document_height, self.viewport_height
        el = self._element(target.element_id)
        return el.scroll_height, el.client_height

    async def get_scroll_top(self, target: ScrollTarget) -> int:
        return self.scroll_tops.get(target.element_id, 0)

    async def set_scroll_top(self, target: ScrollTarget, y: int) -> None:
        self.scroll_calls.append((target.element_id, y))
        scroll_height, client_height = await self.dimensions(target)
        self.scroll_tops[target.element_id] = max(0, min(y, scroll_height - client_height))
        if target.is_window:
            self.document_height += self.grow_by

    async def dispatch_scroll_event(self, target: ScrollTarget) -> None:
        self.scroll_events += 1

    async def get_visibility(self, element_id: str) -> str:
        return self.visibility.get(element_id, "")

    async def set_visibility(self, element_id: str, value: str) -> None:
        self.visibility_writes.append((element_id, value))
        self.visibility[element_id] = value

    async def has_virtualized_content(self) -> bool:
        return self.virtualized

    async def metadata(self) -> CaptureMetadata:
        return CaptureMetadata(
            url="https://example.com/feed", title="Feed", device_pixel_ratio=self.dpr
        )


def make_page_image(width: int = 200, height: int = 2000) -> Image.Image:
    """A tall page whose every row has a distinct colour."""
    image = Image.new("RGBA", (width, height))
    for y in range(height):
        image.paste((y % 256, (y // 256) % 256, 128, 255), (0, y, width, y + 1))
    return image


def png_bytes(image: Image.Image) -> bytes:
    out = io.BytesIO()
    image.save(out, format="PNG")
    return out.getvalue()


def viewport_screenshotter(host: FakeScrollHost, page_image: Image.Image):
    """Screenshot callable returning the viewport of `page_image` at the host's scroll position."""

    async def screenshot() -> bytes:
        top = host.scroll_top
        return png_bytes(page_image.crop((0, top, page_image.width, top + host.viewport_height)))

    return screenshot
