"""
Scroll host capability: everything the resolver and orchestrator need from a page.

ScrollHost is the seam that keeps DOM measurement and scrolling out of the
capture logic. PlaywrightScrollHost implements it on a live Playwright page by
injecting a small helper object (window.__deepscroll) that keeps a weak registry
of enumerated elements, so elements inside shadow roots stay addressable by id
without keeping detached nodes alive.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from deepscroll.core.errors import InjectionError
from deepscroll.core.types import CaptureMetadata, ElementInfo, ScrollTarget


class ScrollHost(ABC):
    """Page capabilities used during a capture session."""

    async def prepare(self) -> None:
        """Make the host ready for a session. Raises InjectionError on restricted pages."""

    @abstractmethod
    async def document_dimensions(self) -> tuple[int, int]:
        """(document scroll height, window viewport height)."""

    @abstractmethod
    async def enumerate_elements(self) -> list[ElementInfo]:
        """Every element, depth-first, including those inside shadow roots."""

    @abstractmethod
    async def dimensions(self, target: ScrollTarget) -> tuple[int, int]:
        """(scroll height, client height) of the target."""

    @abstractmethod
    async def get_scroll_top(self, target: ScrollTarget) -> int: ...

    @abstractmethod
    async def set_scroll_top(self, target: ScrollTarget, y: int) -> None: ...

    @abstractmethod
    async def dispatch_scroll_event(self, target: ScrollTarget) -> None:
        """Fire a synthetic scroll event so scroll-driven lazy loaders run."""

    @abstractmethod
    async def get_visibility(self, element_id: str) -> str:
        """Inline style visibility ("" when unset)."""

    @abstractmethod
    async def set_visibility(self, element_id: str, value: str) -> None: ...

    async def has_virtualized_content(self) -> bool:
        return False

    async def metadata(self) -> CaptureMetadata:
        return CaptureMetadata(captured_at=time.time() * 1000)


# ---------------------------------------------------------------------------
# Playwright implementation
# ---------------------------------------------------------------------------

_INSTALL_JS = """
() => {
    if (window.__deepscroll) return;
    const ids = new WeakMap();
    const refs = new Map();
    let nextId = 0;

    const idOf = (el) => {
        let id = ids.get(el);
        if (id === undefined) {
            id = String(nextId++);
            ids.set(el, id);
            refs.set(id, new WeakRef(el));
        }
        return id;
    };
    const resolve = (id) => {
        if (id === null) return null;
        const ref = refs.get(id);
        return (ref && ref.deref()) || null;
    };
    const prune = () => {
        for (const [id, ref] of refs) {
            if (ref.deref() === undefined) refs.delete(id);
        }
    };

    const enumerate = () => {
        prune();
        const out = [];
        const traverse = (node, inShadow) => {
            if (node.nodeType === Node.ELEMENT_NODE) {
                const style = window.getComputedStyle(node);
                out.push({
                    element_id: idOf(node),
                    overflow_y: style.overflowY,
                    position: style.position,
                    scroll_height: node.scrollHeight,
                    client_height: node.clientHeight,
                    in_shadow_root: inShadow,
                });
                if (node.shadowRoot) {
                    for (const child of node.shadowRoot.children) traverse(child, true);
                }
            }
            for (const child of node.children || []) traverse(child, inShadow);
        };
        traverse(document.documentElement, false);
        return out;
    };

    window.__deepscroll = {
        enumerate,
        documentDims: () => [document.documentElement.scrollHeight, window.innerHeight],
        dims: (id) => {
            const el = resolve(id);
            if (!el) return [document.documentElement.scrollHeight, window.innerHeight];
            return [el.scrollHeight, el.clientHeight];
        },
        scrollTop: (id) => {
            const el = resolve(id);
            return el ? el.scrollTop : window.scrollY;
        },
        scrollTo: (id, y) => {
            const el = resolve(id);
            if (el) el.scrollTop = y;
            else window.scrollTo(0, y);
        },
        fireScroll: (id) => {
            const el = resolve(id);
            (el || window).dispatchEvent(new Event('scroll', { bubbles: true }));
        },
        getVisibility: (id) => {
            const el = resolve(id);
            return el ? el.style.visibility : '';
        },
        setVisibility: (id, value) => {
            const el = resolve(id);
            if (el) el.style.visibility = value;
        },
        isVirtualized: () => [
            '[data-virtualized]',
            '.ReactVirtualized__Grid',
            '[class*="virtual"]',
            '[aria-rowcount]',
        ].some((sel) => document.querySelector(sel) !== null),
    };
}
"""


class PlaywrightScrollHost(ScrollHost):
    """ScrollHost backed by page.evaluate() on a live Playwright page."""

    def __init__(self, page: Page) -> None:
        self._page = page

    async def prepare(self) -> None:
        try:
            await self._page.evaluate(_INSTALL_JS)
        except PlaywrightError as exc:
            raise InjectionError(f"Cannot run capture script on {self._page.url}: {exc}") from exc

    async def _call(self, fn: str, *args):
        return await self._page.evaluate(
            f"(args) => window.__deepscroll.{fn}(...args)", list(args)
        )

    async def document_dimensions(self) -> tuple[int, int]:
        scroll_height, viewport_height = await self._call("documentDims")
        return int(scroll_height), int(viewport_height)

    async def enumerate_elements(self) -> list[ElementInfo]:
        raw: list[dict] = await self._call("enumerate")
        return [ElementInfo(**item) for item in raw]

    async def dimensions(self, target: ScrollTarget) -> tuple[int, int]:
        scroll_height, client_height = await self._call("dims", target.element_id)
        return int(scroll_height), int(client_height)

    async def get_scroll_top(self, target: ScrollTarget) -> int:
        return round(await self._call("scrollTop", target.element_id))

    async def set_scroll_top(self, target: ScrollTarget, y: int) -> None:
        await self._call("scrollTo", target.element_id, y)

    async def dispatch_scroll_event(self, target: ScrollTarget) -> None:
        await self._call("fireScroll", target.element_id)

    async def get_visibility(self, element_id: str) -> str:
        return await self._call("getVisibility", element_id) or ""

    async def set_visibility(self, element_id: str, value: str) -> None:
        await self._call("setVisibility", element_id, value)

    async def has_virtualized_content(self) -> bool:
        return bool(await self._call("isVirtualized"))

    async def metadata(self) -> CaptureMetadata:
        dpr = await self._page.evaluate("() => window.devicePixelRatio")
        return CaptureMetadata(
            url=self._page.url,
            title=await self._page.title(),
            captured_at=time.time() * 1000,
            device_pixel_ratio=float(dpr or 1),
        )
