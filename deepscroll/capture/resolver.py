"""Scroll target resolution: which element actually scrolls the page content."""

from __future__ import annotations

import logging

from deepscroll.capture.host import ScrollHost
from deepscroll.core.types import WINDOW, ElementInfo, ScrollTarget

logger = logging.getLogger(__name__)


class ScrollTargetResolver:
    """
    Picks the window when the document itself scrolls. Otherwise the page is a
    fixed-viewport app that scrolls an inner container: the scrollable element
    (overflow-y scroll/auto with overflowing content) with the largest
    scrollHeight wins, shadow DOM included.
    """

    async def resolve(self, host: ScrollHost) -> ScrollTarget:
        scroll_height, viewport_height = await host.document_dimensions()
        if scroll_height > viewport_height:
            return WINDOW

        try:
            elements = await host.enumerate_elements()
        except Exception:
            logger.warning("Element enumeration failed; falling back to window", exc_info=True)
            return WINDOW

        best = self.pick_candidate(elements)
        if best is None:
            return WINDOW
        return ScrollTarget(element_id=best.element_id)

    @staticmethod
    def pick_candidate(elements: list[ElementInfo]) -> ElementInfo | None:
        best: ElementInfo | None = None
        for el in elements:
            if not el.is_scrollable:
                continue
            # strict > keeps the first element on ties (document order)
            if best is None or el.scroll_height > best.scroll_height:
                best = el
        return best
