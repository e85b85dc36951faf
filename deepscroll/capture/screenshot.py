"""Raw viewport screenshot acquisition."""

from __future__ import annotations

from playwright.async_api import Page

from deepscroll.core.types import CaptureFailureKind

# Substrings of browser error messages → failure kind
_FAILURE_PATTERNS: list[tuple[str, CaptureFailureKind]] = [
    ("max_capture_visible_tab_calls_per_second", CaptureFailureKind.QUOTA_EXCEEDED),
    ("quota", CaptureFailureKind.QUOTA_EXCEEDED),
    ("permission", CaptureFailureKind.PERMISSION_DENIED),
    ("not allowed", CaptureFailureKind.PERMISSION_DENIED),
    ("has been closed", CaptureFailureKind.TAB_CLOSED),
    ("target closed", CaptureFailureKind.TAB_CLOSED),
    ("discarded", CaptureFailureKind.TAB_CLOSED),
]


def classify_failure(exc: BaseException) -> CaptureFailureKind:
    message = str(exc).lower()
    for pattern, kind in _FAILURE_PATTERNS:
        if pattern in message:
            return kind
    return CaptureFailureKind.UNKNOWN


class PlaywrightScreenshotter:
    """Captures the visible viewport of a page as PNG bytes."""

    def __init__(self, page: Page) -> None:
        self._page = page

    async def __call__(self) -> bytes:
        # full_page=False: tiles are viewport-sized, the scroll loop does the rest
        return await self._page.screenshot(type="png", full_page=False)
