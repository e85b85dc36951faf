"""Shared types and dataclasses for DeepScroll."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class CaptureState(str, Enum):
    IDLE = "idle"
    PRE_ROLL = "pre_roll"
    CAPTURING = "capturing"
    RESTORING = "restoring"
    DONE = "done"
    FAILED = "failed"


class Tool(str, Enum):
    SELECT = "select"
    BLUR = "blur"
    REDACT = "redact"
    DRAW = "draw"
    ARROW = "arrow"
    RECT = "rect"
    TEXT = "text"
    CROP = "crop"


class CaptureFailureKind(str, Enum):
    QUOTA_EXCEEDED = "quota_exceeded"
    PERMISSION_DENIED = "permission_denied"
    TAB_CLOSED = "tab_closed"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ScrollTarget:
    """The element whose scroll position advances page content."""

    element_id: str | None = None  # None → the document/window itself

    @property
    def is_window(self) -> bool:
        return self.element_id is None

    def __str__(self) -> str:
        return "window" if self.is_window else f"element {self.element_id}"


WINDOW = ScrollTarget()


@dataclass
class ElementInfo:
    """One element as seen by the target resolver and the fixed-element pass."""

    element_id: str
    overflow_y: str = "visible"
    position: str = "static"
    scroll_height: int = 0
    client_height: int = 0
    in_shadow_root: bool = False

    @property
    def is_scrollable(self) -> bool:
        return (
            self.overflow_y in ("scroll", "auto")
            and self.scroll_height > self.client_height
        )

    @property
    def is_pinned(self) -> bool:
        """True for elements that would repeat in every viewport tile."""
        return self.position in ("fixed", "sticky")


@dataclass
class HiddenElement:
    element_id: str
    original_visibility: str  # inline style value, "" when none was set


@dataclass
class CapturedSlice:
    """A slice reference produced by the capture loop."""

    y_offset: int
    slice_id: int


@dataclass
class CaptureSession:
    """Mutable per-run state, owned by the orchestrator."""

    target: ScrollTarget
    total_height: int
    viewport_height: int
    step: int
    initial_height: int
    slices: list[CapturedSlice] = field(default_factory=list)

    @property
    def slice_count(self) -> int:
        return len(self.slices)


@dataclass(frozen=True)
class SliceRecord:
    """A stored tile. Immutable once written."""

    id: int
    raster: bytes
    y_offset: int | None = None
    created_at: float = 0.0


@dataclass
class CaptureMetadata:
    url: str = ""
    title: str = ""
    captured_at: float = 0.0  # epoch milliseconds
    device_pixel_ratio: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "capturedAt": self.captured_at,
            "devicePixelRatio": self.device_pixel_ratio,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> CaptureMetadata:
        return cls(
            url=d.get("url") or "",
            title=d.get("title") or "",
            captured_at=d.get("capturedAt") or 0.0,
            device_pixel_ratio=d.get("devicePixelRatio") or 1.0,
        )


@dataclass
class SliceCaptured:
    slice_id: int
    y_offset: int


@dataclass
class CaptureFailure:
    error: str
    kind: CaptureFailureKind = CaptureFailureKind.UNKNOWN


CaptureOutcome = SliceCaptured | CaptureFailure


@dataclass
class CaptureResult:
    """What the orchestrator returns after a capture session."""

    slices: list[CapturedSlice]
    state: CaptureState
    metadata: CaptureMetadata
    message: str = ""
    stop_reason: str = ""  # "bottom", "max_slices", "height_growth"

    @property
    def is_empty(self) -> bool:
        return not self.slices

    @property
    def slice_ids(self) -> list[int]:
        return [s.slice_id for s in self.slices]


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    w: int
    h: int

    @classmethod
    def from_points(cls, p1: Point, p2: Point) -> Rect:
        """Bounding box of two corner points, in whole pixels."""
        x0, x1 = sorted((p1.x, p2.x))
        y0, y1 = sorted((p1.y, p2.y))
        return cls(x=round(x0), y=round(y0), w=round(x1 - x0), h=round(y1 - y0))

    @property
    def box(self) -> tuple[int, int, int, int]:
        """(left, upper, right, lower) as Pillow expects it."""
        return (self.x, self.y, self.x + self.w, self.y + self.h)
