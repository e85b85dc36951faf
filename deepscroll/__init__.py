from deepscroll.core.deepscroll import DeepScroll
from deepscroll.core.config import CaptureConfig, EditorConfig
from deepscroll.core.errors import (
    DeepScrollError,
    InjectionError,
    NoCaptureDataError,
    ProtocolError,
    StitchError,
)
from deepscroll.core.types import (
    CaptureFailure,
    CaptureMetadata,
    CaptureResult,
    CaptureState,
    CapturedSlice,
    Point,
    Rect,
    ScrollTarget,
    SliceCaptured,
    SliceRecord,
    Tool,
)
from deepscroll.editor.session import EditorSession

__all__ = [
    "DeepScroll",
    "EditorSession",
    "CaptureConfig",
    "EditorConfig",
    # Errors
    "DeepScrollError",
    "InjectionError",
    "NoCaptureDataError",
    "ProtocolError",
    "StitchError",
    # Types
    "CaptureFailure",
    "CaptureMetadata",
    "CaptureResult",
    "CaptureState",
    "CapturedSlice",
    "Point",
    "Rect",
    "ScrollTarget",
    "SliceCaptured",
    "SliceRecord",
    "Tool",
]
