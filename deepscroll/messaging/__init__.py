from deepscroll.messaging.background import BackgroundService, TabContext
from deepscroll.messaging.payload import EditorPayload
from deepscroll.messaging.protocol import (
    CaptureResponse,
    CaptureVisibleTab,
    MessageType,
    OpenEditor,
    StartDeepScroll,
    TriggerCaptureFlow,
    parse_message,
)

__all__ = [
    "BackgroundService",
    "CaptureResponse",
    "CaptureVisibleTab",
    "EditorPayload",
    "MessageType",
    "OpenEditor",
    "StartDeepScroll",
    "TabContext",
    "TriggerCaptureFlow",
    "parse_message",
]
