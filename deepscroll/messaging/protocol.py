"""
Typed messages exchanged between the page side and the background side.

Wire format (dict) keeps the camelCase keys of the extension protocol:

    START_DEEPSCROLL      {}                       → no response
    CAPTURE_VISIBLE_TAB   {y}                      → {success, sliceId} | {success, error}
    OPEN_EDITOR           {sliceIds, pixelRatio}   → no response
    TRIGGER_CAPTURE_FLOW  {tabId}                  → {success}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from deepscroll.core.errors import ProtocolError


class MessageType(str, Enum):
    START_DEEPSCROLL = "START_DEEPSCROLL"
    CAPTURE_VISIBLE_TAB = "CAPTURE_VISIBLE_TAB"
    OPEN_EDITOR = "OPEN_EDITOR"
    TRIGGER_CAPTURE_FLOW = "TRIGGER_CAPTURE_FLOW"


@dataclass
class StartDeepScroll:
    type: ClassVar[MessageType] = MessageType.START_DEEPSCROLL

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> StartDeepScroll:
        return cls()


@dataclass
class CaptureVisibleTab:
    y: int
    type: ClassVar[MessageType] = MessageType.CAPTURE_VISIBLE_TAB

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "y": self.y}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> CaptureVisibleTab:
        if "y" not in d:
            raise ProtocolError("CAPTURE_VISIBLE_TAB requires 'y'")
        try:
            y = int(d["y"])
        except (TypeError, ValueError) as exc:
            raise ProtocolError(f"CAPTURE_VISIBLE_TAB 'y' must be an integer: {exc}") from exc
        return cls(y=y)


@dataclass
class OpenEditor:
    slice_ids: list[int] = field(default_factory=list)
    pixel_ratio: float = 1.0
    type: ClassVar[MessageType] = MessageType.OPEN_EDITOR

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "sliceIds": list(self.slice_ids),
            "pixelRatio": self.pixel_ratio,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> OpenEditor:
        return cls(slice_ids=list(d.get("sliceIds") or []), pixel_ratio=d.get("pixelRatio") or 1.0)


@dataclass
class TriggerCaptureFlow:
    tab_id: int | str
    type: ClassVar[MessageType] = MessageType.TRIGGER_CAPTURE_FLOW

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "tabId": self.tab_id}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> TriggerCaptureFlow:
        if "tabId" not in d:
            raise ProtocolError("TRIGGER_CAPTURE_FLOW requires 'tabId'")
        return cls(tab_id=d["tabId"])


Message = StartDeepScroll | CaptureVisibleTab | OpenEditor | TriggerCaptureFlow

_MESSAGE_CLASSES: dict[str, type] = {
    MessageType.START_DEEPSCROLL.value: StartDeepScroll,
    MessageType.CAPTURE_VISIBLE_TAB.value: CaptureVisibleTab,
    MessageType.OPEN_EDITOR.value: OpenEditor,
    MessageType.TRIGGER_CAPTURE_FLOW.value: TriggerCaptureFlow,
}


def parse_message(raw: dict[str, Any] | Message) -> Message:
    """Turn a wire dict into its typed message. Typed messages pass through."""
    if not isinstance(raw, dict):
        return raw
    msg_type = raw.get("type")
    cls = _MESSAGE_CLASSES.get(msg_type)  # type: ignore[arg-type]
    if cls is None:
        raise ProtocolError(f"Unknown message type: {msg_type!r}")
    return cls.from_dict(raw)


@dataclass
class CaptureResponse:
    success: bool
    slice_id: int | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "sliceId": self.slice_id}
        return {"success": False, "error": self.error}

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> CaptureResponse:
        if not d:
            return cls(success=False, error="no response")
        return cls(success=bool(d.get("success")), slice_id=d.get("sliceId"), error=d.get("error"))
