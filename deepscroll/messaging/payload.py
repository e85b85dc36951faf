"""Editor bootstrap payload carried in the editor URL fragment."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, unquote

from deepscroll.core.errors import ProtocolError
from deepscroll.core.types import CaptureMetadata

EDITOR_URL = "deepscroll://editor/index.html"


@dataclass
class EditorPayload:
    ids: list[int]
    meta: CaptureMetadata | None = None  # None for legacy payloads

    def to_dict(self) -> dict[str, Any]:
        return {"ids": list(self.ids), "meta": self.meta.to_dict() if self.meta else None}

    def encode(self) -> str:
        return quote(json.dumps(self.to_dict()), safe="")

    def editor_url(self, base: str = EDITOR_URL) -> str:
        return f"{base}#{self.encode()}"

    @classmethod
    def decode(cls, fragment: str) -> EditorPayload:
        """
        Accepts a fragment with or without the leading '#', or a full editor URL.

        Legacy format is a bare JSON array of ids; the current format is
        {"ids": [...], "meta": {...}}.
        """
        if "#" in fragment:
            fragment = fragment.split("#", 1)[1]
        if not fragment:
            raise ProtocolError("Empty editor payload")
        try:
            data = json.loads(unquote(fragment))
        except json.JSONDecodeError as exc:
            raise ProtocolError(f"Malformed editor payload: {exc}") from exc

        if isinstance(data, list):
            return cls(ids=_parse_ids(data))
        if isinstance(data, dict):
            meta = data.get("meta")
            return cls(
                ids=_parse_ids(data.get("ids") or []),
                meta=CaptureMetadata.from_dict(meta) if isinstance(meta, dict) else None,
            )
        raise ProtocolError(f"Unexpected editor payload type: {type(data).__name__}")


def _parse_ids(raw: Any) -> list[int]:
    if not isinstance(raw, list):
        raise ProtocolError(f"Editor payload ids must be a list, got {type(raw).__name__}")
    try:
        return [int(i) for i in raw]
    except (TypeError, ValueError) as exc:
        raise ProtocolError(f"Invalid slice id in editor payload: {exc}") from exc
