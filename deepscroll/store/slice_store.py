"""Slice store: key-value blob storage for captured tiles."""

from __future__ import annotations

import json
import time
from abc import ABC, abstractmethod
from pathlib import Path

from deepscroll.core.config import default_store_dir
from deepscroll.core.types import SliceRecord


class SliceStore(ABC):
    """Tiles keyed by auto-incrementing integer ids."""

    @abstractmethod
    def put(self, raster: bytes, y_offset: int | None = None) -> int:
        """Store a tile and return its new id."""

    @abstractmethod
    def get(self, slice_id: int) -> SliceRecord | None: ...

    @abstractmethod
    def get_all(self) -> list[SliceRecord]:
        """All records in id (= capture) order."""

    @abstractmethod
    def clear(self) -> None: ...


class MemorySliceStore(SliceStore):
    def __init__(self) -> None:
        self._records: dict[int, SliceRecord] = {}
        self._next_id = 1

    def put(self, raster: bytes, y_offset: int | None = None) -> int:
        slice_id = self._next_id
        self._next_id += 1
        self._records[slice_id] = SliceRecord(
            id=slice_id, raster=raster, y_offset=y_offset, created_at=time.time() * 1000
        )
        return slice_id

    def get(self, slice_id: int) -> SliceRecord | None:
        return self._records.get(slice_id)

    def get_all(self) -> list[SliceRecord]:
        return [self._records[k] for k in sorted(self._records)]

    def clear(self) -> None:
        # ids keep increasing after a clear, like an IndexedDB autoIncrement store
        self._records.clear()


class FileSliceStore(SliceStore):
    """
    Filesystem slice store.

    Directory layout::

        {store_dir}/
            index.json            # {"next_id": N, "slices": {id: {...}}}
            {id}.png              # raw tile bytes
    """

    def __init__(self, store_dir: str | None = None) -> None:
        self._dir = Path(store_dir or default_store_dir())
        self._dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @property
    def _index_path(self) -> Path:
        return self._dir / "index.json"

    def _load_index(self) -> dict:
        try:
            with open(self._index_path, encoding="utf-8") as f:
                index = json.load(f)
        except (FileNotFoundError, json.JSONDecodeError):
            return {"next_id": 1, "slices": {}}
        if not isinstance(index, dict):
            return {"next_id": 1, "slices": {}}
        index.setdefault("next_id", 1)
        index.setdefault("slices", {})
        return index

    def _save_index(self, index: dict) -> None:
        with open(self._index_path, "w", encoding="utf-8") as f:
            json.dump(index, f, indent=2)

    def _raster_path(self, slice_id: int) -> Path:
        return self._dir / f"{slice_id}.png"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def put(self, raster: bytes, y_offset: int | None = None) -> int:
        index = self._load_index()
        slice_id = int(index["next_id"])
        self._raster_path(slice_id).write_bytes(raster)
        index["slices"][str(slice_id)] = {
            "y_offset": y_offset,
            "created_at": time.time() * 1000,
        }
        index["next_id"] = slice_id + 1
        self._save_index(index)
        return slice_id

    def get(self, slice_id: int) -> SliceRecord | None:
        entry = self._load_index()["slices"].get(str(slice_id))
        if entry is None:
            return None
        try:
            raster = self._raster_path(slice_id).read_bytes()
        except OSError:
            return None
        return SliceRecord(
            id=int(slice_id),
            raster=raster,
            y_offset=entry.get("y_offset"),
            created_at=entry.get("created_at", 0.0),
        )

    def get_all(self) -> list[SliceRecord]:
        ids = sorted(int(k) for k in self._load_index()["slices"])
        records = [self.get(i) for i in ids]
        return [r for r in records if r is not None]

    def clear(self) -> None:
        index = self._load_index()
        for key in index["slices"]:
            try:
                self._raster_path(int(key)).unlink()
            except FileNotFoundError:
                pass
        index["slices"] = {}
        self._save_index(index)
