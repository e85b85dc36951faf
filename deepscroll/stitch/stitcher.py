"""Stitching engine: composites overlapping viewport tiles into one raster."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from deepscroll.core.errors import NoCaptureDataError, StitchError
from deepscroll.core.types import SliceRecord
from deepscroll.store.slice_store import SliceStore

logger = logging.getLogger(__name__)


@dataclass
class Tile:
    y_offset: float  # CSS pixels, as measured by the scroll loop
    image: Image.Image


def compute_overlaps(
    offsets: list[float], heights: list[int], device_pixel_ratio: float = 1.0
) -> list[int]:
    """
    Rows of each tile already covered by the previous one, in device pixels.

    The first entry is always 0. A negative overlap (gap between tiles, e.g. after
    growth-adjusted scrolling) is clamped to 0 and never cropped negatively. Tiles
    are assumed vertically contiguous; reflow between captures is not corrected.
    """
    overlaps = [0] * len(offsets)
    for i in range(1, len(offsets)):
        prev_bottom_px = offsets[i - 1] * device_pixel_ratio + heights[i - 1]
        curr_top_px = offsets[i] * device_pixel_ratio
        overlap = round(prev_bottom_px - curr_top_px)
        overlaps[i] = min(max(0, overlap), heights[i])
    return overlaps


class Stitcher:
    """Reassembles a capture session into one continuous image."""

    def stitch(self, tiles: list[Tile], device_pixel_ratio: float = 1.0) -> Image.Image:
        """
        Paste the first tile at row 0, then only the non-overlapping bottom part
        of every following tile. Output width is the first tile's width.
        """
        if not tiles:
            raise NoCaptureDataError()

        heights = [t.image.height for t in tiles]
        overlaps = compute_overlaps(
            [t.y_offset for t in tiles], heights, device_pixel_ratio
        )
        width = tiles[0].image.width
        total_height = sum(heights) - sum(overlaps)

        stitched = Image.new("RGBA", (width, total_height))
        current_y = 0
        for tile, overlap in zip(tiles, overlaps):
            source_h = tile.image.height - overlap
            if source_h <= 0:
                continue
            part = tile.image.convert("RGBA").crop((0, overlap, width, tile.image.height))
            stitched.paste(part, (0, current_y))
            current_y += source_h

        logger.debug(
            "Stitched %d tiles into %dx%d (overlaps %s)", len(tiles), width, total_height, overlaps
        )
        return stitched

    def stitch_slices(
        self,
        slice_ids: list[int],
        store: SliceStore,
        device_pixel_ratio: float = 1.0,
    ) -> Image.Image:
        """Load tiles from the store and stitch them. Any load failure aborts the whole stitch."""
        records: list[SliceRecord] = []
        for slice_id in slice_ids:
            record = store.get(slice_id)
            if record is None:
                raise StitchError(f"Slice {slice_id} not found in store")
            records.append(record)
        return self.stitch_records(records, device_pixel_ratio)

    def stitch_records(
        self, records: list[SliceRecord], device_pixel_ratio: float = 1.0
    ) -> Image.Image:
        tiles: list[Tile] = []
        for record in records:
            try:
                image = Image.open(io.BytesIO(record.raster))
                image.load()
            except (UnidentifiedImageError, OSError) as exc:
                raise StitchError(f"Slice {record.id} could not be decoded: {exc}") from exc
            tiles.append(Tile(y_offset=record.y_offset or 0, image=image))
        return self.stitch(tiles, device_pixel_ratio)
