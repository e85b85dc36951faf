from deepscroll.stitch.stitcher import Stitcher, Tile, compute_overlaps

__all__ = ["Stitcher", "Tile", "compute_overlaps"]
