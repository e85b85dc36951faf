"""Tunable constants for capture and editing."""

from __future__ import annotations

import os
from dataclasses import dataclass

# Capture timing (milliseconds)
SETTLE_DELAY_MS = 500  # after each pre-roll scroll
RENDER_DELAY_MS = 1000  # after each capture-loop scroll
MIN_CAPTURE_INTERVAL_MS = 800  # quota is ~2 captures/sec

# Capture geometry and safety bounds
OVERLAP_PX = 100
MAX_SLICES = 50
MAX_HEIGHT_GROWTH = 3

# Editor
BEAUTIFY_PADDING = 60
FOOTER_HEIGHT = 40
ARROW_HEAD_SIZE = 25
LINE_WIDTH = 6
RECT_LINE_WIDTH = 8
BLUR_FACTOR = 0.1
MIN_ARROW_LENGTH = 10
MIN_SELECTION_SIZE = 2
MIN_CROP_SIZE = 10
ANNOTATION_COLOR = "#ef4444"
REDACT_COLOR = "#000000"
HISTORY_LIMIT = 20
TEXT_SIZE = 24

_DEFAULT_STORE_DIR = os.path.join(os.path.expanduser("~"), ".deepscroll_slices")


def default_store_dir() -> str:
    return os.environ.get("DEEPSCROLL_STORE_DIR") or _DEFAULT_STORE_DIR


@dataclass(frozen=True)
class CaptureConfig:
    settle_delay_ms: int = SETTLE_DELAY_MS
    render_delay_ms: int = RENDER_DELAY_MS
    overlap_px: int = OVERLAP_PX
    max_slices: int = MAX_SLICES
    max_height_growth: float = MAX_HEIGHT_GROWTH
    min_capture_interval_ms: int = MIN_CAPTURE_INTERVAL_MS


@dataclass(frozen=True)
class EditorConfig:
    beautify_padding: int = BEAUTIFY_PADDING
    footer_height: int = FOOTER_HEIGHT
    arrow_head_size: int = ARROW_HEAD_SIZE
    line_width: int = LINE_WIDTH
    rect_line_width: int = RECT_LINE_WIDTH
    blur_factor: float = BLUR_FACTOR
    min_arrow_length: int = MIN_ARROW_LENGTH
    min_selection_size: int = MIN_SELECTION_SIZE
    min_crop_size: int = MIN_CROP_SIZE
    annotation_color: str = ANNOTATION_COLOR
    redact_color: str = REDACT_COLOR
    history_limit: int = HISTORY_LIMIT
    text_size: int = TEXT_SIZE
