"""Drawing primitives applied directly to an edit buffer image."""

from __future__ import annotations

import math

from PIL import Image, ImageDraw, ImageFont

from deepscroll.core.config import EditorConfig
from deepscroll.core.types import Point, Rect

_DEFAULT = EditorConfig()

_BOLD_FONTS = ("DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf")


def to_buffer_coords(pos: Point | None, beautified: bool, padding: int = _DEFAULT.beautify_padding) -> Point:
    """Screen → buffer coordinates. The beautify frame is display-only."""
    if pos is None:
        return Point(0, 0)
    offset = padding if beautified else 0
    return Point(pos.x - offset, pos.y - offset)


def clip_rect(bounds: Rect, size: tuple[int, int]) -> Rect:
    width, height = size
    x0 = min(max(bounds.x, 0), width)
    y0 = min(max(bounds.y, 0), height)
    x1 = min(max(bounds.x + bounds.w, 0), width)
    y1 = min(max(bounds.y + bounds.h, 0), height)
    return Rect(x0, y0, x1 - x0, y1 - y0)


def load_font(size: int) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
    for name in _BOLD_FONTS:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def arrow_head_points(head: Point, tail: Point, head_size: int) -> list[tuple[float, float]]:
    """Triangle at `head`, opening back along the shaft at ±30°."""
    angle = math.atan2(head.y - tail.y, head.x - tail.x)
    return [
        (head.x, head.y),
        (
            head.x - head_size * math.cos(angle - math.pi / 6),
            head.y - head_size * math.sin(angle - math.pi / 6),
        ),
        (
            head.x - head_size * math.cos(angle + math.pi / 6),
            head.y - head_size * math.sin(angle + math.pi / 6),
        ),
    ]


def draw_arrow(image: Image.Image, head: Point, tail: Point, config: EditorConfig = _DEFAULT) -> bool:
    if math.hypot(head.x - tail.x, head.y - tail.y) < config.min_arrow_length:
        return False

    draw = ImageDraw.Draw(image)
    color = config.annotation_color
    draw.line([(tail.x, tail.y), (head.x, head.y)], fill=color, width=config.line_width, joint="curve")
    _round_cap(draw, tail, config.line_width, color)
    draw.polygon(arrow_head_points(head, tail, config.arrow_head_size), fill=color, outline=color)
    return True


def draw_rect(image: Image.Image, bounds: Rect, config: EditorConfig = _DEFAULT) -> bool:
    draw = ImageDraw.Draw(image)
    # strokeRect centres the stroke on the edge
    half = config.rect_line_width / 2
    draw.rectangle(
        [bounds.x - half, bounds.y - half, bounds.x + bounds.w + half, bounds.y + bounds.h + half],
        outline=config.annotation_color,
        width=config.rect_line_width,
    )
    return True


def draw_pen_line(image: Image.Image, start: Point, end: Point, config: EditorConfig = _DEFAULT) -> None:
    draw = ImageDraw.Draw(image)
    color = config.annotation_color
    draw.line([(start.x, start.y), (end.x, end.y)], fill=color, width=config.line_width)
    _round_cap(draw, start, config.line_width, color)
    _round_cap(draw, end, config.line_width, color)


def apply_redaction(image: Image.Image, bounds: Rect, config: EditorConfig = _DEFAULT) -> bool:
    if bounds.w < config.min_selection_size or bounds.h < config.min_selection_size:
        return False
    draw = ImageDraw.Draw(image)
    draw.rectangle([bounds.x, bounds.y, bounds.x + bounds.w - 1, bounds.y + bounds.h - 1], fill=config.redact_color)
    return True


def apply_pixelation(image: Image.Image, bounds: Rect, config: EditorConfig = _DEFAULT) -> bool:
    """
    Lossy mosaic: nearest-neighbour downsample by blur_factor, then upsample back
    over the same region with no smoothing. Not reversible.
    """
    if bounds.w < config.min_selection_size or bounds.h < config.min_selection_size:
        return False
    area = clip_rect(bounds, image.size)
    if area.w < config.min_selection_size or area.h < config.min_selection_size:
        return False

    sw = int(area.w * config.blur_factor) or 1
    sh = int(area.h * config.blur_factor) or 1
    region = image.crop(area.box)
    small = region.resize((sw, sh), Image.Resampling.NEAREST)
    image.paste(small.resize((area.w, area.h), Image.Resampling.NEAREST), (area.x, area.y))
    return True


def draw_text(image: Image.Image, text: str, pos: Point, config: EditorConfig = _DEFAULT) -> bool:
    if not text:
        return False
    draw = ImageDraw.Draw(image)
    font = load_font(config.text_size)
    # the point is the text baseline, as with canvas fillText
    if isinstance(font, ImageFont.FreeTypeFont):
        draw.text((pos.x, pos.y), text, fill=config.annotation_color, font=font, anchor="ls")
    else:
        draw.text((pos.x, pos.y - config.text_size), text, fill=config.annotation_color, font=font)
    return True


def crop_image(image: Image.Image, bounds: Rect, config: EditorConfig = _DEFAULT) -> Image.Image | None:
    """New image of exactly bounds.w × bounds.h, or None when the selection is too small."""
    if bounds.w < config.min_crop_size or bounds.h < config.min_crop_size:
        return None
    return image.crop(bounds.box)


def _round_cap(draw: ImageDraw.ImageDraw, at: Point, width: int, color: str) -> None:
    r = width / 2
    draw.ellipse([at.x - r, at.y - r, at.x + r, at.y + r], fill=color)
