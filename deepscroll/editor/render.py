"""Display/export rendering: beautify frame and metadata footer around the buffer."""

from __future__ import annotations

import datetime
from urllib.parse import urlparse

from PIL import Image, ImageChops, ImageDraw, ImageFont

from deepscroll.core.config import EditorConfig
from deepscroll.core.types import CaptureMetadata

_GRADIENT_STOPS = [(0.0, (0x1A, 0x1A, 0x2E)), (0.5, (0x16, 0x21, 0x3E)), (1.0, (0x0F, 0x34, 0x60))]
_CORNER_RADIUS = 12
_BORDER_COLOR = (255, 255, 255, 26)
_FOOTER_FONT_SIZE = 14


def footer_label(metadata: CaptureMetadata | None) -> str:
    if metadata is not None and metadata.captured_at:
        when = datetime.datetime.fromtimestamp(metadata.captured_at / 1000)
    else:
        when = datetime.datetime.now()
    source = "DeepScroll Capture"
    if metadata is not None and metadata.url:
        source = urlparse(metadata.url).hostname or source
    return f"{source} • {when:%Y-%m-%d %H:%M:%S}"


def _gradient_lut(channel: int) -> list[int]:
    """256-entry lookup table mapping gradient position to one colour channel."""
    lut = []
    for i in range(256):
        t = i / 255
        for (t0, c0), (t1, c1) in zip(_GRADIENT_STOPS, _GRADIENT_STOPS[1:]):
            if t0 <= t <= t1:
                k = (t - t0) / (t1 - t0)
                lut.append(round(c0[channel] + (c1[channel] - c0[channel]) * k))
                break
    return lut


def _gradient(size: tuple[int, int]) -> Image.Image:
    """Diagonal three-stop gradient, top-left to bottom-right."""
    # position map: mean of a horizontal and a vertical 0..255 ramp
    ramp = Image.linear_gradient("L")
    vertical = ramp.resize(size, Image.Resampling.BILINEAR)
    horizontal = ramp.transpose(Image.Transpose.TRANSPOSE).resize(size, Image.Resampling.BILINEAR)
    position = ImageChops.add(horizontal, vertical, scale=2.0)
    bands = [position.point(_gradient_lut(c)) for c in range(3)]
    return Image.merge("RGBA", (*bands, Image.new("L", size, 255)))


def render(
    image: Image.Image,
    *,
    beautified: bool = False,
    has_footer: bool = False,
    metadata: CaptureMetadata | None = None,
    config: EditorConfig | None = None,
) -> Image.Image:
    """Compose what the user sees (and exports): buffer, optional frame, optional footer."""
    config = config or EditorConfig()
    w, h = image.size
    padding = config.beautify_padding if beautified else 0
    footer_h = config.footer_height if has_footer else 0
    size = (w + padding * 2, h + padding * 2 + footer_h)

    if beautified:
        canvas = _gradient(size)
        mask = Image.new("L", (w, h), 0)
        ImageDraw.Draw(mask).rounded_rectangle([0, 0, w - 1, h - 1], radius=_CORNER_RADIUS, fill=255)
        canvas.paste(image, (padding, padding), mask)
        overlay = Image.new("RGBA", size, (0, 0, 0, 0))
        ImageDraw.Draw(overlay).rounded_rectangle(
            [padding, padding, padding + w - 1, padding + h - 1],
            radius=_CORNER_RADIUS,
            outline=_BORDER_COLOR,
            width=1,
        )
        canvas = Image.alpha_composite(canvas, overlay)
    else:
        canvas = Image.new("RGBA", size, (0, 0, 0, 0))
        canvas.paste(image, (0, 0))

    if has_footer:
        draw = ImageDraw.Draw(canvas)
        footer_y = padding + h
        draw.rectangle([padding, footer_y, padding + w - 1, footer_y + footer_h - 1], fill="#000000")
        font = ImageFont.load_default(size=_FOOTER_FONT_SIZE)
        draw.text(
            (size[0] / 2, footer_y + footer_h / 2),
            footer_label(metadata),
            fill="#ffffff",
            font=font,
            anchor="mm" if isinstance(font, ImageFont.FreeTypeFont) else None,
        )

    return canvas
