# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
2D drawing surface used by the stamp compositor.

The compositor only talks to :class:`DrawingSurface`. :class:`PillowSurface`
is the Pillow backend: translucent primitives are rendered on their own
RGBA layer and alpha-composited so the photo shows through.
"""

import functools
import io
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFilter, ImageFont

from .errors import EncodingFailure

RGBA = Tuple[int, int, int, int]
Point = Tuple[float, float]
Box = Tuple[float, float, float, float]  # x0, y0, x1, y1


@dataclass(frozen=True)
class FontSpec:
    """Backend-independent font request."""
    size: int
    family: str = "sans"  # "sans" or "mono"
    bold: bool = False


class DrawingSurface(Protocol):
    width: int
    height: int

    def fill_rect(self, box: Box, color: RGBA) -> None: ...

    def fill_vertical_gradient(self, box: Box, stops: Sequence[Tuple[float, RGBA]]) -> None: ...

    def stroke_rect(self, box: Box, color: RGBA, width: int = 1) -> None: ...

    def line(self, start: Point, end: Point, color: RGBA, width: int = 1) -> None: ...

    def fill_circle(self, center: Point, radius: float, color: RGBA) -> None: ...

    def measure_text(self, text: str, font: FontSpec) -> float: ...

    def draw_text(
        self,
        xy: Point,
        text: str,
        font: FontSpec,
        color: RGBA,
        anchor: str = "ld",
        shadow: bool = False,
    ) -> None: ...

    def encode(self, quality: int, exif: Optional[bytes] = None) -> bytes: ...


_FONT_FILES = {
    ("sans", False): ("DejaVuSans.ttf", "LiberationSans-Regular.ttf", "Arial.ttf"),
    ("sans", True): ("DejaVuSans-Bold.ttf", "LiberationSans-Bold.ttf", "Arial Bold.ttf"),
    ("mono", False): ("DejaVuSansMono.ttf", "LiberationMono-Regular.ttf", "Courier New.ttf"),
    ("mono", True): ("DejaVuSansMono-Bold.ttf", "LiberationMono-Bold.ttf", "Courier New Bold.ttf"),
}


@functools.lru_cache(maxsize=64)
def load_font(spec: FontSpec) -> ImageFont.FreeTypeFont:
    """Resolve a FontSpec to a TrueType font, falling back to Pillow's bundled font."""
    size = max(1, int(spec.size))
    for filename in _FONT_FILES.get((spec.family, spec.bold), ()):
        try:
            return ImageFont.truetype(filename, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def _layer_size(box: Box) -> Tuple[int, int, int, int]:
    x0, y0, x1, y1 = (int(round(v)) for v in box)
    return x0, y0, max(0, x1 - x0), max(0, y1 - y0)


class PillowSurface:
    """DrawingSurface backed by an RGBA Pillow image."""

    SHADOW_RADIUS = 2

    def __init__(self, image: Image.Image):
        self.image = image.convert("RGBA")
        self.width, self.height = self.image.size

    @classmethod
    def from_frame(cls, frame: Image.Image) -> 'PillowSurface':
        """Start a surface whose base layer is ``frame`` at native size."""
        if frame.width <= 0 or frame.height <= 0:
            raise EncodingFailure(f"Invalid frame size: {frame.size}")
        return cls(frame)

    def _overlay(self) -> Tuple[Image.Image, ImageDraw.ImageDraw]:
        layer = Image.new("RGBA", self.image.size, (0, 0, 0, 0))
        return layer, ImageDraw.Draw(layer)

    def fill_rect(self, box: Box, color: RGBA) -> None:
        layer, draw = self._overlay()
        draw.rectangle(box, fill=color)
        self.image.alpha_composite(layer)

    def fill_vertical_gradient(self, box: Box, stops: Sequence[Tuple[float, RGBA]]) -> None:
        x0, y0, w, h = _layer_size(box)
        if w == 0 or h == 0:
            return

        positions = [offset for offset, _ in stops]
        # Sample the colour at each row centre, linear between stops
        t = (np.arange(h, dtype=np.float64) + 0.5) / h
        column = np.stack(
            [np.interp(t, positions, [color[c] for _, color in stops]) for c in range(4)],
            axis=-1,
        )
        band = np.broadcast_to(column[:, np.newaxis, :], (h, w, 4))
        layer = Image.fromarray(np.round(band).astype(np.uint8))
        self.image.alpha_composite(layer, dest=(x0, y0))

    def stroke_rect(self, box: Box, color: RGBA, width: int = 1) -> None:
        layer, draw = self._overlay()
        draw.rectangle(box, outline=color, width=width)
        self.image.alpha_composite(layer)

    def line(self, start: Point, end: Point, color: RGBA, width: int = 1) -> None:
        layer, draw = self._overlay()
        draw.line([start, end], fill=color, width=width)
        self.image.alpha_composite(layer)

    def fill_circle(self, center: Point, radius: float, color: RGBA) -> None:
        cx, cy = center
        layer, draw = self._overlay()
        draw.ellipse((cx - radius, cy - radius, cx + radius, cy + radius), fill=color)
        self.image.alpha_composite(layer)

    def measure_text(self, text: str, font: FontSpec) -> float:
        return ImageDraw.Draw(self.image).textlength(text, font=load_font(font))

    def draw_text(
        self,
        xy: Point,
        text: str,
        font: FontSpec,
        color: RGBA,
        anchor: str = "ld",
        shadow: bool = False,
    ) -> None:
        pil_font = load_font(font)
        if shadow:
            self._draw_shadow(xy, text, pil_font, anchor)

        layer, draw = self._overlay()
        draw.text(xy, text, font=pil_font, fill=color, anchor=anchor)
        self.image.alpha_composite(layer)

    def _draw_shadow(self, xy: Point, text: str, pil_font, anchor: str) -> None:
        # Blur only the text's neighbourhood, clipped to the canvas
        left, top, right, bottom = ImageDraw.Draw(self.image).textbbox(xy, text, font=pil_font, anchor=anchor)
        pad = self.SHADOW_RADIUS * 3
        x0 = max(0, int(left) - pad)
        y0 = max(0, int(top) - pad)
        x1 = min(self.width, int(right) + pad + 1)
        y1 = min(self.height, int(bottom) + pad + 1)
        if x1 <= x0 or y1 <= y0:
            return

        layer = Image.new("RGBA", (x1 - x0, y1 - y0), (0, 0, 0, 0))
        ImageDraw.Draw(layer).text(
            (xy[0] - x0, xy[1] - y0), text, font=pil_font, fill=(0, 0, 0, 255), anchor=anchor
        )
        self.image.alpha_composite(layer.filter(ImageFilter.GaussianBlur(self.SHADOW_RADIUS)), dest=(x0, y0))

    def encode(self, quality: int, exif: Optional[bytes] = None) -> bytes:
        """Flatten to JPEG bytes."""
        buffer = io.BytesIO()
        options = {"format": "JPEG", "quality": quality}
        if exif:
            options["exif"] = exif
        try:
            self.image.convert("RGB").save(buffer, **options)
        except (OSError, ValueError) as e:
            raise EncodingFailure(f"JPEG encoding failed: {e}") from e
        return buffer.getvalue()
