# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
GPS data stamp compositor.

Turns a raw camera frame plus a :class:`CaptureContext` into a single JPEG
with a legible overlay: darkening gradient, decorative map glyph on the
right, and a bottom-up block of text on the left.

The output depends only on the frame pixels and the context. Nothing here
reads the clock or any global state.
"""

import math
from dataclasses import dataclass
from typing import Callable, List, Optional

from PIL import Image

from .context import CaptureContext
from .errors import EncodingFailure
from .exif import build_gps_exif
from .surface import DrawingSurface, FontSpec, PillowSurface

COMPASS_POINTS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")

DEFAULT_TIME_FORMAT = "%d/%m/%Y, %H:%M:%S"
DEFAULT_QUALITY = 85
VERIFIED_BADGE = "✓ GPS VERIFIED"
MAP_CAPTION = "GPS MAP"
MAX_ADDRESS_LINES = 2

WHITE = (255, 255, 255, 255)
SECONDARY = (0xE2, 0xE8, 0xF0, 255)
BADGE_GREEN = (0x22, 0xC5, 0x5E, 255)
PIN_RED = (0xEF, 0x44, 0x44, 255)

# Band colour stops: (offset into band, RGBA)
BAND_STOPS = (
    (0.0, (0, 0, 0, 0)),
    (0.3, (0, 0, 0, int(round(0.6 * 255)))),
    (1.0, (0, 0, 0, int(round(0.9 * 255)))),
)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compass_label(heading: float) -> str:
    """
    8-point compass label for a heading in degrees.

    Example:
        >>> compass_label(0), compass_label(45), compass_label(359)
        ('N', 'NE', 'N')
    """
    normalized = heading % 360
    return COMPASS_POINTS[_round_half_up(normalized / 45) % 8]


def wrap_words(text: str, max_width: float, measure: Callable[[str], float]) -> List[str]:
    """
    Greedy word wrap.

    A word wider than ``max_width`` gets a line of its own, so the loop
    always advances. The result is never empty.
    """
    words = text.split()
    if not words:
        return [text.strip()]

    lines = []
    line = ""
    for word in words:
        candidate = f"{line} {word}" if line else word
        if line and measure(candidate) > max_width:
            lines.append(line)
            line = word
        else:
            line = candidate
    lines.append(line)
    return lines


def stats_line(context: CaptureContext) -> str:
    """Secondary stats joined by " | "; absent fields are left out."""
    parts = []
    if context.altitude is not None:
        parts.append(f"Alt: {_round_half_up(context.altitude)}m")
    parts.append(f"Acc: ±{_round_half_up(context.accuracy)}m")
    if context.heading is not None:
        parts.append(f"Dir: {context.heading}° {compass_label(context.heading)}")
    if context.temperature is not None:
        parts.append(f"Tmp: {context.temperature:g}°C")
    return " | ".join(parts)


@dataclass(frozen=True)
class StampLayout:
    """Geometry of the overlay for a given canvas size."""
    width: int
    height: int
    margin: float
    band_top: float
    bottom_y: float
    map_size: float
    map_x: float
    map_y: float
    text_max_width: float
    base_font_size: int
    line_height: float

    @classmethod
    def for_size(cls, width: int, height: int) -> 'StampLayout':
        margin = width * 0.04
        bottom_y = height - margin
        map_size = width * 0.25
        map_x = width - margin - map_size
        base_font_size = max(1, int(math.floor(width * 0.035)))
        return cls(
            width=width,
            height=height,
            margin=margin,
            band_top=height - height * 0.4,
            bottom_y=bottom_y,
            map_size=map_size,
            map_x=map_x,
            map_y=bottom_y - map_size,
            text_max_width=map_x - margin - margin / 2,
            base_font_size=base_font_size,
            line_height=base_font_size * 1.5,
        )


def _draw_map_glyph(surface: DrawingSurface, layout: StampLayout) -> None:
    x, y, size = layout.map_x, layout.map_y, layout.map_size
    box = (x, y, x + size, y + size)

    surface.fill_rect(box, (255, 255, 255, int(round(0.1 * 255))))
    surface.stroke_rect(box, (255, 255, 255, int(round(0.8 * 255))), width=2)

    grid = (255, 255, 255, int(round(0.3 * 255)))
    for fraction in (1 / 3, 2 / 3):
        surface.line((x + size * fraction, y), (x + size * fraction, y + size), grid)
        surface.line((x, y + size * fraction), (x + size, y + size * fraction), grid)

    surface.fill_circle((x + size / 2, y + size / 2), size * 0.08, PIN_RED)

    caption_size = max(1, int(math.floor(size * 0.15)))
    surface.draw_text(
        (x + size / 2, y + size - caption_size / 2),
        MAP_CAPTION,
        FontSpec(caption_size, bold=True),
        WHITE,
        anchor="md",
        shadow=True,
    )


def render_stamp(
    surface: DrawingSurface,
    context: CaptureContext,
    time_format: str = DEFAULT_TIME_FORMAT,
) -> StampLayout:
    """
    Draw the data stamp onto ``surface`` (which already holds the frame).

    Returns:
        The layout that was used
    """
    layout = StampLayout.for_size(surface.width, surface.height)
    base = layout.base_font_size
    left = layout.margin

    surface.fill_vertical_gradient((0, layout.band_top, layout.width, layout.height), BAND_STOPS)
    _draw_map_glyph(surface, layout)

    y = layout.bottom_y

    surface.draw_text((left, y), stats_line(context), FontSpec(int(base * 0.8), "mono"), SECONDARY, shadow=True)
    y -= layout.line_height

    mono = FontSpec(base, "mono")
    surface.draw_text((left, y), context.captured_at.strftime(time_format), mono, WHITE, shadow=True)
    y -= layout.line_height

    surface.draw_text((left, y), f"Lat : {context.latitude:.6f}", mono, WHITE, shadow=True)
    y -= layout.line_height
    surface.draw_text((left, y), f"Lng : {context.longitude:.6f}", mono, WHITE, shadow=True)
    y -= layout.line_height * 1.2

    address_font = FontSpec(int(base * 1.1), bold=True)
    lines = wrap_words(
        context.address,
        layout.text_max_width,
        lambda text: surface.measure_text(text, address_font),
    )
    # Keep the tail: the most local part of an address comes last
    for line in reversed(lines[-MAX_ADDRESS_LINES:]):
        surface.draw_text((left, y), line, address_font, WHITE, shadow=True)
        y -= layout.line_height * 1.1

    surface.draw_text((left, y), VERIFIED_BADGE, FontSpec(base, bold=True), BADGE_GREEN, shadow=True)
    return layout


def composite(
    frame: Image.Image,
    context: CaptureContext,
    quality: int = DEFAULT_QUALITY,
    time_format: str = DEFAULT_TIME_FORMAT,
    embed_exif: bool = True,
) -> bytes:
    """
    Stamp ``frame`` with ``context`` and encode it as JPEG.

    Args:
        frame: Raw captured frame (drawn at native size, unscaled)
        context: Capture data to stamp
        quality: JPEG quality (1-95)
        time_format: strftime format for the capture time line
        embed_exif: Also write GPS EXIF tags

    Returns:
        JPEG bytes

    Raises:
        EncodingFailure: If the frame cannot be drawn or encoded
    """
    try:
        surface = PillowSurface.from_frame(frame)
    except (OSError, ValueError) as e:
        raise EncodingFailure(f"Unusable frame: {e}") from e

    render_stamp(surface, context, time_format)

    exif: Optional[bytes] = build_gps_exif(context) if embed_exif else None
    return surface.encode(quality, exif=exif)

