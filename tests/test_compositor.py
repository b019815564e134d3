# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""Tests for the GPS data stamp compositor."""

import dataclasses
import io

import numpy as np
import piexif
import piexif.helper
import pytest
from PIL import Image

from photo_proof.compositor import (
    MAP_CAPTION,
    VERIFIED_BADGE,
    StampLayout,
    compass_label,
    composite,
    render_stamp,
    stats_line,
    wrap_words,
)
from photo_proof.errors import EncodingFailure
from photo_proof.exif import read_gps_exif, to_dms_rational
from photo_proof.frames import load_frame


class RecordingSurface:
    """DrawingSurface that records calls instead of drawing."""

    def __init__(self, width=640, height=480):
        self.width = width
        self.height = height
        self.calls = []

    def fill_rect(self, box, color):
        self.calls.append(("fill_rect", box))

    def fill_vertical_gradient(self, box, stops):
        self.calls.append(("gradient", box))

    def stroke_rect(self, box, color, width=1):
        self.calls.append(("stroke_rect", box))

    def line(self, start, end, color, width=1):
        self.calls.append(("line", (start, end)))

    def fill_circle(self, center, radius, color):
        self.calls.append(("circle", (center, radius)))

    def measure_text(self, text, font):
        return len(text) * font.size * 0.6

    def draw_text(self, xy, text, font, color, anchor="ld", shadow=False):
        self.calls.append(("text", (xy, text, font, anchor, shadow)))

    def encode(self, quality, exif=None):
        return b""

    @property
    def texts(self):
        return [args for name, args in self.calls if name == "text"]


class TestCompassLabel:
    """8-point compass labels."""

    @pytest.mark.parametrize("heading,label", [
        (0, "N"),
        (44, "NE"),
        (45, "NE"),
        (22.5, "NE"),
        (67.5, "E"),
        (90, "E"),
        (180, "S"),
        (270, "W"),
        (337.5, "N"),
        (359, "N"),
        (-45, "NW"),
        (405, "NE"),
    ])
    def test_labels(self, heading, label):
        assert compass_label(heading) == label


class TestWrapWords:
    """Greedy word wrapping."""

    def test_fits_on_one_line(self):
        assert wrap_words("short text", 100, len) == ["short text"]

    def test_wraps_greedily(self):
        assert wrap_words("the quick brown fox", 10, len) == ["the quick", "brown fox"]

    def test_long_word_gets_own_line(self):
        assert wrap_words("a supercalifragilistic b", 5, len) == ["a", "supercalifragilistic", "b"]

    def test_first_word_too_long(self):
        assert wrap_words("abcdefghijkl", 3, len) == ["abcdefghijkl"]

    def test_empty_text_yields_one_line(self):
        assert wrap_words("", 10, len) == [""]
        assert wrap_words("   ", 10, len) == [""]

    def test_collapses_whitespace(self):
        assert wrap_words("a   b\tc", 100, len) == ["a b c"]

    def test_every_line_fits_unless_single_word(self):
        text = "Shop 4, Brigade Road, Shanthala Nagar, Ashok Nagar, Bengaluru, Karnataka 560025"
        for line in wrap_words(text, 20, len):
            assert len(line) <= 20 or " " not in line


class TestStatsLine:
    """Secondary stats text."""

    def test_all_fields(self, full_context):
        assert stats_line(full_context) == "Alt: 921m | Acc: ±8m | Dir: 135° SE | Tmp: 24.5°C"

    def test_only_accuracy(self, full_context):
        context = dataclasses.replace(full_context, altitude=None, heading=None, temperature=None)
        assert stats_line(context) == "Acc: ±8m"

    def test_whole_temperature(self, full_context):
        context = dataclasses.replace(full_context, altitude=None, heading=0, temperature=30.0)
        assert stats_line(context) == "Acc: ±8m | Dir: 0° N | Tmp: 30°C"

    def test_half_metre_rounds_up(self, full_context):
        context = dataclasses.replace(full_context, altitude=10.5, accuracy=2.5, heading=None, temperature=None)
        assert stats_line(context) == "Alt: 11m | Acc: ±3m"


class TestStampLayout:
    """Overlay geometry scales with the canvas."""

    def test_geometry(self):
        layout = StampLayout.for_size(640, 480)

        assert layout.margin == pytest.approx(25.6)
        assert layout.band_top == pytest.approx(288.0)
        assert layout.bottom_y == pytest.approx(454.4)
        assert layout.map_size == pytest.approx(160.0)
        assert layout.map_x == pytest.approx(454.4)
        assert layout.map_y == pytest.approx(294.4)
        assert layout.text_max_width == pytest.approx(416.0)
        assert layout.base_font_size == 22
        assert layout.line_height == pytest.approx(33.0)

    def test_text_column_left_of_map(self):
        for width, height in [(320, 240), (1280, 960), (1080, 1920)]:
            layout = StampLayout.for_size(width, height)
            assert layout.margin + layout.text_max_width < layout.map_x
            assert layout.map_y + layout.map_size == pytest.approx(layout.bottom_y)


class TestRenderStamp:
    """Draw order and text content against a recording surface."""

    def test_draw_order(self, full_context):
        surface = RecordingSurface()
        render_stamp(surface, full_context)

        names = [name for name, _ in surface.calls]
        assert names[:8] == [
            "gradient", "fill_rect", "stroke_rect", "line", "line", "line", "line", "circle",
        ]
        assert names[8:] == ["text"] * (len(names) - 8)

        texts = [text for _, text, _, _, _ in surface.texts]
        assert texts[0] == MAP_CAPTION
        assert texts[1] == "Alt: 921m | Acc: ±8m | Dir: 135° SE | Tmp: 24.5°C"
        assert texts[2] == "19/10/2026, 14:03:05"
        assert texts[3] == "Lat : 12.971599"
        assert texts[4] == "Lng : 77.594566"
        assert texts[-1] == VERIFIED_BADGE

    def test_gradient_band(self, full_context):
        surface = RecordingSurface()
        render_stamp(surface, full_context)
        assert surface.calls[0] == ("gradient", (0, pytest.approx(288.0), 640, 480))

    def test_address_keeps_last_two_lines(self, full_context):
        surface = RecordingSurface()
        layout = render_stamp(surface, full_context)

        font_size = int(layout.base_font_size * 1.1)
        lines = wrap_words(full_context.address, layout.text_max_width, lambda t: len(t) * font_size * 0.6)
        assert len(lines) > 2

        address_texts = [text for _, text, _, _, _ in surface.texts[5:-1]]
        assert address_texts == [lines[-1], lines[-2]]

    def test_very_wide_address_draws_at_most_two_lines(self, full_context):
        address = "Plot 12 " + "X" * 500 + " Near Metro Station, Bengaluru, Karnataka 560025, India"
        context = dataclasses.replace(full_context, address=address)
        surface = RecordingSurface()
        layout = render_stamp(surface, context)

        font_size = int(layout.base_font_size * 1.1)
        assert 500 * font_size * 0.6 > 10 * layout.text_max_width

        address_texts = [text for _, text, _, _, _ in surface.texts[5:-1]]
        assert 1 <= len(address_texts) <= 2
        assert surface.texts[-1][1] == VERIFIED_BADGE

    def test_unbroken_address_only(self, full_context):
        context = dataclasses.replace(full_context, address="Y" * 500)
        surface = RecordingSurface()
        render_stamp(surface, context)

        assert [text for _, text, _, _, _ in surface.texts[5:-1]] == ["Y" * 500]

    def test_short_address_single_line(self, full_context):
        context = dataclasses.replace(full_context, address="Brigade Road")
        surface = RecordingSurface()
        render_stamp(surface, context)

        assert [text for _, text, _, _, _ in surface.texts[5:-1]] == ["Brigade Road"]

    def test_bottom_up_positions(self, full_context):
        surface = RecordingSurface()
        layout = render_stamp(surface, full_context)
        ys = [xy[1] for xy, _, _, _, _ in surface.texts[1:]]

        assert ys[0] == pytest.approx(layout.bottom_y)
        assert ys[1] == pytest.approx(layout.bottom_y - 33)
        assert ys[2] == pytest.approx(layout.bottom_y - 66)
        assert ys[3] == pytest.approx(layout.bottom_y - 99)
        assert ys[4] == pytest.approx(layout.bottom_y - 99 - 39.6)
        assert ys[5] == pytest.approx(layout.bottom_y - 99 - 39.6 - 36.3)
        assert ys[6] == pytest.approx(layout.bottom_y - 99 - 39.6 - 72.6)
        assert all(x == pytest.approx(layout.margin) for (x, _), _, _, _, _ in surface.texts[1:])

    def test_text_has_shadow(self, full_context):
        surface = RecordingSurface()
        render_stamp(surface, full_context)
        assert all(shadow for _, _, _, _, shadow in surface.texts)

    def test_custom_time_format(self, full_context):
        surface = RecordingSurface()
        render_stamp(surface, full_context, time_format="%Y-%m-%d %H:%M")
        assert surface.texts[2][1] == "2026-10-19 14:03"


def _decode(jpeg: bytes) -> np.ndarray:
    return np.asarray(Image.open(io.BytesIO(jpeg)).convert("RGB"), dtype=np.float64)


class TestComposite:
    """Rendering a real frame with Pillow."""

    def test_output_is_jpeg_at_native_size(self, frame, full_context):
        output = composite(frame, full_context)

        image = Image.open(io.BytesIO(output))
        assert image.format == "JPEG"
        assert image.size == frame.size

    def test_deterministic(self, frame, full_context):
        assert composite(frame, full_context) == composite(frame, full_context)

    def test_bottom_band_darkened(self, frame, full_context):
        output = _decode(composite(frame, full_context))
        original = np.asarray(frame.convert("RGB"), dtype=np.float64)

        patch = (slice(468, 480), slice(100, 400))
        assert output[patch].mean() < original[patch].mean() * 0.5

    def test_top_untouched(self, frame, full_context):
        output = _decode(composite(frame, full_context))
        original = np.asarray(frame.convert("RGB"), dtype=np.float64)

        patch = (slice(0, 180), slice(0, 640))
        assert abs(output[patch].mean() - original[patch].mean()) < 2.0

    def test_gps_exif(self, frame, full_context):
        output = composite(frame, full_context)
        gps = read_gps_exif(output)

        assert gps[piexif.GPSIFD.GPSLatitudeRef] == b"N"
        assert gps[piexif.GPSIFD.GPSLatitude] == to_dms_rational(12.971599)
        assert gps[piexif.GPSIFD.GPSLongitudeRef] == b"E"
        assert gps[piexif.GPSIFD.GPSAltitude] == (92060, 100)
        assert gps[piexif.GPSIFD.GPSImgDirection] == (135, 1)

        exif = piexif.load(output)["Exif"]
        assert exif[piexif.ExifIFD.DateTimeOriginal] == b"2026:10:19 14:03:05"
        assert piexif.helper.UserComment.load(exif[piexif.ExifIFD.UserComment]) == full_context.address

    def test_southern_western_refs(self, frame, full_context):
        context = dataclasses.replace(full_context, latitude=-33.8688, longitude=-151.2093)
        gps = read_gps_exif(composite(frame, context))

        assert gps[piexif.GPSIFD.GPSLatitudeRef] == b"S"
        assert gps[piexif.GPSIFD.GPSLongitudeRef] == b"W"

    def test_no_heading_no_direction_tag(self, frame, full_context):
        context = dataclasses.replace(full_context, heading=None, altitude=None)
        gps = read_gps_exif(composite(frame, context))

        assert piexif.GPSIFD.GPSImgDirection not in gps
        assert piexif.GPSIFD.GPSAltitude not in gps

    def test_exif_disabled(self, frame, full_context):
        output = composite(frame, full_context, embed_exif=False)
        assert read_gps_exif(output) == {}

    def test_zero_size_frame(self, full_context):
        with pytest.raises(EncodingFailure):
            composite(Image.new("RGB", (0, 0)), full_context)

    def test_undecodable_frame(self):
        with pytest.raises(EncodingFailure):
            load_frame(b"definitely not an image")

    def test_dms_rational(self):
        assert to_dms_rational(12.5) == ((12, 1), (30, 1), (0, 10000))
        assert to_dms_rational(-0.25) == ((0, 1), (15, 1), (0, 10000))

    def test_very_wide_address_encodes(self, frame, full_context):
        context = dataclasses.replace(full_context, address="Z" * 500 + " Bengaluru")
        output = composite(frame, context)
        assert Image.open(io.BytesIO(output)).size == frame.size
