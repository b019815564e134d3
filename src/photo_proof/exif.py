# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
GPS EXIF block for stamped photos.

The visible stamp can be cropped away; the same position, heading and
capture time are also written to the standard EXIF GPS tags.
"""

from typing import Optional, Tuple

import piexif
import piexif.helper

from .context import CaptureContext

Rational = Tuple[int, int]


def to_dms_rational(value: float) -> Tuple[Rational, Rational, Rational]:
    """
    Convert decimal degrees to EXIF degrees/minutes/seconds rationals.

    Example:
        >>> to_dms_rational(12.5)
        ((12, 1), (30, 1), (0, 10000))
    """
    value = abs(value)
    degrees = int(value)
    minutes_float = (value - degrees) * 60
    minutes = int(minutes_float)
    seconds = int(round((minutes_float - minutes) * 60 * 10000))
    return (degrees, 1), (minutes, 1), (seconds, 10000)


def build_gps_exif(context: CaptureContext, software: Optional[str] = "photo-proof") -> bytes:
    """
    Build an EXIF block for ``context``.

    Args:
        context: Capture context to record
        software: Value for the Software tag (None to omit)

    Returns:
        EXIF bytes ready for ``Image.save(exif=...)``
    """
    gps = {
        piexif.GPSIFD.GPSVersionID: (2, 2, 0, 0),
        piexif.GPSIFD.GPSLatitudeRef: b"N" if context.latitude >= 0 else b"S",
        piexif.GPSIFD.GPSLatitude: to_dms_rational(context.latitude),
        piexif.GPSIFD.GPSLongitudeRef: b"E" if context.longitude >= 0 else b"W",
        piexif.GPSIFD.GPSLongitude: to_dms_rational(context.longitude),
    }

    if context.altitude is not None:
        gps[piexif.GPSIFD.GPSAltitudeRef] = 0 if context.altitude >= 0 else 1
        gps[piexif.GPSIFD.GPSAltitude] = (int(round(abs(context.altitude) * 100)), 100)

    if context.heading is not None:
        gps[piexif.GPSIFD.GPSImgDirectionRef] = b"M"
        gps[piexif.GPSIFD.GPSImgDirection] = (int(context.heading) % 360, 1)

    zeroth = {}
    if software:
        zeroth[piexif.ImageIFD.Software] = software.encode("utf-8")

    exif = {
        piexif.ExifIFD.DateTimeOriginal: context.captured_at.strftime("%Y:%m:%d %H:%M:%S").encode("ascii"),
        piexif.ExifIFD.UserComment: piexif.helper.UserComment.dump(context.address, encoding="unicode"),
    }

    return piexif.dump({"0th": zeroth, "Exif": exif, "GPS": gps, "1st": {}, "thumbnail": None})


def read_gps_exif(jpeg_bytes: bytes) -> dict:
    """Return the GPS IFD of an encoded JPEG (empty dict when absent)."""
    return piexif.load(jpeg_bytes).get("GPS", {})
