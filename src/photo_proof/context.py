# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""Snapshot of everything needed to stamp a photo."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .sensors import LocationFix


def fallback_address(latitude: float, longitude: float) -> str:
    """Raw coordinate text used when reverse geocoding is unavailable."""
    return f"{latitude:.5f}, {longitude:.5f}"


@dataclass(frozen=True)
class CaptureContext:
    """Immutable capture data, created when a frame is committed for stamping."""
    latitude: float
    longitude: float
    accuracy: float
    captured_at: datetime
    address: str
    altitude: Optional[float] = None
    heading: Optional[int] = None  # 0-359, None when no compass
    temperature: Optional[float] = None  # degrees Celsius

    @classmethod
    def from_fix(
        cls,
        fix: LocationFix,
        captured_at: datetime,
        address: Optional[str] = None,
        heading: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> 'CaptureContext':
        """Build a context from a fix plus whatever enrichment is available."""
        return cls(
            latitude=fix.latitude,
            longitude=fix.longitude,
            accuracy=fix.accuracy,
            altitude=fix.altitude,
            captured_at=captured_at,
            address=address or fallback_address(fix.latitude, fix.longitude),
            heading=heading,
            temperature=temperature,
        )
