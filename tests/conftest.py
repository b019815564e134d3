# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""Pytest configuration and fixtures."""

import asyncio
from datetime import datetime

import pytest

from photo_proof.context import CaptureContext
from photo_proof.frames import MockFrameSource
from photo_proof.records import ProofRecord


class FakeClock:
    """
    Manual clock for the capture gate.

    ``sleep`` advances time instantly, runs scheduled actions whose time has
    come, then yields to the event loop once.
    """

    def __init__(self):
        self.now = 0.0
        self._scheduled = []
        self._every_tick = []

    def __call__(self) -> float:
        return self.now

    def at(self, when: float, action) -> None:
        self._scheduled.append([when, action, False])

    def every_tick(self, action) -> None:
        self._every_tick.append(action)

    async def sleep(self, seconds: float) -> None:
        self.now += seconds
        for entry in self._scheduled:
            when, action, fired = entry
            if not fired and self.now >= when - 1e-9:
                entry[2] = True
                action()
        for action in self._every_tick:
            action()
        await asyncio.sleep(0)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def full_context():
    """Context with every optional field populated."""
    return CaptureContext(
        latitude=12.971599,
        longitude=77.594566,
        accuracy=8.4,
        captured_at=datetime(2026, 10, 19, 14, 3, 5),
        address="Shop 4, Brigade Road, Shanthala Nagar, Ashok Nagar, Bengaluru, Karnataka 560025, India",
        altitude=920.6,
        heading=135,
        temperature=24.5,
    )


@pytest.fixture
def frame():
    return MockFrameSource((640, 480), seed=7).grab()


def _make_record(n: int = 1, notes: str = "") -> ProofRecord:
    return ProofRecord(
        image=b"\xff\xd8\xff\xe0fake-jpeg-" + str(n).encode(),
        executive_id="3",
        executive_name="Mike Field",
        timestamp=f"2026-10-19T14:0{n % 10}:00",
        latitude=12.9716,
        longitude=77.5946,
        address="Brigade Road, Bengaluru",
        campaign="Diwali Display",
        notes=notes or f"item {n}",
    )


@pytest.fixture
def make_record():
    return _make_record
