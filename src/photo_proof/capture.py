# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Capture gate: decides when the shutter fires.

If the device is steady (or the user forces the shot) the frame is taken
straight away. Otherwise the gate polls the motion monitor until the shake
settles below the release threshold or the stabilization timeout passes,
whichever comes first. Only one capture may be in flight at a time.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional

from PIL import Image

from .compositor import composite
from .config import GateConfig
from .context import CaptureContext
from .errors import CaptureInProgress
from .frames import FrameSource
from .motion import MotionMonitor
from .sensors import LocationFix, LocationTracker

logger = logging.getLogger(__name__)

# Tolerance for float drift when comparing elapsed time to the deadline
_DEADLINE_EPSILON = 1e-6


@dataclass(frozen=True)
class CapturedProof:
    """Result of one accepted capture request."""
    image: bytes  # stamped JPEG
    context: CaptureContext
    waited: float  # seconds spent stabilizing (0 when none)
    forced: bool


class ShutterFeedback:
    """Default shutter effect: log the click and raise a short flash flag."""

    FLASH_DURATION = 0.2  # seconds

    def __init__(self):
        self.flash = False
        self.shots = 0

    def fire(self) -> None:
        self.shots += 1
        self.flash = True
        logger.info(f"Shutter #{self.shots}")
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.flash = False
            return
        loop.call_later(self.FLASH_DURATION, self._end_flash)

    def _end_flash(self) -> None:
        self.flash = False


ContextFactory = Callable[[LocationFix], CaptureContext]
Compositor = Callable[[Image.Image, CaptureContext], bytes]


class CaptureGate:
    """
    Single-flight capture with motion-based stabilization.

    Args:
        monitor: Motion monitor providing the current shake magnitude
        tracker: Location tracker; a fix is required before any capture
        frames: Source of the raw camera frame
        context_factory: Builds the CaptureContext at commit time
        compositor: Frame compositor (defaults to :func:`composite`)
        shutter: Shutter feedback with a ``fire()`` method
        config: Stabilization thresholds
        clock: Monotonic clock in seconds
        sleep: Awaitable sleep used between stability polls
    """

    def __init__(
        self,
        monitor: MotionMonitor,
        tracker: LocationTracker,
        frames: FrameSource,
        context_factory: ContextFactory,
        compositor: Compositor = composite,
        shutter: Optional[ShutterFeedback] = None,
        config: Optional[GateConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        config = config or GateConfig()
        config.validate()

        self.config = config
        self.monitor = monitor
        self.tracker = tracker
        self.frames = frames
        self.context_factory = context_factory
        self.compositor = compositor
        self.shutter = shutter or ShutterFeedback()
        self._clock = clock
        self._sleep = sleep

        self._inflight: Optional[asyncio.Task] = None
        self._release: Optional[asyncio.Event] = None
        self._stabilizing = False

    @property
    def stabilizing(self) -> bool:
        """True while a capture is waiting for the device to settle."""
        return self._stabilizing

    @property
    def busy(self) -> bool:
        return self._inflight is not None

    async def request_capture(self, force: bool = False) -> CapturedProof:
        """
        Take one stamped photo.

        A forced request that arrives while another capture is stabilizing
        ends that wait at once and resolves to the same photo.

        Raises:
            NoLocationFix: No location fix has been received yet
            CaptureInProgress: Another capture is already running
            EncodingFailure: The frame could not be stamped or encoded
        """
        if self._inflight is not None:
            if force and self._stabilizing and self._release is not None:
                logger.info("Forced capture: releasing stabilization wait")
                self._release.set()
                return await asyncio.shield(self._inflight)
            raise CaptureInProgress("A capture is already in progress")

        # Precondition checked before any side effect
        self.tracker.require_fix()

        self._inflight = asyncio.ensure_future(self._capture(force))
        try:
            return await self._inflight
        finally:
            self._inflight = None

    async def _capture(self, force: bool) -> CapturedProof:
        waited = 0.0
        stability = self.monitor.current_stability()
        if not force and stability >= self.config.shake_trigger:
            logger.debug(f"Shake {stability:.2f} deg/s, stabilizing")
            waited = await self._wait_for_stability()

        self.shutter.fire()

        context = self.context_factory(self.tracker.require_fix())
        frame = self.frames.grab()
        image = self.compositor(frame, context)

        logger.info(
            f"Captured proof at {context.latitude:.6f}, {context.longitude:.6f} "
            f"({len(image)} bytes, waited {waited:.2f}s)"
        )
        return CapturedProof(image=image, context=context, waited=waited, forced=force)

    async def _wait_for_stability(self) -> float:
        """Poll until steady, released, or timed out. Returns seconds waited."""
        self._release = asyncio.Event()
        self._stabilizing = True
        start = self._clock()
        deadline = start + self.config.stabilize_timeout

        try:
            while True:
                remaining = deadline - self._clock()
                released = await self._pause(min(self.config.poll_interval, max(remaining, 0.0)))

                if released:
                    break

                if self.monitor.current_stability() < self.config.shake_release:
                    break

                if self._clock() >= deadline - _DEADLINE_EPSILON:
                    logger.info(
                        f"Stabilization timeout after {self.config.stabilize_timeout:.1f}s "
                        f"(shake {self.monitor.current_stability():.2f} deg/s)"
                    )
                    break

            return self._clock() - start

        finally:
            self._stabilizing = False
            self._release = None

    async def _pause(self, seconds: float) -> bool:
        """Sleep for ``seconds`` unless released first. Returns True if released."""
        release = self._release
        sleeper = asyncio.ensure_future(self._sleep(seconds))
        waiter = asyncio.ensure_future(release.wait())
        try:
            await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, waiter):
                if not task.done():
                    task.cancel()
        return release.is_set()


def local_now() -> datetime:
    """Current local time, timezone aware."""
    return datetime.now().astimezone()


def context_factory_for(
    heading: Callable[[], Optional[int]],
    address: Callable[[], Optional[str]],
    temperature: Callable[[], Optional[float]],
    now: Callable[[], datetime] = local_now,
) -> ContextFactory:
    """Build a ContextFactory that snapshots the given live readings."""
    def _factory(fix: LocationFix) -> CaptureContext:
        return CaptureContext.from_fix(
            fix,
            captured_at=now(),
            address=address(),
            heading=heading(),
            temperature=temperature(),
        )

    return _factory
