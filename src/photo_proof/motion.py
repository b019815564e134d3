# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Shake detection from device rotation rates.

Each sample's rotation-rate norm is folded into a single-pole low-pass
filter. The capture gate reads the smoothed value to decide whether the
hand is steady enough to take the shot.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from .config import GateConfig
from .errors import SensorUnavailable
from .sensors import ListenerProvider, Subscription

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MotionSample:
    """Instantaneous rotation rates in degrees/second. Missing axes count as 0."""
    alpha: Optional[float] = None
    beta: Optional[float] = None
    gamma: Optional[float] = None

    @property
    def magnitude(self) -> float:
        return math.sqrt(
            (self.alpha or 0.0) ** 2
            + (self.beta or 0.0) ** 2
            + (self.gamma or 0.0) ** 2
        )


class StabilityState:
    """Smoothed shake magnitude. Starts at 0 and is only changed by :meth:`set`."""

    def __init__(self):
        self._value = 0.0

    @property
    def value(self) -> float:
        return self._value

    def set(self, value: float) -> None:
        if value < 0:
            raise ValueError(f"Stability cannot be negative: {value}")
        self._value = value


class MotionMonitor:
    """
    Maintains the shake magnitude from a stream of :class:`MotionSample`.

    Without a motion sensor the state simply stays at its initial 0, which
    the capture gate reads as "stable".
    """

    def __init__(
        self,
        state: Optional[StabilityState] = None,
        config: Optional[GateConfig] = None,
    ):
        self.state = state if state is not None else StabilityState()
        self.retain = (config or GateConfig()).smoothing_retain
        self.samples_seen = 0

    def observe(self, sample: MotionSample) -> None:
        smoothed = self.state.value * self.retain + sample.magnitude * (1.0 - self.retain)
        self.state.set(smoothed)
        self.samples_seen += 1

    def current_stability(self) -> float:
        return self.state.value

    def attach(self, provider: Optional[ListenerProvider]) -> Subscription:
        """Start observing ``provider``; a missing provider is not an error."""
        if provider is None:
            logger.debug(f"{SensorUnavailable.__name__}: no motion sensor, assuming stable")
            return Subscription()
        return provider.subscribe(self.observe)
