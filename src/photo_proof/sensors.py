# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Push-style sensor subscriptions: location fixes, compass heading and
rotation-rate samples.

Providers are anything with a ``subscribe`` method returning a
:class:`Subscription`. :class:`EventSource` and :class:`LocationSource` are
in-process providers used by the CLI and by tests; device bindings only need
to publish into them.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, Protocol, TypeVar

from .errors import NoLocationFix

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription:
    """Cancellation handle returned by every ``subscribe`` call."""

    def __init__(self, cancel: Optional[Callable[[], None]] = None):
        self._cancel = cancel
        self.active = cancel is not None

    def cancel(self) -> None:
        """Unregister the listener. Safe to call more than once."""
        if self.active and self._cancel is not None:
            self._cancel()
        self.active = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cancel()


class EventSource(Generic[T]):
    """Minimal listener registry. A failing listener never stops delivery."""

    def __init__(self, name: str = "events"):
        self.name = name
        self._listeners: List[Callable[[T], None]] = []

    def subscribe(self, listener: Callable[[T], None]) -> Subscription:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Subscription(_remove)

    def publish(self, event: T) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"{self.name} listener failed: {e}")

    @property
    def listener_count(self) -> int:
        return len(self._listeners)


@dataclass(frozen=True)
class LocationFix:
    """A single position fix."""
    latitude: float
    longitude: float
    accuracy: float  # metres
    altitude: Optional[float] = None  # metres


class LocationErrorReason(enum.Enum):
    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3


_ERROR_MESSAGES = {
    LocationErrorReason.PERMISSION_DENIED: "Location Access Denied. Please enable permissions.",
    LocationErrorReason.POSITION_UNAVAILABLE: "GPS Unavailable. Check device settings.",
    LocationErrorReason.TIMEOUT: "GPS Timeout. Searching...",
}


@dataclass(frozen=True)
class LocationError:
    """Error emitted by a location provider instead of a fix."""
    reason: Optional[LocationErrorReason] = None

    @property
    def message(self) -> str:
        return _ERROR_MESSAGES.get(self.reason, "GPS Signal Lost")


class LocationProvider(Protocol):
    def subscribe(
        self,
        on_fix: Callable[[LocationFix], None],
        on_error: Callable[[LocationError], None],
    ) -> Subscription:
        ...


class ListenerProvider(Protocol[T]):
    def subscribe(self, listener: Callable[[T], None]) -> Subscription:
        ...


class LocationSource:
    """In-process location provider with separate fix and error streams."""

    def __init__(self):
        self.fixes: EventSource[LocationFix] = EventSource("location")
        self.errors: EventSource[LocationError] = EventSource("location-error")

    def subscribe(
        self,
        on_fix: Callable[[LocationFix], None],
        on_error: Callable[[LocationError], None],
    ) -> Subscription:
        fix_sub = self.fixes.subscribe(on_fix)
        error_sub = self.errors.subscribe(on_error)

        def _cancel() -> None:
            fix_sub.cancel()
            error_sub.cancel()

        return Subscription(_cancel)

    def publish_fix(self, fix: LocationFix) -> None:
        self.fixes.publish(fix)

    def publish_error(self, error: LocationError) -> None:
        self.errors.publish(error)


class LocationTracker:
    """
    Keeps the latest fix and the latest provider error.

    A successful fix clears any previous error. Listeners registered with
    :meth:`on_fix` run after the fix is stored (used to trigger enrichment).
    """

    def __init__(self):
        self.fix: Optional[LocationFix] = None
        self.error: Optional[LocationError] = None
        self._fix_listeners: List[Callable[[LocationFix], None]] = []

    def attach(self, provider: Optional[LocationProvider]) -> Subscription:
        if provider is None:
            self.handle_error(LocationError(LocationErrorReason.POSITION_UNAVAILABLE))
            return Subscription()
        return provider.subscribe(self.handle_fix, self.handle_error)

    def on_fix(self, listener: Callable[[LocationFix], None]) -> None:
        self._fix_listeners.append(listener)

    def handle_fix(self, fix: LocationFix) -> None:
        self.fix = fix
        self.error = None
        for listener in list(self._fix_listeners):
            try:
                listener(fix)
            except Exception as e:
                logger.error(f"Location fix listener failed: {e}")

    def handle_error(self, error: LocationError) -> None:
        self.error = error
        logger.warning(f"Location error: {error.message}")

    @property
    def has_fix(self) -> bool:
        return self.fix is not None

    def require_fix(self) -> LocationFix:
        """Return the latest fix or raise :class:`NoLocationFix`."""
        if self.fix is None:
            raise NoLocationFix(self.error.message if self.error else None)
        return self.fix


class HeadingTracker:
    """Latest compass heading in whole degrees, ``None`` until one arrives."""

    def __init__(self):
        self.heading: Optional[int] = None

    def attach(self, provider: Optional[ListenerProvider]) -> Subscription:
        if provider is None:
            logger.debug("Orientation sensor unavailable; heading will be omitted")
            return Subscription()
        return provider.subscribe(self.handle_heading)

    def handle_heading(self, alpha: Optional[float]) -> None:
        if alpha is not None:
            self.heading = int(round(alpha)) % 360
