# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Best-effort enrichment of location fixes: street address and temperature.

Both lookups are optional. Any failure leaves the corresponding field
unset; nothing here ever raises to the caller.
"""

import logging
from typing import Optional

import httpx

from .config import settings
from .context import fallback_address

logger = logging.getLogger(__name__)


class ReverseGeocoder:
    """Nominatim (OpenStreetMap) reverse geocoding client."""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint or settings.geocoder_url
        self.timeout = timeout or settings.enrichment_timeout
        self._transport = transport

    async def lookup(self, latitude: float, longitude: float) -> Optional[str]:
        """
        Resolve coordinates to a display address.

        Returns:
            Address string, or None if the lookup failed or had no result
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={"User-Agent": settings.user_agent},
            ) as client:
                response = await client.get(
                    self.endpoint,
                    params={"format": "json", "lat": latitude, "lon": longitude},
                )
                response.raise_for_status()
                data = response.json()

        except httpx.TimeoutException:
            logger.warning(f"Reverse geocoding timeout after {self.timeout}s")
            return None

        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Reverse geocoding failed: {e}")
            return None

        if isinstance(data, dict) and data.get("display_name"):
            return str(data["display_name"])
        return None


class WeatherLookup:
    """Open-Meteo current temperature client."""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint or settings.weather_url
        self.timeout = timeout or settings.enrichment_timeout
        self._transport = transport

    async def current_temperature(self, latitude: float, longitude: float) -> Optional[float]:
        """Return the current temperature in degrees Celsius, or None."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(
                    self.endpoint,
                    params={
                        "latitude": latitude,
                        "longitude": longitude,
                        "current_weather": "true",
                    },
                )
                response.raise_for_status()
                data = response.json()

        except httpx.TimeoutException:
            logger.warning(f"Weather lookup timeout after {self.timeout}s")
            return None

        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Weather lookup failed: {e}")
            return None

        current = data.get("current_weather") if isinstance(data, dict) else None
        if not current or current.get("temperature") is None:
            return None
        try:
            return float(current["temperature"])
        except (TypeError, ValueError):
            return None


class Enrichment:
    """
    Holds the latest address and temperature for the current position.

    The address is refreshed on every fix. The temperature is fetched once
    per session; it changes too slowly to be worth repeating.
    """

    def __init__(
        self,
        geocoder: Optional[ReverseGeocoder] = None,
        weather: Optional[WeatherLookup] = None,
    ):
        self.geocoder = geocoder or ReverseGeocoder()
        self.weather = weather or WeatherLookup()
        self.address: Optional[str] = None
        self.temperature: Optional[float] = None

    async def refresh(self, latitude: float, longitude: float) -> None:
        address = await self.geocoder.lookup(latitude, longitude)
        self.address = address or fallback_address(latitude, longitude)

        if self.temperature is None:
            self.temperature = await self.weather.current_temperature(latitude, longitude)
