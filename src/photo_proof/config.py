# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""Configuration management for the photo proof pipeline."""

from dataclasses import dataclass
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class GateConfig:
    """Stabilization thresholds used by the motion monitor and capture gate."""
    shake_trigger: float = 2.5  # deg/s, at or above this the gate waits
    shake_release: float = 1.5  # deg/s, below this the wait ends
    poll_interval: float = 0.1  # seconds between stability checks
    stabilize_timeout: float = 2.0  # hard ceiling on the wait (seconds)
    smoothing_retain: float = 0.85  # weight kept from the previous value

    def validate(self) -> None:
        """Validate configuration."""
        if self.shake_release > self.shake_trigger:
            raise ValueError(
                f"shake_release ({self.shake_release}) must not exceed "
                f"shake_trigger ({self.shake_trigger})"
            )
        if self.poll_interval <= 0 or self.stabilize_timeout <= 0:
            raise ValueError("poll_interval and stabilize_timeout must be positive")
        if not 0.0 <= self.smoothing_retain < 1.0:
            raise ValueError(f"Invalid smoothing_retain: {self.smoothing_retain}")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PHOTO_PROOF_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Record store
    record_store_url: str = Field(
        default="http://localhost:8080/exec",
        description="Record store web app endpoint",
    )
    request_timeout: float = Field(default=30.0, description="Upload timeout (seconds)")
    user_agent: str = Field(default="Photo-Proof/0.1.0", description="HTTP User-Agent")

    # Durable local storage
    storage_path: Path = Field(
        default=Path("./data/local_storage.json"),
        description="JSON file backing durable local storage",
    )
    pending_queue_key: str = Field(
        default="pendingPhotoUploads",
        description="Storage key of the pending upload queue",
    )

    # Enrichment
    geocoder_url: str = Field(
        default="https://nominatim.openstreetmap.org/reverse",
        description="Reverse geocoding endpoint",
    )
    weather_url: str = Field(
        default="https://api.open-meteo.com/v1/forecast",
        description="Current weather endpoint",
    )
    enrichment_timeout: float = Field(default=10.0, description="Lookup timeout (seconds)")

    # Stabilization
    shake_trigger: float = 2.5
    shake_release: float = 1.5
    poll_interval: float = 0.1
    stabilize_timeout: float = 2.0
    smoothing_retain: float = 0.85

    # Output
    jpeg_quality: int = Field(default=85, ge=1, le=95, description="JPEG quality")
    default_campaign: str = "General"

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    def gate_config(self) -> GateConfig:
        """Build the stabilization config from these settings."""
        config = GateConfig(
            shake_trigger=self.shake_trigger,
            shake_release=self.shake_release,
            poll_interval=self.poll_interval,
            stabilize_timeout=self.stabilize_timeout,
            smoothing_retain=self.smoothing_retain,
        )
        config.validate()
        return config


# Global settings instance
settings = Settings()
