# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Proof record sent to the record store.

The wire shape matches what the record store's ``uploadPhoto`` action
expects: a base64 JPEG data URL plus a flat camelCase metadata object.
"""

import base64
import hashlib
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

DATA_URL_PREFIX = "data:image/jpeg;base64,"


def iso_timestamp(moment: datetime) -> str:
    """
    UTC ISO 8601 with millisecond precision and a ``Z`` suffix.

    Naive datetimes are taken as local time.

    Example:
        >>> iso_timestamp(datetime(2026, 10, 19, 8, 33, 5, 120000, tzinfo=timezone.utc))
        '2026-10-19T08:33:05.120Z'
    """
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp, accepting a trailing ``Z``."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


@dataclass
class ProofRecord:
    """Composited image plus the metadata that identifies it."""
    image: bytes  # JPEG bytes
    executive_id: str
    executive_name: str
    timestamp: str  # ISO 8601
    latitude: float
    longitude: float
    address: str
    campaign: str = "General"
    notes: str = ""

    @property
    def image_data_url(self) -> str:
        return DATA_URL_PREFIX + base64.b64encode(self.image).decode("ascii")

    def metadata(self) -> dict:
        """Metadata object in record store field names."""
        return {
            "executiveId": self.executive_id,
            "executiveName": self.executive_name,
            "timestamp": self.timestamp,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "address": self.address,
            "campaign": self.campaign,
            "notes": self.notes,
        }

    def to_payload(self) -> dict:
        """Serialize for upload or for the pending queue."""
        return {
            "imageData": self.image_data_url,
            "metadata": self.metadata(),
        }

    @classmethod
    def from_payload(cls, payload: dict) -> 'ProofRecord':
        """Create ProofRecord from an upload payload."""
        image_data = payload["imageData"]
        encoded = image_data.split(",", 1)[1] if "," in image_data else image_data
        meta = payload.get("metadata", {})
        return cls(
            image=base64.b64decode(encoded),
            executive_id=str(meta.get("executiveId", "")),
            executive_name=str(meta.get("executiveName", "")),
            timestamp=meta.get("timestamp", ""),
            latitude=float(meta.get("latitude", 0.0)),
            longitude=float(meta.get("longitude", 0.0)),
            address=meta.get("address", ""),
            campaign=meta.get("campaign", "General"),
            notes=meta.get("notes", ""),
        )

    def record_id(self, created_at: Optional[float] = None) -> str:
        """
        Local identifier: image hash prefix plus creation time in ms.

        Args:
            created_at: Unix timestamp (seconds); defaults to the record timestamp
        """
        digest = hashlib.sha256(self.image).hexdigest()[:16]
        if created_at is None:
            try:
                created_at = parse_timestamp(self.timestamp).timestamp()
            except ValueError:
                created_at = 0.0
        return f"{digest}_{int(created_at * 1000)}"
