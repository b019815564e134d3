# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Persistent queue of proof uploads waiting for connectivity.

The whole queue is one blob under a stable storage key. Each enqueue and
each dequeue is written back immediately as a single storage write.
"""

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Protocol

from .config import settings
from .records import ProofRecord

logger = logging.getLogger(__name__)


class Storage(Protocol):
    def get(self, key: str, default=None): ...

    def set(self, key: str, value) -> None: ...


@dataclass
class PendingUpload:
    """A proof upload saved locally awaiting transmission."""

    upload_id: str  # Unique ID (hash prefix + timestamp)
    payload: dict  # Serialized ProofRecord (imageData + metadata)
    created_at: float  # Unix timestamp

    def to_dict(self) -> dict:
        return {
            "id": self.upload_id,
            "imageData": self.payload["imageData"],
            "metadata": self.payload["metadata"],
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'PendingUpload':
        return cls(
            upload_id=str(data["id"]),
            payload={"imageData": data["imageData"], "metadata": data.get("metadata", {})},
            created_at=float(data.get("createdAt", 0.0)),
        )

    def record(self) -> ProofRecord:
        return ProofRecord.from_payload(self.payload)


class PendingQueue:
    """
    Durable set of pending uploads keyed by upload id.

    Ordered by insertion. Enqueueing an id that is already present replaces
    the entry instead of duplicating it.
    """

    def __init__(self, storage: Storage, key: Optional[str] = None):
        """
        Initialize pending queue.

        Args:
            storage: Durable storage with get/set of named blobs
            key: Storage key (defaults to config)
        """
        self.storage = storage
        self.key = key or settings.pending_queue_key

    def _load(self) -> List[PendingUpload]:
        raw = self.storage.get(self.key, [])
        if not isinstance(raw, list):
            logger.error(f"Pending queue blob '{self.key}' is not a list, ignoring")
            return []

        pending = []
        for item in raw:
            try:
                pending.append(PendingUpload.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Error loading pending upload: {e}")
        return pending

    def _store(self, pending: List[PendingUpload]) -> None:
        self.storage.set(self.key, [item.to_dict() for item in pending])

    def enqueue(self, record: ProofRecord, created_at: Optional[float] = None) -> PendingUpload:
        """
        Save a record for later upload.

        Returns:
            The stored PendingUpload
        """
        created_at = time.time() if created_at is None else created_at
        upload = PendingUpload(
            upload_id=record.record_id(created_at),
            payload=record.to_payload(),
            created_at=created_at,
        )

        pending = [item for item in self._load() if item.upload_id != upload.upload_id]
        pending.append(upload)
        self._store(pending)

        logger.info(f"✓ Queued: {upload.upload_id} ({len(pending)} pending)")
        return upload

    def dequeue(self, upload_id: str) -> bool:
        """
        Remove an upload after it was accepted by the record store.

        Returns:
            True if the upload was present
        """
        pending = self._load()
        remaining = [item for item in pending if item.upload_id != upload_id]

        if len(remaining) == len(pending):
            logger.warning(f"⚠ Upload not found for dequeue: {upload_id}")
            return False

        self._store(remaining)
        logger.info(f"✓ Dequeued: {upload_id}")
        return True

    def get_pending(self) -> List[PendingUpload]:
        """Snapshot of pending uploads in insertion order."""
        return self._load()

    def get_count(self) -> int:
        return len(self._load())

    def __contains__(self, upload_id: str) -> bool:
        return any(item.upload_id == upload_id for item in self._load())
