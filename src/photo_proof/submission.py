# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Proof submission with a user-confirmed offline fallback.

``submit`` makes exactly one upload attempt. When it fails, the user is
asked whether to keep the proof in the pending queue; queuing is never
silent, so a flaky connection stays visible. ``sync_pending`` later walks
the queue once and removes whatever the record store accepts.
"""

import asyncio
import contextlib
import enum
import inspect
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from .capture import CapturedProof
from .config import settings
from .context import CaptureContext
from .errors import SubmissionFailure, UploadInProgress
from .pending_queue import PendingQueue
from .record_store import RecordStoreClient
from .records import ProofRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Success:
    """Upload acknowledged by the record store."""
    reference: Optional[str] = None  # stored photo URL or id
    data: Optional[dict] = None


@dataclass(frozen=True)
class Failure:
    """Upload not acknowledged, for whatever reason."""
    message: str

    def as_error(self) -> SubmissionFailure:
        return SubmissionFailure(self.message)


SubmissionResult = Union[Success, Failure]


class UploadOutcome(enum.Enum):
    UPLOADED = "uploaded"
    QUEUED = "queued"  # saved locally, NOT uploaded
    FAILED = "failed"  # user declined queuing; draft kept for retry


@dataclass(frozen=True)
class SyncReport:
    success_count: int
    remaining: int


ConfirmQueue = Callable[[str], Union[bool, Awaitable[bool]]]


class ProofDraft:
    """The stamped photo and notes the user is about to upload."""

    def __init__(self, campaign: Optional[str] = None):
        self.image: Optional[bytes] = None
        self.context: Optional[CaptureContext] = None
        self.notes = ""
        self.campaign = campaign or settings.default_campaign

    @property
    def ready(self) -> bool:
        return self.image is not None and self.context is not None

    def load(self, proof: CapturedProof) -> None:
        self.image = proof.image
        self.context = proof.context

    def holds(self, image: bytes) -> bool:
        """True if ``image`` is still the photo in this draft."""
        return self.image is not None and self.image is image

    def clear_image(self) -> None:
        self.image = None
        self.context = None

    def clear(self) -> None:
        self.clear_image()
        self.notes = ""


class ProofSubmitter:
    """
    Uploads proof records and manages the pending queue.

    Args:
        client: Record store client
        queue: Durable pending queue
        timeout: Per-upload timeout in seconds (defaults to config)
    """

    def __init__(
        self,
        client: RecordStoreClient,
        queue: PendingQueue,
        timeout: Optional[float] = None,
    ):
        self.client = client
        self.queue = queue
        self.timeout = timeout or settings.request_timeout

        # Statistics
        self.submitted = 0
        self.failed = 0

        self._busy = False

    async def submit(self, record: ProofRecord) -> SubmissionResult:
        """Attempt one upload of ``record``. Never retries, never raises."""
        payload = record.to_payload()
        try:
            response = await asyncio.wait_for(
                self.client.upload_photo(payload["imageData"], payload["metadata"]),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            self.failed += 1
            logger.error(f"✗ Upload timed out after {self.timeout}s")
            return Failure(f"Upload timed out after {self.timeout}s")
        except Exception as e:
            self.failed += 1
            logger.error(f"✗ Upload failed: {e}")
            return Failure(str(e) or "An unexpected error occurred during upload. Please try again.")

        if not response.ok:
            self.failed += 1
            logger.error(f"✗ Upload rejected: {response.error_message}")
            return Failure(response.error_message)

        self.submitted += 1
        data = response.data if isinstance(response.data, dict) else None
        reference = None
        if data:
            reference = data.get("photoUrl") or data.get("driveFileId")
        logger.info(f"✓ Uploaded proof (total: {self.submitted})")
        return Success(reference=reference, data=data)

    @property
    def busy(self) -> bool:
        """True while an upload or sync pass is running."""
        return self._busy

    @contextlib.contextmanager
    def _exclusive(self, action: str):
        if self._busy:
            raise UploadInProgress(f"Cannot {action}: an upload is already in progress")
        self._busy = True
        try:
            yield
        finally:
            self._busy = False

    async def upload(
        self,
        record: ProofRecord,
        confirm: ConfirmQueue,
        draft: Optional[ProofDraft] = None,
    ) -> UploadOutcome:
        """
        Upload with the offline fallback.

        Args:
            record: Record to upload
            confirm: Asked with the failure message; True saves to the queue
            draft: Draft to clear once the proof is uploaded or queued

        Returns:
            What happened to the record

        Raises:
            UploadInProgress: Another upload or sync is running
        """
        with self._exclusive("upload"):
            result = await self.submit(record)

            if isinstance(result, Success):
                if draft is not None and draft.holds(record.image):
                    draft.clear()
                return UploadOutcome.UPLOADED

            answer = confirm(f"Upload failed: {result.message}. Save to offline queue?")
            if inspect.isawaitable(answer):
                answer = await answer

            if not answer:
                logger.info("Upload failed and was not queued")
                return UploadOutcome.FAILED

            self.queue.enqueue(record)
            if draft is not None and draft.holds(record.image):
                draft.clear_image()
            return UploadOutcome.QUEUED

    async def sync_pending(self) -> SyncReport:
        """
        Try every pending upload once.

        Successes are removed from the queue, failures stay. One item's
        error never stops the rest.

        Raises:
            UploadInProgress: Another upload or sync is running
        """
        with self._exclusive("sync"):
            snapshot = self.queue.get_pending()
            if not snapshot:
                return SyncReport(success_count=0, remaining=0)

            logger.info(f"📤 Syncing {len(snapshot)} pending uploads...")
            success_count = 0

            for item in snapshot:
                try:
                    result = await self.submit(item.record())
                except Exception as e:
                    logger.error(f"Sync failed for {item.upload_id}: {e}")
                    continue

                if isinstance(result, Success):
                    self.queue.dequeue(item.upload_id)
                    success_count += 1
                else:
                    logger.warning(f"⚠ Sync failed for {item.upload_id}: {result.message}")

            remaining = self.queue.get_count()
            logger.info(f"Synced {success_count} photos, {remaining} remaining")
            return SyncReport(success_count=success_count, remaining=remaining)

    def get_statistics(self) -> dict:
        return {
            "pending": self.queue.get_count(),
            "submitted": self.submitted,
            "failed": self.failed,
        }
