# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Photo proof session: wires sensors, capture gate, draft and submitter.
"""

import asyncio
import functools
import logging
from typing import List, Optional

from .capture import CaptureGate, CapturedProof, ShutterFeedback, context_factory_for
from .compositor import composite
from .config import Settings, settings as default_settings
from .enrichment import Enrichment
from .errors import CaptureInProgress, PhotoProofError
from .frames import FrameSource
from .motion import MotionMonitor
from .pending_queue import PendingQueue, Storage
from .record_store import RecordStoreClient
from .records import ProofRecord, iso_timestamp
from .sensors import (
    HeadingTracker,
    ListenerProvider,
    LocationFix,
    LocationProvider,
    LocationTracker,
    Subscription,
)
from .storage import LocalStorage
from .submission import ConfirmQueue, ProofDraft, ProofSubmitter, SyncReport, UploadOutcome

logger = logging.getLogger(__name__)


class PhotoProofSession:
    """
    One field executive's photo proof screen, minus the screen.

    Orchestrates capture and submission:
    1. Track location, heading and shake from the providers
    2. Enrich each fix with address and temperature (best effort)
    3. Capture a stamped photo through the capture gate into the draft
    4. Upload the draft, offering the offline queue on failure
    """

    def __init__(
        self,
        executive_id: str,
        executive_name: str,
        frames: FrameSource,
        location_provider: Optional[LocationProvider] = None,
        orientation_provider: Optional[ListenerProvider] = None,
        motion_provider: Optional[ListenerProvider] = None,
        client: Optional[RecordStoreClient] = None,
        storage: Optional[Storage] = None,
        enrichment: Optional[Enrichment] = None,
        enrich: bool = True,
        shutter: Optional[ShutterFeedback] = None,
        config: Optional[Settings] = None,
    ):
        self.settings = config or default_settings
        self.executive_id = executive_id
        self.executive_name = executive_name

        self.location_provider = location_provider
        self.orientation_provider = orientation_provider
        self.motion_provider = motion_provider

        gate_config = self.settings.gate_config()
        self.tracker = LocationTracker()
        self.heading = HeadingTracker()
        self.monitor = MotionMonitor(config=gate_config)
        self.enrichment = enrichment or Enrichment()
        self.enrich = enrich

        self.gate = CaptureGate(
            monitor=self.monitor,
            tracker=self.tracker,
            frames=frames,
            context_factory=context_factory_for(
                heading=lambda: self.heading.heading,
                address=lambda: self.enrichment.address,
                temperature=lambda: self.enrichment.temperature,
            ),
            compositor=functools.partial(composite, quality=self.settings.jpeg_quality),
            shutter=shutter,
            config=gate_config,
        )

        self.client = client or RecordStoreClient(
            base_url=self.settings.record_store_url,
            timeout=self.settings.request_timeout,
        )
        storage = storage if storage is not None else LocalStorage(self.settings.storage_path)
        self.queue = PendingQueue(storage, self.settings.pending_queue_key)
        self.submitter = ProofSubmitter(self.client, self.queue, timeout=self.settings.request_timeout)
        self.draft = ProofDraft(campaign=self.settings.default_campaign)

        self._subscriptions: List[Subscription] = []
        self._enrichment_task: Optional[asyncio.Task] = None
        self.started = False

    def start(self) -> None:
        """Subscribe to all providers."""
        if self.started:
            return

        if self.enrich:
            self.tracker.on_fix(self._schedule_enrichment)

        self._subscriptions = [
            self.tracker.attach(self.location_provider),
            self.heading.attach(self.orientation_provider),
            self.monitor.attach(self.motion_provider),
        ]
        self.started = True
        logger.info(f"Photo proof session started for {self.executive_name}")

    def _schedule_enrichment(self, fix: LocationFix) -> None:
        if self._enrichment_task is not None and not self._enrichment_task.done():
            return
        try:
            self._enrichment_task = asyncio.ensure_future(
                self.enrichment.refresh(fix.latitude, fix.longitude)
            )
        except RuntimeError:
            logger.debug("No running event loop, skipping enrichment")

    async def wait_for_enrichment(self) -> None:
        """Wait for an in-flight address/weather lookup to finish."""
        if self._enrichment_task is not None:
            await self._enrichment_task

    async def capture(self, force: bool = False) -> CapturedProof:
        """
        Capture a stamped photo into the draft (replacing any previous one).

        Raises:
            CaptureInProgress: An upload or sync of the draft is still running
        """
        if self.submitter.busy:
            raise CaptureInProgress("Cannot capture while an upload is in progress")
        proof = await self.gate.request_capture(force=force)
        self.draft.load(proof)
        return proof

    def build_record(self) -> ProofRecord:
        """Turn the current draft into a ProofRecord."""
        if not self.draft.ready:
            raise PhotoProofError("No captured photo to upload")

        context = self.draft.context
        return ProofRecord(
            image=self.draft.image,
            executive_id=self.executive_id,
            executive_name=self.executive_name,
            timestamp=iso_timestamp(context.captured_at),
            latitude=context.latitude,
            longitude=context.longitude,
            address=context.address,
            campaign=self.draft.campaign,
            notes=self.draft.notes,
        )

    async def upload(self, confirm: ConfirmQueue) -> UploadOutcome:
        """Upload the draft; ``confirm`` decides about the offline queue."""
        if self.gate.busy:
            raise CaptureInProgress("Cannot upload while a capture is in progress")
        record = self.build_record()
        return await self.submitter.upload(record, confirm, draft=self.draft)

    async def sync(self) -> SyncReport:
        return await self.submitter.sync_pending()

    def status(self) -> dict:
        """Snapshot of what a status bar would show."""
        fix = self.tracker.fix
        return {
            "location": (fix.latitude, fix.longitude) if fix else None,
            "location_error": self.tracker.error.message if self.tracker.error else None,
            "address": self.enrichment.address,
            "temperature": self.enrichment.temperature,
            "heading": self.heading.heading,
            "stability": self.monitor.current_stability(),
            "stabilizing": self.gate.stabilizing,
            "draft_ready": self.draft.ready,
            "pending": self.queue.get_count(),
        }

    async def close(self) -> None:
        """Unsubscribe from providers and stop background lookups."""
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []

        if self._enrichment_task is not None and not self._enrichment_task.done():
            self._enrichment_task.cancel()
            try:
                await self._enrichment_task
            except asyncio.CancelledError:
                pass

        self.started = False
        logger.info("Photo proof session closed")
