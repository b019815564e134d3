# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""Tests for proof submission and the offline fallback."""

import asyncio
import dataclasses

import pytest

from photo_proof.capture import CapturedProof
from photo_proof.errors import UploadInProgress
from photo_proof.pending_queue import PendingQueue
from photo_proof.record_store import StoreResponse
from photo_proof.storage import MemoryStorage
from photo_proof.submission import (
    Failure,
    ProofDraft,
    ProofSubmitter,
    Success,
    SyncReport,
    UploadOutcome,
)


class FakeStore:
    """Record store stand-in; fails uploads whose notes are listed."""

    def __init__(self, fail_notes=(), raise_notes=(), delay=0.0):
        self.fail_notes = set(fail_notes)
        self.raise_notes = set(raise_notes)
        self.delay = delay
        self.uploads = []
        self.gate = None

    async def upload_photo(self, image_data, metadata):
        self.uploads.append(metadata)
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if metadata["notes"] in self.raise_notes:
            raise RuntimeError("connection reset")
        if metadata["notes"] in self.fail_notes:
            return StoreResponse.error("Network Error")
        return StoreResponse(
            status="success",
            data={"id": str(len(self.uploads)), "photoUrl": f"https://drive.example/{len(self.uploads)}"},
        )


def build_submitter(store, timeout=5.0):
    storage = MemoryStorage()
    queue = PendingQueue(storage)
    return ProofSubmitter(store, queue, timeout=timeout), queue


def loaded_draft(full_context):
    draft = ProofDraft(campaign="Diwali Display")
    draft.load(CapturedProof(image=b"jpeg", context=full_context, waited=0.0, forced=False))
    draft.notes = "end cap display"
    return draft


def draft_record(make_record, draft):
    return dataclasses.replace(make_record(1), image=draft.image)


class TestSubmit:
    """Single upload attempts."""

    @pytest.mark.asyncio
    async def test_success(self, make_record):
        store = FakeStore()
        submitter, _ = build_submitter(store)

        result = await submitter.submit(make_record(1))

        assert isinstance(result, Success)
        assert result.reference == "https://drive.example/1"
        assert store.uploads[0]["executiveId"] == "3"
        assert submitter.submitted == 1

    @pytest.mark.asyncio
    async def test_error_envelope(self, make_record):
        submitter, _ = build_submitter(FakeStore(fail_notes={"item 1"}))

        result = await submitter.submit(make_record(1))

        assert result == Failure("Network Error")
        assert submitter.failed == 1

    @pytest.mark.asyncio
    async def test_exception_becomes_failure(self, make_record):
        submitter, _ = build_submitter(FakeStore(raise_notes={"item 1"}))

        result = await submitter.submit(make_record(1))

        assert isinstance(result, Failure)
        assert "connection reset" in result.message
        assert str(result.as_error()) == result.message

    @pytest.mark.asyncio
    async def test_timeout(self, make_record):
        submitter, _ = build_submitter(FakeStore(delay=1.0), timeout=0.05)

        result = await submitter.submit(make_record(1))

        assert isinstance(result, Failure)
        assert "timed out" in result.message

    @pytest.mark.asyncio
    async def test_single_attempt(self, make_record):
        store = FakeStore(fail_notes={"item 1"})
        submitter, _ = build_submitter(store)

        await submitter.submit(make_record(1))
        assert len(store.uploads) == 1


class TestUpload:
    """Upload with user-confirmed queuing."""

    @pytest.mark.asyncio
    async def test_uploaded_clears_draft(self, make_record, full_context):
        submitter, queue = build_submitter(FakeStore())
        draft = loaded_draft(full_context)
        asked = []

        outcome = await submitter.upload(draft_record(make_record, draft), asked.append, draft=draft)

        assert outcome is UploadOutcome.UPLOADED
        assert asked == []
        assert not draft.ready
        assert draft.notes == ""
        assert queue.get_count() == 0

    @pytest.mark.asyncio
    async def test_failure_confirmed_queues(self, make_record, full_context):
        submitter, queue = build_submitter(FakeStore(fail_notes={"item 1"}))
        draft = loaded_draft(full_context)
        asked = []

        def confirm(message):
            asked.append(message)
            return True

        record = draft_record(make_record, draft)
        outcome = await submitter.upload(record, confirm, draft=draft)

        assert outcome is UploadOutcome.QUEUED
        assert asked == ["Upload failed: Network Error. Save to offline queue?"]
        assert queue.get_count() == 1
        assert queue.get_pending()[0].record() == record
        assert draft.image is None
        assert draft.notes == "end cap display"

    @pytest.mark.asyncio
    async def test_failure_declined_keeps_draft(self, make_record, full_context):
        submitter, queue = build_submitter(FakeStore(fail_notes={"item 1"}))
        draft = loaded_draft(full_context)

        outcome = await submitter.upload(draft_record(make_record, draft), lambda message: False, draft=draft)

        assert outcome is UploadOutcome.FAILED
        assert queue.get_count() == 0
        assert draft.ready

    @pytest.mark.asyncio
    async def test_async_confirm(self, make_record):
        submitter, queue = build_submitter(FakeStore(fail_notes={"item 1"}))

        async def confirm(message):
            await asyncio.sleep(0)
            return True

        outcome = await submitter.upload(make_record(1), confirm)

        assert outcome is UploadOutcome.QUEUED
        assert queue.get_count() == 1


class TestSyncPending:
    """Draining the pending queue."""

    @pytest.mark.asyncio
    async def test_empty_queue(self):
        store = FakeStore()
        submitter, _ = build_submitter(store)

        assert await submitter.sync_pending() == SyncReport(success_count=0, remaining=0)
        assert store.uploads == []

    @pytest.mark.asyncio
    async def test_partial_failure(self, make_record):
        store = FakeStore(fail_notes={"item 2"})
        submitter, queue = build_submitter(store)
        for i in (1, 2, 3):
            queue.enqueue(make_record(i), created_at=float(i))

        report = await submitter.sync_pending()

        assert report == SyncReport(success_count=2, remaining=1)
        assert [item.record().notes for item in queue.get_pending()] == ["item 2"]
        assert [meta["notes"] for meta in store.uploads] == ["item 1", "item 2", "item 3"]

    @pytest.mark.asyncio
    async def test_exception_does_not_stop_sync(self, make_record):
        submitter, queue = build_submitter(FakeStore(raise_notes={"item 1"}))
        for i in (1, 2):
            queue.enqueue(make_record(i), created_at=float(i))

        report = await submitter.sync_pending()

        assert report == SyncReport(success_count=1, remaining=1)

    @pytest.mark.asyncio
    async def test_resync_after_recovery(self, make_record):
        store = FakeStore(fail_notes={"item 1"})
        submitter, queue = build_submitter(store)
        queue.enqueue(make_record(1), created_at=1.0)

        assert (await submitter.sync_pending()).remaining == 1

        store.fail_notes.clear()
        assert await submitter.sync_pending() == SyncReport(success_count=1, remaining=0)

    @pytest.mark.asyncio
    async def test_statistics(self, make_record):
        submitter, queue = build_submitter(FakeStore(fail_notes={"item 2"}))
        for i in (1, 2):
            queue.enqueue(make_record(i), created_at=float(i))

        await submitter.sync_pending()

        assert submitter.get_statistics() == {"pending": 1, "submitted": 1, "failed": 1}


class TestProofDraft:
    """Draft lifecycle."""

    def test_default_campaign(self):
        assert ProofDraft().campaign == "General"

    def test_clear_image_keeps_notes(self, full_context):
        draft = loaded_draft(full_context)
        draft.clear_image()

        assert not draft.ready
        assert draft.notes == "end cap display"
        assert draft.campaign == "Diwali Display"


class TestExclusivity:
    """One upload or sync pass at a time."""

    @pytest.mark.asyncio
    async def test_concurrent_syncs(self, make_record):
        store = FakeStore()
        store.gate = asyncio.Event()
        submitter, queue = build_submitter(store)
        for i in (1, 2, 3):
            queue.enqueue(make_record(i), created_at=float(i))

        first = asyncio.ensure_future(submitter.sync_pending())
        second = asyncio.ensure_future(submitter.sync_pending())
        await asyncio.sleep(0)
        store.gate.set()

        results = await asyncio.gather(first, second, return_exceptions=True)

        assert results[0] == SyncReport(success_count=3, remaining=0)
        assert isinstance(results[1], UploadInProgress)
        assert len(store.uploads) == 3
        assert not submitter.busy

    @pytest.mark.asyncio
    async def test_upload_during_sync_rejected(self, make_record):
        store = FakeStore()
        store.gate = asyncio.Event()
        submitter, queue = build_submitter(store)
        queue.enqueue(make_record(1), created_at=1.0)

        sync = asyncio.ensure_future(submitter.sync_pending())
        await asyncio.sleep(0)
        assert submitter.busy

        with pytest.raises(UploadInProgress):
            await submitter.upload(make_record(2), lambda message: True)

        store.gate.set()
        assert (await sync).success_count == 1
        assert [meta["notes"] for meta in store.uploads] == ["item 1"]

    @pytest.mark.asyncio
    async def test_busy_cleared_after_failure(self, make_record):
        submitter, _ = build_submitter(FakeStore(raise_notes={"item 1"}))

        await submitter.upload(make_record(1), lambda message: False)

        assert not submitter.busy
        assert await submitter.upload(make_record(1), lambda message: False) is UploadOutcome.FAILED

    @pytest.mark.asyncio
    async def test_replaced_draft_not_cleared(self, make_record, full_context):
        submitter, queue = build_submitter(FakeStore())
        draft = loaded_draft(full_context)
        earlier = dataclasses.replace(make_record(1), image=b"earlier-photo")

        outcome = await submitter.upload(earlier, lambda message: True, draft=draft)

        assert outcome is UploadOutcome.UPLOADED
        assert draft.ready
        assert draft.image == b"jpeg"
        assert draft.notes == "end cap display"
