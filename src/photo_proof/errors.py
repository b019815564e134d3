# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Error taxonomy for the photo proof pipeline.

Sensor and enrichment problems degrade a feature and are absorbed where
they happen. Location and submission problems are surfaced to the caller
so the user can decide what to do next.
"""

from typing import Optional


class PhotoProofError(Exception):
    """Base class for all photo proof errors."""


class NoLocationFix(PhotoProofError):
    """Capture refused because no location fix has been received yet."""

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason
        message = "Waiting for GPS lock... Ensure your device location is enabled."
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class SensorUnavailable(PhotoProofError):
    """A motion or orientation sensor is missing. Never blocks capture."""


class CaptureInProgress(PhotoProofError):
    """Another capture currently owns the camera and canvas."""


class EncodingFailure(PhotoProofError):
    """The compositor could not produce an encoded image."""


class SubmissionFailure(PhotoProofError):
    """Network or remote error while submitting a proof record."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UploadInProgress(PhotoProofError):
    """An upload or queue sync is already talking to the record store."""
