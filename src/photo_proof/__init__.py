# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Photo Proof Package

GPS-stamped photo proof capture for field executives: motion-aware
shutter, data-stamp compositing and upload with an offline queue.
"""

__version__ = "0.1.0"

# Export main classes and functions
from .errors import (
    PhotoProofError,
    NoLocationFix,
    SensorUnavailable,
    CaptureInProgress,
    EncodingFailure,
    SubmissionFailure,
    UploadInProgress
)

from .config import (
    GateConfig,
    Settings,
    settings
)

from .sensors import (
    Subscription,
    EventSource,
    LocationFix,
    LocationError,
    LocationErrorReason,
    LocationSource,
    LocationTracker,
    HeadingTracker
)

from .motion import (
    MotionSample,
    StabilityState,
    MotionMonitor
)

from .context import CaptureContext

from .compositor import (
    composite,
    render_stamp,
    compass_label,
    wrap_words,
    stats_line,
    StampLayout
)

from .surface import (
    DrawingSurface,
    PillowSurface,
    FontSpec
)

from .frames import (
    FileFrameSource,
    MockFrameSource,
    load_frame
)

from .capture import (
    CaptureGate,
    CapturedProof,
    ShutterFeedback
)

from .records import ProofRecord

from .record_store import (
    RecordStoreClient,
    StoreResponse
)

from .storage import (
    LocalStorage,
    MemoryStorage
)

from .pending_queue import (
    PendingQueue,
    PendingUpload
)

from .submission import (
    ProofSubmitter,
    ProofDraft,
    Success,
    Failure,
    SyncReport,
    UploadOutcome
)

from .session import PhotoProofSession

__all__ = [
    # Version
    '__version__',

    # Errors
    'PhotoProofError',
    'NoLocationFix',
    'SensorUnavailable',
    'CaptureInProgress',
    'EncodingFailure',
    'SubmissionFailure',
    'UploadInProgress',

    # Configuration
    'GateConfig',
    'Settings',
    'settings',

    # Sensors
    'Subscription',
    'EventSource',
    'LocationFix',
    'LocationError',
    'LocationErrorReason',
    'LocationSource',
    'LocationTracker',
    'HeadingTracker',

    # Motion
    'MotionSample',
    'StabilityState',
    'MotionMonitor',

    # Compositing
    'CaptureContext',
    'composite',
    'render_stamp',
    'compass_label',
    'wrap_words',
    'stats_line',
    'StampLayout',
    'DrawingSurface',
    'PillowSurface',
    'FontSpec',

    # Capture
    'FileFrameSource',
    'MockFrameSource',
    'load_frame',
    'CaptureGate',
    'CapturedProof',
    'ShutterFeedback',

    # Submission
    'ProofRecord',
    'RecordStoreClient',
    'StoreResponse',
    'LocalStorage',
    'MemoryStorage',
    'PendingQueue',
    'PendingUpload',
    'ProofSubmitter',
    'ProofDraft',
    'Success',
    'Failure',
    'SyncReport',
    'UploadOutcome',

    # Session
    'PhotoProofSession',
]
