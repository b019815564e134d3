# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Photo Proof - Command Line Tool

Stamps a frame with GPS data, uploads it to the record store and manages
the offline queue of uploads that could not be delivered.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from .config import settings
from .errors import PhotoProofError
from .frames import FileFrameSource, MockFrameSource
from .motion import MotionSample
from .pending_queue import PendingQueue
from .record_store import RecordStoreClient
from .sensors import EventSource, LocationFix, LocationSource
from .session import PhotoProofSession
from .storage import LocalStorage
from .submission import ProofSubmitter, UploadOutcome

logger = logging.getLogger(__name__)


def _ask_to_queue(message: str) -> bool:
    response = input(f"{message} (y/n): ").strip().lower()
    return response == 'y'


async def run_capture(args: argparse.Namespace) -> int:
    """Capture (and optionally upload) one stamped photo."""
    frames = FileFrameSource(args.frame) if args.frame else MockFrameSource()

    location = LocationSource()
    orientation: EventSource[Optional[float]] = EventSource("orientation")
    motion: EventSource[MotionSample] = EventSource("motion")

    session = PhotoProofSession(
        executive_id=args.executive_id,
        executive_name=args.executive_name,
        frames=frames,
        location_provider=location,
        orientation_provider=orientation,
        motion_provider=motion,
        client=RecordStoreClient(base_url=args.url),
        enrich=not args.no_enrich,
    )
    session.draft.campaign = args.campaign
    session.draft.notes = args.notes

    try:
        session.start()
        location.publish_fix(LocationFix(
            latitude=args.lat,
            longitude=args.lon,
            accuracy=args.accuracy,
            altitude=args.altitude,
        ))
        if args.heading is not None:
            orientation.publish(args.heading)

        await session.wait_for_enrichment()
        status = session.status()
        print(f"✓ Location: {args.lat:.6f}, {args.lon:.6f}")
        print(f"  Address: {status['address'] or 'unavailable'}")
        if status['temperature'] is not None:
            print(f"  Temperature: {status['temperature']:g}°C")

        proof = await session.capture(force=args.force)
        print(f"✓ Captured ({len(proof.image)} bytes)")

        if args.output:
            output = Path(args.output)
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_bytes(proof.image)
            print(f"✓ Saved: {output}")

        if not args.upload:
            return 0

        confirm = (lambda message: True) if args.yes else _ask_to_queue
        outcome = await session.upload(confirm)

        if outcome is UploadOutcome.UPLOADED:
            print("✓ Photo Uploaded Successfully!")
            return 0
        if outcome is UploadOutcome.QUEUED:
            print(f"⚠ Upload failed, saved to offline queue ({session.queue.get_count()} pending)")
            return 0
        print("✗ Upload failed, photo not saved")
        return 1

    finally:
        await session.close()


async def run_sync(args: argparse.Namespace) -> int:
    """Retry every pending upload once."""
    queue = PendingQueue(LocalStorage(settings.storage_path), settings.pending_queue_key)
    submitter = ProofSubmitter(RecordStoreClient(base_url=args.url), queue)

    if queue.get_count() == 0:
        print("No pending uploads")
        return 0

    report = await submitter.sync_pending()
    print(f"Synced {report.success_count} photos.")
    if report.remaining:
        print(f"⚠ {report.remaining} still pending")
    return 0 if report.remaining == 0 else 1


def run_pending(args: argparse.Namespace) -> int:
    """List pending uploads."""
    queue = PendingQueue(LocalStorage(settings.storage_path), settings.pending_queue_key)
    pending = queue.get_pending()

    print(f"Pending uploads: {len(pending)}")
    for item in pending:
        meta = item.payload.get('metadata', {})
        print(f"  {item.upload_id}  {meta.get('timestamp', '?')}  {meta.get('address', '')[:60]}")
    return 0


async def run_test(args: argparse.Namespace) -> int:
    """Test connection to the record store."""
    print("Testing record store connection...")
    if await RecordStoreClient(base_url=args.url).test_connection():
        print("✓ Record store is reachable")
        return 0
    print("✗ Record store not reachable")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='GPS photo proof capture and upload',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Stamp a photo and save it locally
  python -m photo_proof capture --frame shop.jpg --lat 12.9716 --lon 77.5946 --output proof.jpg

  # Stamp a synthetic frame and upload it, queuing on failure without asking
  python -m photo_proof capture --lat 12.9716 --lon 77.5946 --upload --yes

  # Retry queued uploads
  python -m photo_proof sync

  # List queued uploads
  python -m photo_proof pending
        """
    )

    parser.add_argument(
        'command',
        choices=['capture', 'sync', 'pending', 'test'],
        help='Command to execute'
    )

    parser.add_argument('--frame', type=Path, help='Image file to stamp (default: synthetic frame)')
    parser.add_argument('--lat', type=float, help='Latitude of the fix')
    parser.add_argument('--lon', type=float, help='Longitude of the fix')
    parser.add_argument('--accuracy', type=float, default=10.0, help='Fix accuracy in metres (default: 10)')
    parser.add_argument('--altitude', type=float, help='Altitude in metres')
    parser.add_argument('--heading', type=float, help='Compass heading in degrees')
    parser.add_argument('--executive-id', default='1', help='Executive id (default: 1)')
    parser.add_argument('--executive-name', default='Field Executive', help='Executive name')
    parser.add_argument('--campaign', default=settings.default_campaign, help='Campaign tag')
    parser.add_argument('--notes', default='', help='Free-text notes')
    parser.add_argument('--output', type=Path, help='Write the stamped JPEG here')
    parser.add_argument('--upload', action='store_true', help='Upload the stamped photo')
    parser.add_argument('--yes', action='store_true', help='Queue failed uploads without asking')
    parser.add_argument('--force', action='store_true', help='Skip stabilization')
    parser.add_argument('--no-enrich', action='store_true', help='Skip address and weather lookups')
    parser.add_argument(
        '--url',
        default=settings.record_store_url,
        help=f'Record store URL (default: {settings.record_store_url})'
    )

    return parser


def main() -> None:
    """Main entry point."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    parser = build_parser()
    args = parser.parse_args()

    try:
        if args.command == 'capture':
            if args.lat is None or args.lon is None:
                print("Error: --lat and --lon required for capture")
                sys.exit(1)
            code = asyncio.run(run_capture(args))

        elif args.command == 'sync':
            code = asyncio.run(run_sync(args))

        elif args.command == 'pending':
            code = run_pending(args)

        else:
            code = asyncio.run(run_test(args))

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(1)

    except PhotoProofError as e:
        print(f"\n✗ {e}")
        sys.exit(1)

    sys.exit(code)


if __name__ == "__main__":
    main()
