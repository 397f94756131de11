#!/usr/bin/env python3
"""
CLI runner for the region OCR pipeline.

Uploads a local image into the image store, runs one OCR session over the
regions listed in a JSON file and prints the session results.

Regions file format:
    [{"id": "r1", "x": 10, "y": 20, "width": 200, "height": 40, "label": "title"}, ...]
"""
import argparse
import asyncio
import json
import mimetypes
import os
import sys
from datetime import timedelta
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent))

from api.app import configure_logging
from api.schemas import RegionSchema
from config.settings import settings
from core.errors import AppError
from data.database import DatabaseManager
from data.image_store import ImageStore
from data.session_store import InMemorySessionStore
from services.ocr_orchestrator import OCROrchestrator
from services.status_service import StatusService
from services.task_supervisor import TaskSupervisor
from services.vision_service import create_vision_service


def load_regions(regions_path: str) -> list:
    """Read and validate regions from a JSON file."""
    with open(regions_path, 'r', encoding='utf-8') as f:
        raw = json.load(f)

    if isinstance(raw, dict):
        raw = raw.get('regions', [])

    return [RegionSchema.model_validate(item).to_region() for item in raw]


async def process_image_cli(image_path: str, regions_path: str, concurrency: int, output_path: str = None):
    """Run one OCR session over a local image."""
    print("=" * 60)
    print(f"Processing: {image_path}")
    print("=" * 60)

    if not os.path.exists(image_path):
        print(f"❌ Error: File not found: {image_path}")
        return None

    regions = load_regions(regions_path)
    print(f"Regions: {len(regions)}")
    print(f"Concurrency: {concurrency}")

    os.makedirs(settings.get_upload_dir(), exist_ok=True)
    db_manager = DatabaseManager(settings.get_database_url())
    image_store = ImageStore(
        upload_dir=settings.get_upload_dir(),
        db_manager=db_manager,
        max_file_size=settings.max_file_size
    )

    with open(image_path, 'rb') as f:
        data = f.read()
    content_type, _ = mimetypes.guess_type(image_path)
    record = image_store.save_upload(data, os.path.basename(image_path), content_type)
    print(f"✓ Image stored: {record.id} ({record.width}x{record.height})")

    session_store = InMemorySessionStore()
    orchestrator = OCROrchestrator(
        session_store=session_store,
        image_store=image_store,
        vision_service=create_vision_service(settings),
        concurrency_limit=concurrency,
        timeout_ms=settings.api_timeout,
        retention=timedelta(seconds=settings.session_retention_seconds)
    )
    supervisor = TaskSupervisor(session_store)
    status_service = StatusService(
        session_store=session_store,
        orchestrator=orchestrator,
        supervisor=supervisor,
        vision_configured=settings.is_vision_configured()
    )

    session_id = status_service.create_session(record.id, regions)
    print(f"\n⏳ Session {session_id} started...")
    await supervisor.wait_all()

    status = status_service.get_status(session_id)
    print(f"\nStatus: {status['status']} in {status['processingTime']}ms")
    print("-" * 60)
    for result in status['results']:
        if 'error' in result:
            error = result['error']
            print(f"[{result['regionId']}] ❌ {error['code']}: {error['message']}")
        else:
            print(f"[{result['regionId']}] {result['text']}")
    print("-" * 60)

    if output_path:
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(status, f, ensure_ascii=False, indent=2)
        print(f"✓ Results written to: {output_path}")

    db_manager.dispose()
    return status


def main():
    parser = argparse.ArgumentParser(
        description='Extract text from image regions with a vision model'
    )
    parser.add_argument('image', type=str, help='Image file (png, jpg, jpeg, webp)')
    parser.add_argument('regions', type=str, help='JSON file with the regions to read')
    parser.add_argument(
        '--concurrency',
        type=int,
        default=settings.ocr_concurrency_limit,
        help='Regions sent to the backend at the same time'
    )
    parser.add_argument('--output', type=str, default=None, help='Write the session status JSON here')

    args = parser.parse_args()
    configure_logging(settings.log_level)

    try:
        status = asyncio.run(process_image_cli(args.image, args.regions, args.concurrency, args.output))
    except AppError as e:
        print(f"❌ {e.code}: {e.message}")
        sys.exit(1)

    if status is None or status['status'] != 'completed':
        sys.exit(1)


if __name__ == '__main__':
    main()
