#!/usr/bin/env python3
"""
Initialize the uploaded image registry.

Creates the tables used to resolve image ids to stored uploads.
"""
import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import settings
from data.database import DatabaseManager
from utils.path_utils import ensure_dir


def main():
    parser = argparse.ArgumentParser(
        description='Initialize the uploaded image registry'
    )
    parser.add_argument(
        '--database-url',
        type=str,
        default=None,
        help=f'Database URL (default: {settings.get_database_url()})'
    )
    parser.add_argument(
        '--drop-existing',
        action='store_true',
        help='Drop existing tables before creating new ones (WARNING: forgets all uploads!)'
    )

    args = parser.parse_args()

    if args.database_url is None:
        ensure_dir(settings.get_upload_dir())
    db_manager = DatabaseManager(args.database_url or settings.get_database_url())

    print("=" * 60)
    print("Image Registry Initialization")
    print("=" * 60)
    print(f"Database URL: {db_manager.database_url}")
    print()

    if args.drop_existing:
        confirm = input("⚠️  Drop existing tables? Stored images will no longer resolve! (yes/no): ")
        if confirm.lower() == 'yes':
            db_manager.drop_tables()
            print()
        else:
            print("Aborted.")
            return

    db_manager.create_tables()

    print()
    print("✓ Database initialized successfully!")
    print()
    print("Tables created:")
    print("  - uploaded_images")
    print()
    print("You can now start the API server: uvicorn main:app --port 5000")
    print()


if __name__ == '__main__':
    main()
