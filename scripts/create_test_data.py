#!/usr/bin/env python3
"""
Development Data Script for Tubely.

Video records are created outside the upload service, so local development
needs a few to upload against. This script inserts draft video records for a
user and prints a bearer token for that user, ready for curl or the frontend.

Usage:
    python scripts/create_test_data.py [options]

Options:
    --user-id STR   Owner of the records (default: a fresh UUID)
    --count INT     Number of video records to create (default: 3)
    --clean         Delete the user's existing records first
    --help          Show this help message and exit

Connection settings (MONGODB_URI, MONGODB_DB_NAME, JWT_SECRET, ...) are read
from the environment or .env exactly as the API reads them.
"""

import argparse
import sys
import uuid

from pymongo import MongoClient
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from tubely.config import get_settings
from tubely.core.auth import create_access_token
from tubely.core.database import VIDEOS_COLLECTION
from tubely.models.video import Video


CONNECTION_TIMEOUT_MS = 5000


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Create draft video records and a bearer token for local development",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python scripts/create_test_data.py                   # 3 records for a new user
    python scripts/create_test_data.py --count 10        # 10 records
    python scripts/create_test_data.py --user-id alice --clean
        """,
    )
    parser.add_argument("--user-id", default=None, help="Owner user id (default: new UUID)")
    parser.add_argument("--count", type=int, default=3, help="Number of records (default: 3)")
    parser.add_argument(
        "--clean", action="store_true", help="Delete the user's existing records first"
    )
    return parser.parse_args()


def main() -> int:
    args = parse_arguments()
    settings = get_settings()
    user_id = args.user_id or str(uuid.uuid4())

    client = MongoClient(settings.mongodb_uri, serverSelectionTimeoutMS=CONNECTION_TIMEOUT_MS)
    try:
        client.admin.command("ping")
        videos = client[settings.mongodb_db_name][VIDEOS_COLLECTION]

        if args.clean:
            result = videos.delete_many({"user_id": user_id})
            print(f"Deleted {result.deleted_count} existing record(s) for {user_id}")

        records = [
            Video(id=str(uuid.uuid4()), user_id=user_id, title=f"Draft video {n + 1}")
            for n in range(args.count)
        ]
        if records:
            videos.insert_many([record.to_document() for record in records])

    except (ConnectionFailure, ServerSelectionTimeoutError) as e:
        print(f"Could not reach MongoDB for database {settings.mongodb_db_name}: {e}", file=sys.stderr)
        return 1

    finally:
        client.close()

    print(f"\nUser: {user_id}")
    print("Videos:")
    for record in records:
        print(f"  {record.id}  {record.title}")
    print(f"\nToken:\n  {create_access_token(user_id, settings=settings)}\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
