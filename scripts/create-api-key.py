#!/usr/bin/env python3
"""
Issue a new API key for the secrets API.

Uses the database configured through DATABASE_URL / POSTGRES_* (see
envshare.config). Prints the raw key once; it is not recoverable later
except by reading the api_keys table.

Usage:
    ./scripts/create-api-key.py
    ./scripts/create-api-key.py --count 3
"""

import argparse
import sys

from envshare.database import SessionLocal
from envshare.services.api_key_service import issue_api_key


def main() -> int:
    parser = argparse.ArgumentParser(description="Issue API keys for the secrets API")
    parser.add_argument("--count", type=int, default=1, help="number of keys to issue")
    args = parser.parse_args()

    if args.count < 1:
        parser.error("--count must be at least 1")

    db = SessionLocal()
    try:
        for _ in range(args.count):
            print(issue_api_key(db))
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
