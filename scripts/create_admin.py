#!/usr/bin/env python3
"""
Create Admin Script

Creates an admin user, or promotes an existing user to admin and resets
their password.

Usage:
    python scripts/create_admin.py <username> [--password PASSWORD]

If --password is omitted the password is read from the terminal.
"""

import argparse
import getpass
import sys
from pathlib import Path

# Add the parent directory to the Python path so we can import from restauri
sys.path.insert(0, str(Path(__file__).parent.parent))

from restauri.core.database import SessionLocal, init_db
from restauri.core.logger import get_logger
from restauri.services.auth_service import AuthService

logger = get_logger("restauri.scripts.create_admin")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Create or promote an admin user")
    parser.add_argument("username", help="Admin username")
    parser.add_argument("--password", help="Admin password (prompted when omitted)")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    password = args.password or getpass.getpass("Password: ")
    if len(password) < 8:
        logger.error("Password must be at least 8 characters long")
        return 1

    init_db()
    db = SessionLocal()
    try:
        user = AuthService.create_or_promote_admin(db, args.username, password)
    finally:
        db.close()

    logger.info(f"Admin user ready: id={user.id} username={user.username}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
