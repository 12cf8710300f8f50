#!/usr/bin/env python3
"""
Create the tables and seed the staff accounts.

The admin comes from ADMIN_EMAIL / ADMIN_PASSWORD; a demo recruiter and a demo
interviewer are added unless --admin-only is passed. Safe to run repeatedly.
"""

import argparse
import sys
from pathlib import Path

# Add repo root to path so `backend.app` resolves when run as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from backend.app.config import load_settings
from backend.app.database import build_engine, build_sessionmaker, init_db
from backend.app.services.seeding import seed_staff


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--admin-only", action="store_true", help="skip the demo recruiter/interviewer")
    args = parser.parse_args()

    settings = load_settings()
    engine = build_engine(settings.database_url)
    print("Initializing database...")
    init_db(engine)

    db = build_sessionmaker(engine)()
    try:
        users = seed_staff(db, settings, include_demo=not args.admin_only)
    finally:
        db.close()
        engine.dispose()

    for user in users:
        print(f"✓ {user.role:<12} {user.email}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
