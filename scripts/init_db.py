#!/usr/bin/env python3
"""
Database initialization script for toolsmith.

Creates every table from the ORM models (idempotent). Production
deployments use `alembic upgrade head` instead.
"""
import asyncio
import sys
from pathlib import Path

# Add project root to path
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from toolsmith.core.config import settings
from toolsmith.core.database import init_database
from toolsmith.core.logging import setup_logging


def main() -> int:
    setup_logging()
    print(f"Initializing database at {settings.DATABASE_URL}...")
    try:
        asyncio.run(init_database())
    except Exception as e:
        print(f"❌ Database initialization failed: {e}")
        return 1
    print("✅ Tables created")
    return 0


if __name__ == "__main__":
    sys.exit(main())
