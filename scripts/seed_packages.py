#!/usr/bin/env python3
"""
Seed the default access packages.

Creates registered, premium and enterprise packages if they are missing.
Existing packages are left untouched.

Run: python scripts/seed_packages.py
"""
import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from toolsmith.api.models import AccessTier, Package
from toolsmith.core.config import settings
from toolsmith.core.database import async_session_factory, init_database

DEFAULT_PACKAGES = [
    {
        "name": "registered",
        "display_name": "Registered",
        "description": "Free account access to registered-tier tools",
        "tier": AccessTier.REGISTERED.value,
        "limits": {"daily_requests": settings.DEFAULT_DAILY_REQUEST_LIMIT},
    },
    {
        "name": "premium",
        "display_name": "Premium",
        "description": "Premium tools with a higher daily allowance",
        "tier": AccessTier.PREMIUM.value,
        "limits": {"daily_requests": 200},
    },
    {
        "name": "enterprise",
        "display_name": "Enterprise",
        "description": "Every tool, no daily limit",
        "tier": AccessTier.ENTERPRISE.value,
        "limits": {"daily_requests": None},
    },
]


async def seed_packages() -> int:
    await init_database()
    created = 0
    async with async_session_factory() as db:
        for spec in DEFAULT_PACKAGES:
            existing = (await db.execute(select(Package).where(Package.name == spec["name"]))).scalar_one_or_none()
            if existing is not None:
                print(f"  ⏭️  {spec['name']} already exists")
                continue
            db.add(Package(**spec))
            created += 1
            print(f"  ✅ {spec['name']} ({spec['tier']})")
        await db.commit()
    return created


def main() -> int:
    print(f"Seeding {len(DEFAULT_PACKAGES)} packages...\n")
    created = asyncio.run(seed_packages())
    print(f"\nDone: {created} created")
    return 0


if __name__ == "__main__":
    sys.exit(main())
