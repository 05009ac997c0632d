#!/usr/bin/env python3
"""
Run the toolsmith API server.

Usage:
    python scripts/run.py
"""

import sys
from pathlib import Path

# Add project root to path
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from toolsmith.core.config import settings


def print_config():
    print(f"   Database: {settings.DATABASE_URL}")
    print(f"   Bundles: {settings.BUNDLE_ROOT}")
    print(f"   API docs: http://{settings.API_HOST}:{settings.API_PORT}/docs")
    print(f"   Health: http://{settings.API_HOST}:{settings.API_PORT}/api/v1/health")
    print()


def main():
    print("🚀 Starting toolsmith API...")
    print_config()

    import uvicorn

    uvicorn.run(
        "toolsmith.api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload="--reload" in sys.argv,
    )


if __name__ == "__main__":
    main()
