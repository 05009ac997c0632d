#!/usr/bin/env python3
"""
Issue a caller token for a subject id.

Usage:
    python scripts/issue_token.py alice@example.com
"""
import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from toolsmith.auth.token_service import TokenService, get_token_display


def main() -> int:
    parser = argparse.ArgumentParser(description="Issue a bearer token for a subject id")
    parser.add_argument("subject_id")
    parser.add_argument("--quiet", action="store_true", help="print only the token")
    args = parser.parse_args()

    try:
        token = TokenService().issue(args.subject_id)
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    if args.quiet:
        print(token)
    else:
        print(f"Token for {args.subject_id} ({get_token_display(token)}):")
        print(token)
    return 0


if __name__ == "__main__":
    sys.exit(main())
