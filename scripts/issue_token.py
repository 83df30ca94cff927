#!/usr/bin/env python3
"""
Issue an access token for local testing.

Usage:
  python -m scripts.issue_token --role procurement --email buyer@makemyoffice.com
  python -m scripts.issue_token --role vendor --email vendor@makemyoffice.com
"""

import argparse
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from api.middleware.authorization import ROLE_HIERARCHY
from api.services.auth_service import create_access_token


def main():
    parser = argparse.ArgumentParser(description="Issue a local access token")
    parser.add_argument("--role", required=True, choices=sorted(ROLE_HIERARCHY))
    parser.add_argument("--email", required=True)
    parser.add_argument("--user-id", default=None)
    parser.add_argument("--vendor-id", default=None)
    parser.add_argument("--minutes", type=int, default=None)
    args = parser.parse_args()

    print(create_access_token(
        user_id=args.user_id or args.email,
        role=args.role,
        email=args.email,
        vendor_id=args.vendor_id,
        expires_minutes=args.minutes,
    ))


if __name__ == "__main__":
    main()
