#!/usr/bin/env python3
"""
Admin Provisioning Script

Creates admin accounts directly in the database. Accounts that already
exist are left untouched (their password is not changed).

Usage:
    python scripts/provision_admins.py admins.json

    Or with inline data:
    python scripts/provision_admins.py --inline '[{"username": "admin", "password": "..."}]'

Input Format (JSON):
[
    {
        "username": "admin",
        "password": "a long passphrase"
    }
]
"""
import asyncio
import json
import sys
import argparse
from pathlib import Path
from typing import List, Dict

# Add parent directory to path to import app modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from app.core.config import get_settings
from app.core.database import create_engine_from_settings, create_session_factory, init_db
from app.models import User
from app.services.auth_service import AuthService


async def provision_admins(admins_data: List[Dict]) -> int:
    """
    Provision admin accounts from a list of credentials.

    Args:
        admins_data: List of {"username", "password"} dictionaries

    Returns:
        Number of accounts that could not be provisioned
    """
    engine = create_engine_from_settings(get_settings())
    await init_db(engine)
    session_factory = create_session_factory(engine)

    created_count = 0
    existing_count = 0
    failed_count = 0

    try:
        async with session_factory() as db:
            for admin_data in admins_data:
                username = admin_data.get("username")
                password = admin_data.get("password")
                if not username or not password:
                    print("❌ Skipping entry: username and password are required")
                    failed_count += 1
                    continue

                result = await db.execute(select(User.user_id).where(User.username == username))
                if result.scalar_one_or_none() is not None:
                    print(f"⚠️  Admin {username} already exists")
                    existing_count += 1
                    continue

                try:
                    user = await AuthService.create_user(username, password, db)
                    created_count += 1
                    print(f"✅ Created admin: {username}")
                    print(f"   User ID: {user.user_id}")
                except Exception as e:
                    print(f"❌ Error creating admin {username}: {e}")
                    failed_count += 1
    finally:
        await engine.dispose()

    print("\n" + "=" * 60)
    print("Summary:")
    print(f"  ✅ Created: {created_count}")
    print(f"  ⚠️  Existing: {existing_count}")
    print(f"  ❌ Failed: {failed_count}")
    print(f"  📊 Total: {len(admins_data)}")
    print("=" * 60)
    return failed_count


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Provision admin accounts in the database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # From a JSON file
  python scripts/provision_admins.py admins.json

  # Inline JSON
  python scripts/provision_admins.py --inline '[{"username": "admin", "password": "correct horse battery"}]'
        """
    )

    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument(
        "file",
        nargs="?",
        help="Path to JSON file containing admin credentials"
    )
    group.add_argument(
        "--inline",
        help="Inline JSON string containing admin credentials"
    )

    args = parser.parse_args()

    # Load admin data
    try:
        if args.inline:
            admins_data = json.loads(args.inline)
        else:
            with open(args.file, 'r') as f:
                admins_data = json.load(f)

        if not isinstance(admins_data, list):
            print("❌ Error: Admin data must be a JSON array")
            sys.exit(1)

    except json.JSONDecodeError as e:
        print(f"❌ Error parsing JSON: {e}")
        sys.exit(1)
    except FileNotFoundError:
        print(f"❌ Error: File not found: {args.file}")
        sys.exit(1)

    print("🚀 Starting admin provisioning...")
    print("=" * 60)
    failed = asyncio.run(provision_admins(admins_data))
    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
