"""
Seed Admin User

Creates the first portal administrator (identity + admin profile) so that
someone can sign in and review registration requests.

Usage:
    SEED_ADMIN_EMAIL=admin@example.org SEED_ADMIN_PASSWORD=... python scripts/seed_admin.py
    python scripts/seed_admin.py --email admin@example.org --username "Portal Admin"
"""

import argparse
import asyncio
import getpass
import os
import sys
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from civic_portal.core.database import async_session_maker, close_db
from civic_portal.core.security import hash_password
from civic_portal.modules.users.models import UserRole
from civic_portal.modules.users.repository import UserRepository


async def seed_admin(email: str, password: str, username: str) -> None:
    """Create the admin identity and profile if the email is not taken."""
    async with async_session_maker() as db:
        existing_user = await UserRepository.get_by_email(db, email)

        if existing_user:
            print(f"User already exists: {email}")
            print(f"  ID: {existing_user.id}")
            return

        admin_user = await UserRepository.create(
            db,
            email=email,
            password_hash=hash_password(password),
            is_active=True,
            is_verified=True,  # Pre-verified
            must_change_password=False,
        )
        await UserRepository.upsert_profile(
            db,
            user_id=admin_user.id,
            role=UserRole.ADMIN,
            username=username,
            external_id="ADMIN",
        )
        await db.commit()

        print("Admin created successfully!")
        print(f"  Email: {admin_user.email}")
        print(f"  ID: {admin_user.id}")

    await close_db()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create the first portal administrator")
    parser.add_argument("--email", default=os.getenv("SEED_ADMIN_EMAIL"))
    parser.add_argument("--username", default=os.getenv("SEED_ADMIN_USERNAME", "Administrator"))
    args = parser.parse_args()

    if not args.email:
        parser.error("--email or SEED_ADMIN_EMAIL is required")

    password = os.getenv("SEED_ADMIN_PASSWORD") or getpass.getpass("Admin password: ")
    if len(password) < 8:
        parser.error("password must be at least 8 characters")

    asyncio.run(seed_admin(args.email.strip().lower(), password, args.username))


if __name__ == "__main__":
    main()
