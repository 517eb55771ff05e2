#!/usr/bin/env python3
"""
Create an admin account.

Usage:
    python scripts/create_admin.py "Admin Name" admin@example.com 'password'

Environment Variables:
    DATABASE_URL: Database to write to
    JWT_SECRET_KEY: Required by the application settings
"""

import argparse
import asyncio
import sys
from pathlib import Path

import dotenv

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

dotenv.load_dotenv()


async def create_admin(name: str, email: str, password: str) -> None:
    """Insert the admin account, failing if the email is taken."""
    from app.core.exceptions import ConflictException
    from app.database import AsyncSessionLocal, engine
    from app.services.user_service import UserService

    try:
        async with AsyncSessionLocal() as session:
            user = await UserService().create_user(
                session,
                name=name,
                email=email.lower(),
                password=password,
                role="admin",
            )
    except ConflictException as e:
        print(f"✗ {e.message}", file=sys.stderr)
        sys.exit(1)
    finally:
        await engine.dispose()

    print(f"✓ Admin account created: {user['email']} ({user['id']})")


def main() -> None:
    """Parse arguments and create the account."""
    parser = argparse.ArgumentParser(description="Create an admin account")
    parser.add_argument("name", help="Display name")
    parser.add_argument("email", help="Login email")
    parser.add_argument("password", help="Password (at least 6 characters)")
    args = parser.parse_args()

    if len(args.password) < 6:
        parser.error("password must be at least 6 characters")

    asyncio.run(create_admin(args.name, args.email, args.password))


if __name__ == "__main__":
    main()
