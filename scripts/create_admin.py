#!/usr/bin/env python3
"""Create (or promote) a local user and print an access token for it.

Identity is owned by the upstream provider; this is for local development
and support access only.
"""

import asyncio
import sys
from datetime import timedelta
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import select

from app.core.security import create_access_token
from app.database import async_session_maker
from app.models.user import User

TOKEN_FILE = Path(__file__).parent.parent / ".token"


async def create_user(
    email: str = "admin@bluefleet.local",
    name: str = "BlueFleet Admin",
    role: str = "ADMIN",
    hours: int = 12,
) -> str:
    """Create the user if it doesn't exist and mint a token for it."""
    async with async_session_maker() as session:

        # Check if user already exists
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if user:
            user.role = role
            user.is_active = True
            print(f"Updated existing user: {email}")
        else:
            user = User(email=email, name=name, role=role, is_active=True)
            session.add(user)
            print(f"Created user: {email}")

        await session.commit()

        token = create_access_token({"sub": str(user.id)}, expires_delta=timedelta(hours=hours))
        TOKEN_FILE.write_text(token)

        print(f"User ID: {user.id}")
        print(f"Role: {role}")
        print(f"Token: {token}")
        return token


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Create a user and mint an access token")
    parser.add_argument("--email", default="admin@bluefleet.local", help="User email")
    parser.add_argument("--name", default="BlueFleet Admin", help="Display name")
    parser.add_argument("--role", default="ADMIN", choices=["OWNER", "OPERATOR", "ADMIN"])
    parser.add_argument("--hours", type=int, default=12, help="Token lifetime in hours")

    args = parser.parse_args()

    asyncio.run(create_user(email=args.email, name=args.name, role=args.role, hours=args.hours))
