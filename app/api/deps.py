"""API dependencies for authentication and common operations."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthenticationError, AuthorizationError
from app.core.security import verify_token
from app.database import get_db
from app.models.user import User

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Resolve the acting user from the identity provider's access token."""
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    claims = verify_token(credentials.credentials, token_type="access")
    try:
        user_id = UUID(str(claims["sub"]))
    except ValueError:
        raise AuthenticationError("Invalid token subject")

    # Mirrored identity; charter roles live on the local row
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("User account is deactivated")

    return user


class RoleChecker:
    """Require the current user to hold one of the given roles."""

    def __init__(self, *roles: str):
        self.roles = roles

    async def __call__(
        self,
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if current_user.role not in self.roles:
            raise AuthorizationError(f"{' or '.join(r.title() for r in self.roles)} access required")
        return current_user


# Convenience instances
get_current_admin = RoleChecker("ADMIN")
require_vessel_manager = RoleChecker("OWNER", "ADMIN")
