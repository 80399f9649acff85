"""
API Dependencies

Reusable dependencies for API routes including authentication and role
checks.
"""

import uuid
from typing import Annotated, Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import PermissionDeniedError
from app.core.security import decode_access_token
from app.models.enums import UserRole
from app.models.user import User


# Tokens are issued by the identity provider; only the bearer header is read here
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Dependency to get the current authenticated user.

    This dependency:
    1. Extracts the JWT token from the Authorization header
    2. Decodes and validates the token
    3. Fetches the user from the database
    4. Raises 401 if token is invalid or user not found

    Args:
        token: JWT token from Authorization header (auto-extracted).
        db: Database session (auto-injected).

    Returns:
        User: The authenticated user object.

    Raises:
        HTTPException: 401 if authentication fails.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_access_token(token)
    if payload is None:
        raise credentials_exception

    user_id_str: str | None = payload.get("sub")
    if user_id_str is None:
        raise credentials_exception

    try:
        user_id = uuid.UUID(user_id_str)
    except ValueError:
        raise credentials_exception

    result = await db.execute(
        select(User).where(User.id == user_id)
    )
    user = result.scalar_one_or_none()

    if user is None:
        raise credentials_exception

    return user


def require_roles(*roles: UserRole) -> Callable:
    """
    Build a dependency that only lets users with one of ``roles`` through.

    Raises:
        PermissionDeniedError: If the current user has another role.
    """
    async def dependency(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if current_user.role not in roles:
            raise PermissionDeniedError(
                f"This action requires role {' or '.join(r.value for r in roles)}",
                "permission_denied",
            )
        return current_user

    return dependency
