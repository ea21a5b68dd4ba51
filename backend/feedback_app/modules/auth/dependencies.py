from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional

from feedback_app.core.database import get_db
from feedback_app.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    InvalidTokenError,
    RoleRequiredError,
)
from feedback_app.core.logging_config import set_user_id
from feedback_app.core.security import decode_token
from feedback_app.core.types import is_valid_uuid
from feedback_app.models.user import User, UserRole

# Missing credentials are reported by get_current_user as 401
security = HTTPBearer(auto_error=False)


async def _load_user(token: str, db: AsyncSession) -> User:
    payload = decode_token(token)

    user_id = payload.get("sub") or payload.get("id")
    if not user_id or not is_valid_uuid(user_id):
        raise InvalidTokenError("Invalid token payload")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise InvalidTokenError("User not found")

    return user


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated user"""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Not authorized, no token")

    user = await _load_user(credentials.credentials, db)

    if not user.is_active:
        raise AuthorizationError("User account is inactive")

    set_user_id(str(user.id))
    request.state.user_id = str(user.id)
    return user


def require_roles(*roles: UserRole):
    """
    Dependency factory: allow only the given roles.

    Usage:
        @router.get("/reports")
        async def reports(user: User = Depends(require_roles(UserRole.HOD, UserRole.DEAN))):
            ...
    """
    allowed = set(roles)

    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise RoleRequiredError(*(r.value for r in roles))
        return current_user

    return dependency


get_current_admin = require_roles(UserRole.ADMIN)
get_current_hod = require_roles(UserRole.HOD)
get_current_dean = require_roles(UserRole.DEAN)
get_current_student = require_roles(UserRole.STUDENT)
