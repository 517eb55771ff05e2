"""FastAPI dependencies."""

from collections.abc import Callable
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ForbiddenException, UnauthorizedException
from app.core.redis_client import CacheManager, get_redis_client
from app.core.security import decode_access_token
from app.database import get_db
from app.schemas.auth import AuthContext, UserRole
from app.services.user_service import UserService

# Security; missing credentials are reported as 401 below rather than
# FastAPI's default 403
security = HTTPBearer(auto_error=False)


def get_cache_manager() -> CacheManager | None:
    """Cache manager bound to the shared Redis client, or None when disabled."""
    if not settings.redis_enabled:
        return None
    return CacheManager(get_redis_client())


DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CacheManagerDep = Annotated[CacheManager | None, Depends(get_cache_manager)]


async def get_auth_context(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
) -> AuthContext:
    """
    Resolve the bearer token into the acting subject.

    The role is read from the stored account rather than the token claim.
    With Redis enabled the account comes from the profile cache, so a role or
    activation change is seen once ``user:{id}`` expires
    (``UserService.USER_CACHE_TTL``).

    Raises:
        UnauthorizedException: If the token is missing, invalid or expired,
            or the account no longer exists or is deactivated
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedException("Not authorized, no token provided")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise UnauthorizedException("Not authorized")

    user_id_str = payload.get("sub")
    if user_id_str is None or not isinstance(user_id_str, str):
        raise UnauthorizedException("Not authorized")

    try:
        user_id = UUID(user_id_str)
    except ValueError:
        raise UnauthorizedException("Not authorized") from None

    user = await UserService(cache_manager).get_user_by_id(db, user_id)

    if not user:
        raise UnauthorizedException("User not found")

    if not user["is_active"]:
        raise UnauthorizedException("User account is deactivated")

    return AuthContext(
        subject_id=user["id"],
        role=user["role"],
        name=user["name"],
        email=user["email"],
    )


CurrentAuth = Annotated[AuthContext, Depends(get_auth_context)]


def require_role(*roles: UserRole) -> Callable:
    """
    Build a dependency that admits only the given roles.

    Args:
        roles: Roles allowed through

    Returns:
        Dependency yielding the AuthContext

    Raises:
        ForbiddenException: If the subject's role is not among ``roles``
    """
    allowed = set(roles)

    async def role_guard(auth: CurrentAuth) -> AuthContext:
        if auth.role not in allowed:
            raise ForbiddenException()
        return auth

    return role_guard


AdminAuth = Annotated[AuthContext, Depends(require_role(UserRole.ADMIN))]
DoctorAuth = Annotated[AuthContext, Depends(require_role(UserRole.DOCTOR))]
PatientAuth = Annotated[AuthContext, Depends(require_role(UserRole.USER, UserRole.ADMIN))]
