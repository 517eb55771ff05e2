"""Authentication service for JWT issuance and revocation."""

from datetime import timedelta

import structlog

from app.config import settings
from app.core.exceptions import UnauthorizedException
from app.core.redis_client import CacheManager
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
)
from app.schemas.auth import Token

logger = structlog.get_logger(__name__)


class AuthService:
    """Authentication service for handling JWT operations."""

    # Blacklist entries outlive any refresh token
    BLACKLIST_TTL = 86400 * 365

    def __init__(self, cache_manager: CacheManager | None = None):
        """Initialize auth service with optional cache manager."""
        self.cache = cache_manager

    @staticmethod
    def _blacklist_key(token: str) -> str:
        return f"blacklist:{token}"

    def create_tokens(self, user_id: str, role: str) -> Token:
        """
        Create access and refresh tokens for a user.

        Args:
            user_id: User identifier (internal UUID)
            role: Account role at issue time

        Returns:
            Token pair (access and refresh)
        """
        claims = {"sub": user_id, "role": role}

        access_token = create_access_token(
            data=claims,
            expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
        )

        refresh_token = create_refresh_token(
            data=claims,
            expires_delta=timedelta(days=settings.refresh_token_expire_days),
        )

        return Token(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="bearer",
        )

    def refresh_access_token(self, refresh_token: str) -> Token:
        """
        Create a new token pair from a refresh token.

        Args:
            refresh_token: Valid refresh token

        Returns:
            New token pair

        Raises:
            UnauthorizedException: If refresh token is invalid or revoked
        """
        payload = decode_refresh_token(refresh_token)

        if payload is None:
            raise UnauthorizedException("Invalid refresh token")

        user_id = payload.get("sub")
        if user_id is None:
            raise UnauthorizedException("Invalid refresh token")

        if self.cache and self.cache.exists(self._blacklist_key(refresh_token)):
            raise UnauthorizedException("Token has been revoked")

        return self.create_tokens(user_id, payload.get("role", "user"))

    def revoke_token(self, token: str, ttl: int | None = None) -> None:
        """
        Revoke a refresh token by adding it to the blacklist.

        Without a cache the token simply expires on its own.
        """
        if not self.cache:
            logger.warning("token_revocation_skipped", reason="cache_disabled")
            return

        self.cache.set(self._blacklist_key(token), "1", ttl=ttl or self.BLACKLIST_TTL)
        logger.info("refresh_token_revoked")
