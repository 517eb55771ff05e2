"""User service for business logic."""

from uuid import UUID

import structlog
from sqlalchemy import and_, func, insert, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestException, ConflictException
from app.core.redis_client import CacheManager
from app.core.security import get_password_hash, verify_password
from app.database import contains_pattern
from app.models.users import users
from app.schemas.common import total_pages

logger = structlog.get_logger(__name__)

# Columns safe to hand to clients
PUBLIC_COLUMNS = (
    users.c.id,
    users.c.name,
    users.c.email,
    users.c.role,
    users.c.specialization,
    users.c.is_active,
    users.c.created_at,
)


class UserService:
    """Service for user operations."""

    # Cache TTL in seconds (30 minutes for user profiles)
    USER_CACHE_TTL = 1800

    def __init__(self, cache_manager: CacheManager | None = None):
        """Initialize service with optional cache manager."""
        self.cache = cache_manager

    @staticmethod
    def _get_user_cache_key(user_id: UUID | str) -> str:
        """Generate cache key for user."""
        return f"user:{user_id}"

    async def create_user(
        self,
        db: AsyncSession,
        name: str,
        email: str,
        password: str,
        role: str = "user",
        specialization: str | None = None,
    ) -> dict:
        """
        Create a new account.

        Args:
            db: Database session
            name: Display name
            email: Lowercased email address
            password: Plain-text password, stored only as a bcrypt hash
            role: One of user, doctor, admin
            specialization: Doctor specialization (ignored for other roles)

        Returns:
            Created user without the password hash

        Raises:
            ConflictException: If the email is already registered
        """
        if await self.get_user_by_email(db, email):
            raise ConflictException("User with this email already exists")

        query = (
            insert(users)
            .values(
                name=name,
                email=email,
                password_hash=get_password_hash(password),
                role=role,
                specialization=specialization if role == "doctor" else None,
            )
            .returning(*PUBLIC_COLUMNS)
        )

        try:
            result = await db.execute(query)
            await db.commit()
        except IntegrityError as e:
            # Lost a race against another registration for the same email
            await db.rollback()
            raise ConflictException("User with this email already exists") from e

        user = result.mappings().first()
        if not user:
            raise ValueError("Failed to create user")

        user_dict = dict(user)
        logger.info("user_registered", user_id=str(user_dict["id"]), role=role)

        if self.cache:
            self.cache.set_json(
                self._get_user_cache_key(user_dict["id"]), user_dict, ttl=self.USER_CACHE_TTL
            )

        return user_dict

    async def authenticate(self, db: AsyncSession, email: str, password: str) -> dict:
        """
        Check credentials and return the matching user.

        Raises:
            BadRequestException: If the email is unknown or the password is wrong
        """
        query = select(users).where(users.c.email == email)
        result = await db.execute(query)
        user = result.mappings().first()

        if not user or not verify_password(password, user["password_hash"]):
            logger.info("login_failed", email=email)
            raise BadRequestException("Invalid email or password")

        if not user["is_active"]:
            raise BadRequestException("User account is deactivated")

        user_dict = dict(user)
        user_dict.pop("password_hash")
        return user_dict

    async def get_user_by_id(self, db: AsyncSession, user_id: UUID) -> dict | None:
        """Get user by internal ID with caching."""
        if self.cache:
            cached_user = self.cache.get_json(self._get_user_cache_key(user_id))
            if cached_user:
                return cached_user

        query = select(*PUBLIC_COLUMNS).where(users.c.id == user_id)
        result = await db.execute(query)
        user = result.mappings().first()

        if not user:
            return None

        user_dict = dict(user)

        if self.cache:
            self.cache.set_json(
                self._get_user_cache_key(user_id), user_dict, ttl=self.USER_CACHE_TTL
            )

        return user_dict

    async def get_user_by_email(self, db: AsyncSession, email: str) -> dict | None:
        """Get user by email."""
        query = select(*PUBLIC_COLUMNS).where(users.c.email == email)
        result = await db.execute(query)
        user = result.mappings().first()
        return dict(user) if user else None

    async def list_users(self, db: AsyncSession, role: str | None = None) -> list[dict]:
        """List accounts, newest first, optionally restricted to one role."""
        query = select(*PUBLIC_COLUMNS).order_by(users.c.created_at.desc())
        if role:
            query = query.where(users.c.role == role)

        result = await db.execute(query)
        return [dict(row) for row in result.mappings().all()]

    async def search_users(
        self,
        db: AsyncSession,
        page: int,
        limit: int,
        search: str | None = None,
        role: str | None = None,
        specialization: str | None = None,
    ) -> tuple[list[dict], int, int]:
        """
        Paginated account search.

        ``search`` matches name or email case-insensitively; ``role`` and
        ``specialization`` match exactly.

        Returns:
            Tuple of (page items, total results, total pages)
        """
        conditions = []

        if search:
            search_pattern = contains_pattern(search)
            conditions.append(
                or_(
                    users.c.name.ilike(search_pattern, escape="\\"),
                    users.c.email.ilike(search_pattern, escape="\\"),
                )
            )

        if role:
            conditions.append(users.c.role == role)

        if specialization:
            conditions.append(users.c.specialization == specialization)

        count_query = select(func.count()).select_from(users)
        query = select(*PUBLIC_COLUMNS)
        if conditions:
            count_query = count_query.where(and_(*conditions))
            query = query.where(and_(*conditions))

        total_result = await db.execute(count_query)
        total = total_result.scalar() or 0

        offset = (page - 1) * limit
        query = query.order_by(users.c.created_at.desc(), users.c.id).offset(offset).limit(limit)

        result = await db.execute(query)
        items = [dict(row) for row in result.mappings().all()]

        return items, total, total_pages(total, limit)

    async def count_by_role(self, db: AsyncSession) -> dict[str, int]:
        """Account count per role, zeros included."""
        query = select(users.c.role, func.count()).group_by(users.c.role)
        result = await db.execute(query)

        counts = {"user": 0, "doctor": 0, "admin": 0}
        for role, count in result.all():
            counts[role] = count
        return counts
