"""Authentication schemas."""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.schemas.common import CamelModel


class UserRole(str, Enum):
    """Account role enumeration."""

    USER = "user"
    DOCTOR = "doctor"
    ADMIN = "admin"


class AuthContext(BaseModel):
    """Authenticated subject resolved from a bearer token.

    Produced by the identity guard and passed explicitly to every service
    call that needs to know who is acting.
    """

    model_config = ConfigDict(frozen=True)

    subject_id: UUID
    role: UserRole
    name: str
    email: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_doctor(self) -> bool:
        return self.role == UserRole.DOCTOR


class RegisterRequest(CamelModel):
    """Account registration request."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    role: UserRole = UserRole.USER
    specialization: str | None = Field(None, max_length=100)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Reject blank names."""
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class LoginRequest(CamelModel):
    """Login request schema."""

    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class TokenRefresh(CamelModel):
    """Token refresh request schema."""

    refresh_token: str


class Token(BaseModel):
    """JWT token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class UserSummary(CamelModel):
    """Minimal user representation returned with tokens."""

    id: UUID
    name: str
    email: EmailStr
    role: UserRole


class AuthResponse(CamelModel):
    """Register/login response with tokens and user info."""

    message: str
    token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserSummary


class TokenPairResponse(CamelModel):
    """Refresh response."""

    token: str
    refresh_token: str
    token_type: str = "bearer"
