"""User schemas for request/response validation."""

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from app.schemas.auth import UserRole
from app.schemas.common import CamelModel
from app.schemas.slots import PublishSlotsRequest, SlotDay


class UserResponse(CamelModel):
    """User as exposed to clients; never carries the credential hash."""

    id: UUID
    name: str
    email: EmailStr
    role: UserRole
    specialization: str | None = None
    is_active: bool = True
    created_at: datetime | None = None


class ProfileResponse(CamelModel):
    """Current user profile.

    ``specialization`` and ``available_slots`` are only set for doctors and
    are left out of the response otherwise.
    """

    id: UUID
    name: str
    email: EmailStr
    role: UserRole
    specialization: str | None = None
    available_slots: list[SlotDay] | None = None


class DoctorCreate(CamelModel):
    """Admin request to create a doctor account."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    specialization: str = Field(..., min_length=1, max_length=100)
    available_slots: list[PublishSlotsRequest] = Field(default_factory=list)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class DoctorCreateResponse(CamelModel):
    """Created doctor account with its token."""

    message: str
    doctor: UserResponse
    token: str


class UserListResponse(CamelModel):
    """Unpaginated user listing."""

    users: list[UserResponse]


class DoctorListResponse(CamelModel):
    """Unpaginated doctor listing."""

    doctors: list[UserResponse]


class UserPage(CamelModel):
    """Paginated user listing."""

    users: list[UserResponse]
    total_pages: int
    current_page: int
    total_results: int


class DoctorPage(CamelModel):
    """Paginated doctor listing."""

    doctors: list[UserResponse]
    total_pages: int
    current_page: int
    total_results: int
