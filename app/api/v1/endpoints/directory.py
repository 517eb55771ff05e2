"""Directory endpoints: doctor accounts, user listings and open slots."""

from fastapi import APIRouter, Query, status

from app.config import settings
from app.dependencies import AdminAuth, CacheManagerDep, DatabaseSession
from app.schemas.auth import UserRole
from app.schemas.slots import AvailableAppointmentEntry, AvailableAppointmentsResponse
from app.schemas.users import (
    DoctorCreate,
    DoctorCreateResponse,
    DoctorListResponse,
    DoctorPage,
    UserListResponse,
    UserPage,
    UserResponse,
)
from app.services.auth_service import AuthService
from app.services.slot_ledger import SlotLedger
from app.services.user_service import UserService

router = APIRouter()


@router.post(
    "/doctors",
    response_model=DoctorCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a doctor account (admin only)",
)
async def create_doctor(
    data: DoctorCreate,
    admin: AdminAuth,
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
) -> DoctorCreateResponse:
    """
    Create a doctor account, optionally with initial slots.

    - **name**, **email**, **password**: Account credentials
    - **specialization**: Medical specialization
    - **availableSlots**: Optional ``[{date, times}]`` to publish right away
    """
    doctor = await UserService(cache_manager).create_user(
        db,
        name=data.name,
        email=data.email,
        password=data.password,
        role=UserRole.DOCTOR.value,
        specialization=data.specialization,
    )

    ledger = SlotLedger(db)
    for day in data.available_slots:
        await ledger.upsert_date(doctor["id"], day.date, day.times)

    tokens = AuthService(cache_manager).create_tokens(str(doctor["id"]), doctor["role"])

    return DoctorCreateResponse(
        message="Doctor account created successfully",
        doctor=UserResponse.model_validate(doctor),
        token=tokens.access_token,
    )


@router.get(
    "/users",
    response_model=UserListResponse,
    summary="List patient accounts (admin only)",
)
async def list_regular_users(
    admin: AdminAuth,
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
) -> UserListResponse:
    """Regular users only; doctors and admins are left out."""
    user_list = await UserService(cache_manager).list_users(db, role=UserRole.USER.value)
    return UserListResponse(users=[UserResponse.model_validate(u) for u in user_list])


@router.get(
    "/doctors",
    response_model=DoctorListResponse,
    summary="List doctors",
)
async def list_doctors(
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
) -> DoctorListResponse:
    """Public doctor listing."""
    doctor_list = await UserService(cache_manager).list_users(db, role=UserRole.DOCTOR.value)
    return DoctorListResponse(doctors=[UserResponse.model_validate(d) for d in doctor_list])


@router.get(
    "/doctors/search",
    response_model=DoctorPage,
    summary="Search doctors",
)
async def search_doctors(
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(
        settings.default_page_size, ge=1, le=settings.max_page_size, description="Items per page"
    ),
    search: str | None = Query(None, description="Search by name or email"),
    specialization: str | None = Query(None, description="Filter by specialization"),
) -> DoctorPage:
    """Public paginated doctor search."""
    items, total, pages = await UserService(cache_manager).search_users(
        db,
        page=page,
        limit=limit,
        search=search,
        role=UserRole.DOCTOR.value,
        specialization=specialization,
    )
    return DoctorPage(
        doctors=[UserResponse.model_validate(d) for d in items],
        total_pages=pages,
        current_page=page,
        total_results=total,
    )


@router.get(
    "/admin/users",
    response_model=UserPage,
    summary="Search all accounts (admin only)",
)
async def admin_search_users(
    admin: AdminAuth,
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(
        settings.default_page_size, ge=1, le=settings.max_page_size, description="Items per page"
    ),
    search: str | None = Query(None, description="Search by name or email"),
    role: UserRole | None = Query(None, description="Filter by role"),
) -> UserPage:
    """Paginated account search across every role."""
    items, total, pages = await UserService(cache_manager).search_users(
        db,
        page=page,
        limit=limit,
        search=search,
        role=role.value if role else None,
    )
    return UserPage(
        users=[UserResponse.model_validate(u) for u in items],
        total_pages=pages,
        current_page=page,
        total_results=total,
    )


@router.get(
    "/admin/doctors",
    response_model=DoctorPage,
    summary="Search doctors (admin only)",
)
async def admin_search_doctors(
    admin: AdminAuth,
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(
        settings.default_page_size, ge=1, le=settings.max_page_size, description="Items per page"
    ),
    search: str | None = Query(None, description="Search by name or email"),
    specialization: str | None = Query(None, description="Filter by specialization"),
) -> DoctorPage:
    """Paginated doctor search for admins."""
    items, total, pages = await UserService(cache_manager).search_users(
        db,
        page=page,
        limit=limit,
        search=search,
        role=UserRole.DOCTOR.value,
        specialization=specialization,
    )
    return DoctorPage(
        doctors=[UserResponse.model_validate(d) for d in items],
        total_pages=pages,
        current_page=page,
        total_results=total,
    )


@router.get(
    "/available-appointments",
    response_model=AvailableAppointmentsResponse,
    summary="Every doctor's open slots (admin only)",
)
async def available_appointments(
    admin: AdminAuth,
    db: DatabaseSession,
) -> AvailableAppointmentsResponse:
    """Doctors with published slots, flattened for the admin console."""
    doctors = await SlotLedger(db).doctors_with_slots()
    return AvailableAppointmentsResponse(
        appointments=[
            AvailableAppointmentEntry(
                doctor_id=d["id"],
                doctor_name=d["name"],
                specialization=d["specialization"],
                email=d["email"],
                available_slots=d["available_slots"],
            )
            for d in doctors
        ]
    )
