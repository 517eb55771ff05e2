"""Appointment endpoints: slot publishing, booking and the status lifecycle."""

from uuid import UUID

from fastapi import APIRouter, Query, status
from pydantic import ValidationError

from app.config import settings
from app.core.exceptions import ValidationException
from app.dependencies import AdminAuth, CurrentAuth, DatabaseSession, DoctorAuth, PatientAuth
from app.schemas.admin import AppointmentStatistics
from app.schemas.appointments import (
    AppointmentActionResponse,
    AppointmentFilters,
    AppointmentPage,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    BookingRequest,
)
from app.schemas.slots import AvailableDoctor, PublishSlotsRequest, PublishSlotsResponse
from app.services.appointment_service import AppointmentService
from app.services.reporting_service import ReportingService
from app.services.slot_ledger import SlotLedger

router = APIRouter()


@router.post(
    "/available-slots",
    response_model=PublishSlotsResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Publish slots for a date (doctor only)",
)
async def publish_slots(
    data: PublishSlotsRequest,
    auth: DoctorAuth,
    db: DatabaseSession,
) -> PublishSlotsResponse:
    """
    Replace the times the calling doctor offers on ``date``.

    An empty ``times`` list withdraws the date.
    """
    ledger = await SlotLedger(db).upsert_date(auth.subject_id, data.date, data.times)
    return PublishSlotsResponse(
        message="Appointment slots added successfully",
        available_slots=ledger,
    )


@router.get(
    "/available-doctors",
    response_model=list[AvailableDoctor],
    summary="Doctors with published slots",
)
async def available_doctors(
    auth: CurrentAuth,
    db: DatabaseSession,
) -> list[AvailableDoctor]:
    """List doctors that have at least one published slot."""
    doctors = await SlotLedger(db).doctors_with_slots()
    return [AvailableDoctor.model_validate(d) for d in doctors]


@router.post(
    "/book",
    response_model=AppointmentActionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
)
async def book_appointment(
    data: BookingRequest,
    auth: PatientAuth,
    db: DatabaseSession,
) -> AppointmentActionResponse:
    """
    Book a published slot.

    - **doctorId**: Doctor to book with
    - **date**: Slot date (YYYY-MM-DD)
    - **time**: Slot time (HH:MM)
    - **reason**: Reason for the visit
    """
    appointment = await AppointmentService(db).book(auth, data)
    return AppointmentActionResponse(
        message="Appointment booked successfully! Waiting for doctor's confirmation.",
        appointment=appointment,
    )


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentActionResponse,
    summary="Confirm or reject an appointment (assigned doctor only)",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    auth: DoctorAuth,
    db: DatabaseSession,
) -> AppointmentActionResponse:
    """Move a pending appointment to confirmed or rejected."""
    appointment = await AppointmentService(db).set_status(
        appointment_id, auth, data.status, data.notes
    )
    return AppointmentActionResponse(
        message=f"Appointment {data.status.value}",
        appointment=appointment,
    )


@router.patch(
    "/{appointment_id}/cancel",
    response_model=AppointmentActionResponse,
    summary="Cancel an appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    auth: CurrentAuth,
    db: DatabaseSession,
) -> AppointmentActionResponse:
    """Cancel as the patient, the assigned doctor or an admin."""
    appointment = await AppointmentService(db).cancel(appointment_id, auth)
    return AppointmentActionResponse(
        message="Appointment canceled successfully",
        appointment=appointment,
    )


@router.get(
    "/my-appointments",
    response_model=list[AppointmentResponse],
    summary="Caller's appointments",
)
async def my_appointments(
    auth: CurrentAuth,
    db: DatabaseSession,
) -> list[AppointmentResponse]:
    """Patients get their bookings, doctors their schedule, admins everything."""
    return await AppointmentService(db).list_for_context(auth)


@router.get(
    "/all",
    response_model=list[AppointmentResponse],
    summary="List all appointments (admin only)",
)
async def all_appointments(
    admin: AdminAuth,
    db: DatabaseSession,
) -> list[AppointmentResponse]:
    """Every appointment, newest first."""
    return await AppointmentService(db).list_all()


@router.get(
    "/admin/detailed",
    response_model=AppointmentPage,
    summary="Search appointments (admin only)",
)
async def detailed_appointments(
    admin: AdminAuth,
    db: DatabaseSession,
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(
        settings.default_page_size, ge=1, le=settings.max_page_size, description="Items per page"
    ),
    status_filter: AppointmentStatus | None = Query(
        None, alias="status", description="Filter by status"
    ),
    doctor_id: UUID | None = Query(None, alias="doctorId", description="Filter by doctor"),
    user_id: UUID | None = Query(None, alias="userId", description="Filter by patient"),
    from_date: str | None = Query(None, alias="fromDate", description="First date (YYYY-MM-DD)"),
    to_date: str | None = Query(None, alias="toDate", description="Last date (YYYY-MM-DD)"),
    search: str | None = Query(None, description="Search patient, doctor or reason"),
) -> AppointmentPage:
    """Filtered, paginated appointment listing."""
    try:
        filters = AppointmentFilters(
            page=page,
            limit=limit,
            status=status_filter,
            doctor_id=doctor_id,
            user_id=user_id,
            from_date=from_date,
            to_date=to_date,
            search=search,
        )
    except ValidationError as e:
        raise ValidationException(e.errors()[0]["msg"]) from e

    items, total, pages = await AppointmentService(db).list_detailed(filters)

    return AppointmentPage(
        appointments=items,
        total_pages=pages,
        current_page=filters.page,
        total_results=total,
    )


@router.get(
    "/admin/statistics",
    response_model=AppointmentStatistics,
    summary="Appointment statistics (admin only)",
)
async def appointment_statistics(
    admin: AdminAuth,
    db: DatabaseSession,
) -> AppointmentStatistics:
    """Totals by status, by doctor and by day for the last week."""
    return await ReportingService(db).get_statistics()


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    summary="Get appointment details",
)
async def get_appointment(
    appointment_id: UUID,
    auth: CurrentAuth,
    db: DatabaseSession,
) -> AppointmentResponse:
    """Visible to the patient, the assigned doctor and admins."""
    return await AppointmentService(db).get_appointment(appointment_id, auth)
