"""Tests for booking and double-booking prevention."""

import pytest
from httpx import AsyncClient
from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import SlotConflictException
from app.models.appointments import appointments
from app.schemas.appointments import BookingRequest
from app.schemas.auth import AuthContext, UserRole
from app.services.appointment_service import AppointmentService


def _auth(account: dict) -> AuthContext:
    return AuthContext(
        subject_id=account["id"],
        role=UserRole(account["role"]),
        name=account["name"],
        email=account["email"],
    )


@pytest.mark.asyncio
class TestBookAppointment:
    """Tests for POST /api/appointments/book."""

    async def test_book_success(
        self,
        client: AsyncClient,
        patient: dict,
        booking_payload: dict,
    ):
        """Booking a published slot creates a pending appointment."""
        response = await client.post(
            "/api/appointments/book",
            json=booking_payload,
            headers=patient["headers"],
        )

        assert response.status_code == 201
        data = response.json()
        assert data["message"].startswith("Appointment booked successfully")
        appointment = data["appointment"]
        assert appointment["status"] == "pending"
        assert appointment["user"] == {
            "id": str(patient["id"]),
            "name": "Pat Patient",
            "email": "pat@example.com",
        }
        assert appointment["doctor"]["specialization"] == "Cardiology"
        assert appointment["date"] == "2024-06-01"
        assert appointment["time"] == "09:00"

    async def test_book_normalizes_time(
        self,
        client: AsyncClient,
        patient: dict,
        booking_payload: dict,
    ):
        """Unpadded hours match the published slot."""
        response = await client.post(
            "/api/appointments/book",
            json={**booking_payload, "time": "9:00"},
            headers=patient["headers"],
        )

        assert response.status_code == 201
        assert response.json()["appointment"]["time"] == "09:00"

    async def test_book_non_doctor(
        self,
        client: AsyncClient,
        patient: dict,
        other_patient: dict,
        booking_payload: dict,
    ):
        """Booking a non-doctor account fails with Invalid doctor."""
        response = await client.post(
            "/api/appointments/book",
            json={**booking_payload, "doctorId": str(other_patient["id"])},
            headers=patient["headers"],
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid doctor"

    async def test_book_unknown_doctor(
        self,
        client: AsyncClient,
        patient: dict,
        booking_payload: dict,
    ):
        """Booking an unknown id fails with Invalid doctor."""
        response = await client.post(
            "/api/appointments/book",
            json={**booking_payload, "doctorId": "00000000-0000-0000-0000-000000000000"},
            headers=patient["headers"],
        )

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidTargetException"

    async def test_book_unpublished_slot(
        self,
        client: AsyncClient,
        patient: dict,
        booking_payload: dict,
    ):
        """Slots missing from the ledger cannot be booked."""
        response = await client.post(
            "/api/appointments/book",
            json={**booking_payload, "time": "11:00"},
            headers=patient["headers"],
        )

        assert response.status_code == 400
        assert response.json()["message"] == "This slot is not available"

    async def test_book_missing_reason(
        self,
        client: AsyncClient,
        patient: dict,
        booking_payload: dict,
    ):
        """Reason is required."""
        response = await client.post(
            "/api/appointments/book",
            json={**booking_payload, "reason": "   "},
            headers=patient["headers"],
        )

        assert response.status_code == 400

    async def test_book_as_doctor_forbidden(
        self,
        client: AsyncClient,
        other_doctor: dict,
        booking_payload: dict,
    ):
        """Doctors do not book appointments."""
        response = await client.post(
            "/api/appointments/book",
            json=booking_payload,
            headers=other_doctor["headers"],
        )

        assert response.status_code == 403

    async def test_double_booking(
        self,
        client: AsyncClient,
        patient: dict,
        other_patient: dict,
        booking_payload: dict,
    ):
        """A second booking of a live slot is a conflict."""
        first = await client.post(
            "/api/appointments/book",
            json=booking_payload,
            headers=patient["headers"],
        )
        second = await client.post(
            "/api/appointments/book",
            json=booking_payload,
            headers=other_patient["headers"],
        )

        assert first.status_code == 201
        assert second.status_code == 400
        assert second.json()["error"] == "SlotConflictException"

    async def test_rebook_after_cancel(
        self,
        client: AsyncClient,
        patient: dict,
        other_patient: dict,
        booking_payload: dict,
    ):
        """Canceling frees the slot for the next patient."""
        first = await client.post(
            "/api/appointments/book",
            json=booking_payload,
            headers=patient["headers"],
        )
        appointment_id = first.json()["appointment"]["id"]

        await client.patch(
            f"/api/appointments/{appointment_id}/cancel",
            headers=patient["headers"],
        )
        second = await client.post(
            "/api/appointments/book",
            json=booking_payload,
            headers=other_patient["headers"],
        )

        assert second.status_code == 201


@pytest.mark.asyncio
class TestDoubleBookingGuard:
    """Tests for the store-level live slot uniqueness."""

    async def test_partial_index_rejects_second_live_row(
        self,
        db_session: AsyncSession,
        patient: dict,
        other_patient: dict,
        doctor: dict,
    ):
        """Two pending rows for one slot violate the index."""
        row = {
            "doctor_id": doctor["id"],
            "date": "2024-06-01",
            "time": "09:00",
            "reason": "Checkup",
            "status": "pending",
        }
        await db_session.execute(insert(appointments).values(user_id=patient["id"], **row))
        await db_session.commit()

        with pytest.raises(IntegrityError):
            await db_session.execute(
                insert(appointments).values(
                    user_id=other_patient["id"], **{**row, "status": "confirmed"}
                )
            )
        await db_session.rollback()

    async def test_partial_index_ignores_terminal_rows(
        self,
        db_session: AsyncSession,
        patient: dict,
        other_patient: dict,
        doctor: dict,
    ):
        """Rejected and canceled rows do not occupy the slot."""
        row = {
            "doctor_id": doctor["id"],
            "date": "2024-06-01",
            "time": "09:00",
            "reason": "Checkup",
        }
        await db_session.execute(
            insert(appointments).values(user_id=patient["id"], status="canceled", **row)
        )
        await db_session.execute(
            insert(appointments).values(user_id=patient["id"], status="rejected", **row)
        )
        await db_session.execute(
            insert(appointments).values(user_id=other_patient["id"], status="pending", **row)
        )
        await db_session.commit()

    async def test_concurrent_booking_loser_gets_conflict(
        self,
        db_session: AsyncSession,
        patient: dict,
        other_patient: dict,
        published_doctor: dict,
        monkeypatch: pytest.MonkeyPatch,
    ):
        """When the read check is passed concurrently, the insert still fails cleanly."""
        service = AppointmentService(db_session)
        request = BookingRequest(
            doctor_id=published_doctor["id"],
            date="2024-06-01",
            time="09:00",
            reason="Checkup",
        )

        await service.book(_auth(patient), request)

        async def slot_looks_free(*args, **kwargs) -> bool:
            return False

        monkeypatch.setattr(service, "slot_taken", slot_looks_free)

        with pytest.raises(SlotConflictException):
            await service.book(_auth(other_patient), request)

        live = await service.list_all()
        assert len(live) == 1
        assert live[0].user.id == patient["id"]
