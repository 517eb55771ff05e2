"""Tests for directory listings, doctor creation and pagination."""

import math

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.services.user_service import UserService


@pytest_asyncio.fixture
async def many_doctors(db_session: AsyncSession) -> list[dict]:
    """Seven doctors across two specializations."""
    service = UserService()
    created = []
    for i in range(7):
        created.append(
            await service.create_user(
                db_session,
                name=f"Dr. Number {i}",
                email=f"doc{i}@example.com",
                password="secret123",
                role="doctor",
                specialization="Cardiology" if i % 2 == 0 else "Pediatrics",
            )
        )
    return created


@pytest.mark.asyncio
class TestCreateDoctor:
    """Tests for POST /api/doctors."""

    async def test_create_doctor_as_admin(self, client: AsyncClient, admin: dict):
        """Admins create doctor accounts, with optional initial slots."""
        response = await client.post(
            "/api/doctors",
            json={
                "name": "Dr. Strange",
                "email": "strange@example.com",
                "password": "secret123",
                "specialization": "Surgery",
                "availableSlots": [{"date": "2024-06-01", "times": ["09:00"]}],
            },
            headers=admin["headers"],
        )

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Doctor account created successfully"
        assert data["doctor"]["role"] == "doctor"
        assert data["doctor"]["specialization"] == "Surgery"
        assert data["token"]

        me = await client.get(
            "/api/auth/me",
            headers={"Authorization": f"Bearer {data['token']}"},
        )
        assert me.json()["availableSlots"] == [{"date": "2024-06-01", "times": ["09:00"]}]

    async def test_create_doctor_missing_specialization(
        self,
        client: AsyncClient,
        admin: dict,
    ):
        """All fields are required."""
        response = await client.post(
            "/api/doctors",
            json={"name": "Dr. No", "email": "no@example.com", "password": "secret123"},
            headers=admin["headers"],
        )

        assert response.status_code == 400

    async def test_create_doctor_duplicate_email(
        self,
        client: AsyncClient,
        admin: dict,
        patient: dict,
    ):
        """Existing emails are refused."""
        response = await client.post(
            "/api/doctors",
            json={
                "name": "Dr. Pat",
                "email": "pat@example.com",
                "password": "secret123",
                "specialization": "Surgery",
            },
            headers=admin["headers"],
        )

        assert response.status_code == 400

    async def test_create_doctor_forbidden(self, client: AsyncClient, doctor: dict):
        """Only admins create doctors."""
        response = await client.post(
            "/api/doctors",
            json={
                "name": "Dr. Two",
                "email": "two@example.com",
                "password": "secret123",
                "specialization": "Surgery",
            },
            headers=doctor["headers"],
        )

        assert response.status_code == 403


@pytest.mark.asyncio
class TestListings:
    """Tests for unpaginated listings."""

    async def test_users_lists_only_regular_users(
        self,
        client: AsyncClient,
        admin: dict,
        patient: dict,
        doctor: dict,
    ):
        """GET /users leaves out doctors and admins."""
        response = await client.get("/api/users", headers=admin["headers"])

        assert response.status_code == 200
        assert [u["email"] for u in response.json()["users"]] == ["pat@example.com"]

    async def test_doctors_is_public(self, client: AsyncClient, doctor: dict, patient: dict):
        """GET /doctors needs no token and lists only doctors."""
        response = await client.get("/api/doctors")

        assert response.status_code == 200
        assert [d["email"] for d in response.json()["doctors"]] == ["dana@example.com"]

    async def test_available_appointments(
        self,
        client: AsyncClient,
        admin: dict,
        published_doctor: dict,
        other_doctor: dict,
    ):
        """Admins see every doctor with open slots."""
        response = await client.get("/api/available-appointments", headers=admin["headers"])

        assert response.status_code == 200
        entries = response.json()["appointments"]
        assert len(entries) == 1
        assert entries[0]["doctorId"] == str(published_doctor["id"])
        assert entries[0]["doctorName"] == "Dr. Dana House"
        assert entries[0]["email"] == "dana@example.com"
        assert entries[0]["availableSlots"] == [
            {"date": "2024-06-01", "times": ["09:00", "10:00"]}
        ]


@pytest.mark.asyncio
class TestPaginatedSearch:
    """Tests for paginated directory searches."""

    @pytest.mark.parametrize("limit", [1, 2, 3, 7, 10])
    async def test_pagination_invariant(
        self,
        client: AsyncClient,
        many_doctors: list[dict],
        limit: int,
    ):
        """totalPages is ceil(total / limit) and pages never overflow."""
        seen = []
        page = 1
        while True:
            response = await client.get(
                "/api/doctors/search",
                params={"page": page, "limit": limit},
            )
            assert response.status_code == 200
            data = response.json()

            assert data["totalResults"] == 7
            assert data["totalPages"] == math.ceil(7 / limit)
            assert data["currentPage"] == page
            assert len(data["doctors"]) <= limit

            if not data["doctors"]:
                break
            seen.extend(d["id"] for d in data["doctors"])
            page += 1

        assert len(seen) == 7
        assert len(set(seen)) == 7
        assert page == data["totalPages"] + 1

    async def test_search_by_specialization(
        self,
        client: AsyncClient,
        many_doctors: list[dict],
    ):
        """Specialization is an exact filter."""
        response = await client.get(
            "/api/doctors/search",
            params={"specialization": "Pediatrics"},
        )

        data = response.json()
        assert data["totalResults"] == 3
        assert all(d["specialization"] == "Pediatrics" for d in data["doctors"])

    async def test_search_is_case_insensitive(
        self,
        client: AsyncClient,
        many_doctors: list[dict],
    ):
        """Search matches name or email ignoring case."""
        by_name = await client.get("/api/doctors/search", params={"search": "NUMBER 3"})
        by_email = await client.get("/api/doctors/search", params={"search": "DOC5@"})

        assert [d["email"] for d in by_name.json()["doctors"]] == ["doc3@example.com"]
        assert [d["email"] for d in by_email.json()["doctors"]] == ["doc5@example.com"]

    async def test_admin_users_role_filter(
        self,
        client: AsyncClient,
        admin: dict,
        patient: dict,
        many_doctors: list[dict],
    ):
        """Admin user search filters by role."""
        response = await client.get(
            "/api/admin/users",
            params={"role": "user", "limit": 5},
            headers=admin["headers"],
        )

        assert response.status_code == 200
        data = response.json()
        assert data["totalResults"] == 1
        assert data["totalPages"] == 1
        assert data["users"][0]["email"] == "pat@example.com"

    async def test_admin_users_all_roles(
        self,
        client: AsyncClient,
        admin: dict,
        patient: dict,
        many_doctors: list[dict],
    ):
        """Without a role filter every account counts."""
        response = await client.get(
            "/api/admin/users",
            params={"limit": 4, "page": 3},
            headers=admin["headers"],
        )

        data = response.json()
        assert data["totalResults"] == 9
        assert data["totalPages"] == 3
        assert len(data["users"]) == 1

    async def test_admin_doctors(
        self,
        client: AsyncClient,
        admin: dict,
        many_doctors: list[dict],
    ):
        """Admin doctor search mirrors the public one."""
        response = await client.get(
            "/api/admin/doctors",
            params={"specialization": "Cardiology", "limit": 2},
            headers=admin["headers"],
        )

        data = response.json()
        assert data["totalResults"] == 4
        assert data["totalPages"] == 2
        assert len(data["doctors"]) == 2

    async def test_admin_search_forbidden(self, client: AsyncClient, patient: dict):
        """Admin searches need the admin role."""
        for path in ("/api/admin/users", "/api/admin/doctors"):
            response = await client.get(path, headers=patient["headers"])
            assert response.status_code == 403

    async def test_invalid_page(self, client: AsyncClient):
        """Page numbers start at 1."""
        response = await client.get("/api/doctors/search", params={"page": 0})

        assert response.status_code == 400

    async def test_page_size_follows_settings(
        self,
        client: AsyncClient,
        many_doctors: list[dict],
    ):
        """Default and maximum page sizes come from configuration."""
        default = await client.get("/api/doctors/search")
        too_large = await client.get(
            "/api/doctors/search", params={"limit": settings.max_page_size + 1}
        )

        assert default.json()["totalPages"] == math.ceil(7 / settings.default_page_size)
        assert too_large.status_code == 400

    async def test_search_wildcards_are_literal(
        self,
        client: AsyncClient,
        many_doctors: list[dict],
    ):
        """LIKE wildcards in search text match only themselves."""
        underscore = await client.get("/api/doctors/search", params={"search": "_"})
        percent = await client.get("/api/doctors/search", params={"search": "%"})

        assert underscore.json()["totalResults"] == 0
        assert percent.json()["totalResults"] == 0
