"""API router configuration."""

from fastapi import APIRouter

from app.api.v1.endpoints import appointments, auth, directory, health

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
api_router.include_router(directory.router, tags=["Directory"])
