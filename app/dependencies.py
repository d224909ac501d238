# app/dependencies.py
"""
FastAPI dependencies for collaborator clients.
Base URLs and timeouts come from settings here and nowhere else; tests swap
these out through app.dependency_overrides.
"""

from typing import Optional

from app.config import settings
from app.services.auth_client import AuthServiceClient
from app.services.vehicle_client import VehicleServiceClient


def get_vehicle_client() -> VehicleServiceClient:
    return VehicleServiceClient(settings.VEHICLE_SERVICE_URL, timeout=settings.OUTBOUND_TIMEOUT_SECONDS)


def get_auth_client() -> Optional[AuthServiceClient]:
    """None when account provisioning is switched off."""
    if not settings.AUTH_PROVISIONING_ENABLED:
        return None
    return AuthServiceClient(settings.AUTH_SERVICE_URL, timeout=settings.OUTBOUND_TIMEOUT_SECONDS)
