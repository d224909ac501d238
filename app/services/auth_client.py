# app/services/auth_client.py
"""
Auth Service client — provisions a login for a newly created driver.
POST /auth/register is treated as successful only on HTTP 200.
"""

import re
from typing import Optional

import httpx

from app.exceptions import UpstreamError
from app.utils.logger import get_logger

logger = get_logger(__name__)

SERVICE_NAME = "auth"
DRIVER_ROLE = "driver"


def derive_username(name: str) -> str:
    """'Joko Nawar' → 'jokonawar'."""
    return re.sub(r"[^a-z0-9]", "", name.lower())


class AuthServiceClient:
    def __init__(self, base_url: str, timeout: float = 10.0, transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def register_driver(self, full_name: str, email: str, username: str, password: str) -> None:
        payload = {
            "fullName": full_name,
            "email": email,
            "username": username,
            "role": DRIVER_ROLE,
            "password": password,
            "confirmPassword": password,
        }
        try:
            with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self._transport) as client:
                response = client.post("/auth/register", json=payload)
        except httpx.HTTPError as e:
            logger.warning(f"[AUTH] register {username} transport error: {e}")
            raise UpstreamError(SERVICE_NAME, f"Auth Service unreachable: {e}")

        if response.status_code != 200:
            logger.warning(f"[AUTH] register {username} returned HTTP {response.status_code}")
            raise UpstreamError(SERVICE_NAME, "Failed to create driver account",
                                {"http_status": response.status_code})
        logger.info(f"[AUTH] Account '{username}' registered with role {DRIVER_ROLE}")
