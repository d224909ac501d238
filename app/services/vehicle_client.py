# app/services/vehicle_client.py
"""
Vehicle Service client — the only way this service touches vehicle state.

Endpoints (relative to VEHICLE_SERVICE_URL):
  GET /vehicles        → {"data": [{id, type, plate_number, status}, ...]}
  GET /vehicles/{id}   → {"data": {...}}
  PUT /vehicles/{id}   → body {type, plate_number, status}; success iff {"status": "success"}

Every call re-reads remote state; nothing is cached between requests.
Transport errors, timeouts and malformed bodies are raised as UpstreamError.
"""

from typing import List, Optional

import httpx
from pydantic import ValidationError as SchemaError

from app.exceptions import UpstreamError
from app.schemas.vehicle import VehicleRecord
from app.utils.logger import get_logger

logger = get_logger(__name__)

SERVICE_NAME = "vehicle"
STATUS_AVAILABLE = "Available"
STATUS_IN_USE = "InUse"


class VehicleServiceClient:
    def __init__(self, base_url: str, timeout: float = 10.0, transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            with self._client() as client:
                return client.request(method, path, **kwargs)
        except httpx.TimeoutException:
            logger.warning(f"[VEHICLE] {method} {path} timed out after {self.timeout}s")
            raise UpstreamError(SERVICE_NAME, f"Vehicle Service timed out on {method} {path}")
        except httpx.HTTPError as e:
            logger.warning(f"[VEHICLE] {method} {path} transport error: {e}")
            raise UpstreamError(SERVICE_NAME, f"Vehicle Service unreachable: {e}")

    @staticmethod
    def _json(response: httpx.Response, path: str) -> dict:
        try:
            body = response.json()
        except ValueError:
            raise UpstreamError(SERVICE_NAME, f"Vehicle Service returned a non-JSON body for {path}",
                                {"http_status": response.status_code})
        if not isinstance(body, dict):
            raise UpstreamError(SERVICE_NAME, f"Vehicle Service returned an unexpected body for {path}")
        return body

    @staticmethod
    def _record(item: dict, path: str) -> VehicleRecord:
        try:
            return VehicleRecord.model_validate(item)
        except SchemaError as e:
            logger.warning(f"[VEHICLE] Malformed vehicle record from {path}: {item!r}")
            raise UpstreamError(SERVICE_NAME, f"Vehicle Service returned a malformed vehicle for {path}",
                                {"vehicle_id": str(item.get("id")),
                                 "fields": [".".join(str(p) for p in err["loc"]) for err in e.errors()]})

    def list_vehicles(self) -> List[VehicleRecord]:
        """All vehicles, in the order the Vehicle Service lists them."""
        path = "/vehicles"
        response = self._request("GET", path)
        if response.status_code != 200:
            raise UpstreamError(SERVICE_NAME, f"Vehicle listing failed with HTTP {response.status_code}",
                                {"http_status": response.status_code})
        data = self._json(response, path).get("data")
        if not isinstance(data, list):
            return []
        return [self._record(item, path) for item in data if isinstance(item, dict) and "id" in item]

    def get_vehicle(self, vehicle_id: str) -> Optional[VehicleRecord]:
        """Returns None when the Vehicle Service does not know the id."""
        path = f"/vehicles/{vehicle_id}"
        response = self._request("GET", path)
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise UpstreamError(SERVICE_NAME, f"Vehicle lookup failed with HTTP {response.status_code}",
                                {"http_status": response.status_code, "vehicle_id": vehicle_id})
        data = self._json(response, path).get("data")
        if not isinstance(data, dict) or not data:
            return None
        data.setdefault("id", vehicle_id)
        return self._record(data, path)

    def set_status(self, vehicle: VehicleRecord, status: str) -> None:
        """
        Full replace of the vehicle's mutable fields with a new status.
        type and plate_number are sent back exactly as last read.
        """
        path = f"/vehicles/{vehicle.id}"
        payload = {"type": vehicle.type, "plate_number": vehicle.plate_number, "status": status}
        response = self._request("PUT", path, json=payload)
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict) or body.get("status") != "success":
            raise UpstreamError(SERVICE_NAME, f"Failed to update vehicle {vehicle.id} status to {status}",
                                {"http_status": response.status_code, "vehicle_id": vehicle.id})
        logger.info(f"[VEHICLE] {vehicle.id} ({vehicle.plate_number}) → {status}")
