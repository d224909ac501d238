# app/services/assignment_service.py
"""
Driver → vehicle assignment across two independently owned stores.

  1. load driver, require status 'available'
  2. resolve the vehicle (explicit id, or first 'available' in listing order)
  3. phase 1: conditional write on the driver row (available → on_duty + vehicle)
  4. phase 2: Vehicle Service PUT status=InUse (full replace of type/plate_number)
  5. phase 2 failed (any error) → revert the driver row, then raise UpstreamError

Steps 1-2 have no side effects. Phase 1 only succeeds if the row is still
'available' at write time, so two concurrent assignments of one driver cannot
both get past it. A failed revert raises CompensationFailedError.
"""

from typing import Optional

from sqlalchemy.orm import Session

from app.exceptions import ConflictError, NotFoundError, UpstreamError, ValidationError
from app.models.driver import Driver, DriverStatus
from app.schemas.vehicle import VehicleRecord
from app.services import driver_store
from app.services.saga import Saga
from app.services.vehicle_client import STATUS_IN_USE, VehicleServiceClient
from app.utils.logger import get_logger

logger = get_logger(__name__)


def assign_driver(db: Session, driver_id: int, vehicle_client: VehicleServiceClient,
                  vehicle_id: Optional[str] = None) -> Driver:
    driver = driver_store.get_driver(db, driver_id)
    if not driver:
        raise NotFoundError("Driver", driver_id)
    if driver.status != DriverStatus.AVAILABLE.value:
        raise ConflictError("Driver is not available", {"driver_id": driver_id, "status": driver.status})

    if vehicle_id is not None:
        vehicle = _resolve_explicit(vehicle_client, vehicle_id)
    else:
        vehicle = select_first_available(vehicle_client)

    saga = Saga(f"assign-driver-{driver_id}")

    # Phase 1: local commit, guarded on the status we just checked
    if not driver_store.compare_and_set(
        db, driver_id,
        expected={"status": DriverStatus.AVAILABLE.value},
        changes={"assigned_vehicle": vehicle.id, "status": DriverStatus.ON_DUTY.value},
    ):
        raise ConflictError("Driver is not available", {"driver_id": driver_id})
    saga.add_compensation("release driver", lambda: _release_driver(db, driver_id, vehicle.id))
    logger.info(f"[ASSIGN] Driver {driver_id} → vehicle {vehicle.id} committed locally")

    # Phase 2: remote commit
    try:
        vehicle_client.set_status(vehicle, STATUS_IN_USE)
    except Exception as e:
        cause = e.message if isinstance(e, UpstreamError) else str(e)
        if isinstance(e, UpstreamError):
            logger.warning(f"[ASSIGN] Vehicle {vehicle.id} update failed ({cause}); reverting driver {driver_id}")
        else:
            logger.exception(f"[ASSIGN] Unexpected error updating vehicle {vehicle.id}; reverting driver {driver_id}")
        saga.compensate()
        raise UpstreamError("vehicle", "Failed to update vehicle status",
                            {"driver_id": driver_id, "vehicle_id": vehicle.id, "cause": cause}) from e
    saga.clear()

    logger.info(f"[ASSIGN] Driver {driver_id} on duty with vehicle {vehicle.id}")
    return driver_store.get_driver(db, driver_id)


def select_first_available(vehicle_client: VehicleServiceClient) -> VehicleRecord:
    """First vehicle whose status is 'available' (any case), in the Vehicle Service's listing order."""
    for vehicle in vehicle_client.list_vehicles():
        if vehicle.is_available:
            return vehicle
    raise ConflictError("No available vehicle found")


def _resolve_explicit(vehicle_client: VehicleServiceClient, vehicle_id: str) -> VehicleRecord:
    vehicle = vehicle_client.get_vehicle(vehicle_id)
    if vehicle is None:
        raise NotFoundError("Vehicle", vehicle_id)
    if not vehicle.is_available:
        raise ValidationError({"vehicle_id": [f"Vehicle {vehicle_id} is not available (status: {vehicle.status})."]},
                              message="Vehicle is not available")
    return vehicle


def _release_driver(db: Session, driver_id: int, vehicle_id: str):
    reverted = driver_store.compare_and_set(
        db, driver_id,
        expected={"status": DriverStatus.ON_DUTY.value, "assigned_vehicle": vehicle_id},
        changes={"assigned_vehicle": None, "status": DriverStatus.AVAILABLE.value},
    )
    if not reverted:
        raise RuntimeError(f"driver {driver_id} no longer holds vehicle {vehicle_id}; row changed mid-assignment")
