# app/services/driver_service.py
"""
Driver lifecycle: create / read / update / delete.

Create may provision an Auth Service account (when an auth client is given);
a failed provisioning deletes the freshly created row again.
Update compares explicit before/after snapshots of status and vehicle
reference; a vehicle reference the driver no longer holds is released back to
the Vehicle Service on a best-effort basis. The update itself is written only
if status and vehicle still match the snapshot it was validated against.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.exceptions import ConflictError, NotFoundError, UpstreamError, ValidationError
from app.models.driver import Driver, DriverStatus
from app.schemas.driver import DriverCreate, DriverUpdate
from app.services import driver_store
from app.services.auth_client import AuthServiceClient, derive_username
from app.services.saga import Saga
from app.services.vehicle_client import STATUS_AVAILABLE, VehicleServiceClient
from app.utils.logger import get_logger

logger = get_logger(__name__)

ON_DUTY_NEEDS_VEHICLE = "A driver can only be on_duty with an assigned vehicle."
VEHICLE_NEEDS_ON_DUTY = "A vehicle can only be assigned to an on_duty driver."


@dataclass(frozen=True)
class DriverSnapshot:
    status: str
    assigned_vehicle: Optional[str]

    @classmethod
    def of(cls, driver: Driver) -> "DriverSnapshot":
        return cls(status=driver.status, assigned_vehicle=driver.assigned_vehicle)


def get_driver(db: Session, driver_id: int) -> Driver:
    driver = driver_store.get_driver(db, driver_id)
    if not driver:
        raise NotFoundError("Driver", driver_id)
    return driver


def list_drivers(db: Session) -> List[Driver]:
    return driver_store.list_drivers(db)


def create_driver(db: Session, body: DriverCreate, auth_client: Optional[AuthServiceClient] = None) -> Driver:
    fields = body.model_dump(exclude_none=True)
    fields.setdefault("status", DriverStatus.AVAILABLE.value)

    errors: Dict[str, list] = {}
    if fields["status"] == DriverStatus.ON_DUTY.value:
        errors["status"] = [ON_DUTY_NEEDS_VEHICLE]
    if auth_client is not None:
        for required in ("name", "email"):
            if not fields.get(required):
                errors[required] = [f"The {required} field is required."]
    errors.update(driver_store.find_uniqueness_violations(db, fields))
    if errors:
        raise ValidationError(errors)

    driver = driver_store.insert_driver(db, fields)
    logger.info(f"Driver {driver.id} created (license={driver.license_number})")

    if auth_client is not None:
        _provision_account(db, driver, auth_client)
    return driver


def _provision_account(db: Session, driver: Driver, auth_client: AuthServiceClient):
    saga = Saga(f"create-driver-{driver.id}")
    saga.add_compensation("delete driver", lambda: driver_store.delete_driver(db, driver))
    try:
        auth_client.register_driver(
            full_name=driver.name,
            email=driver.email,
            username=derive_username(driver.name),
            password=driver.license_number,
        )
    except UpstreamError:
        logger.warning(f"Account provisioning failed for driver {driver.id} — removing the record")
        saga.compensate()
        raise
    saga.clear()


def update_driver(db: Session, driver_id: int, body: DriverUpdate,
                  vehicle_client: Optional[VehicleServiceClient] = None) -> Driver:
    driver = get_driver(db, driver_id)
    before = DriverSnapshot.of(driver)
    changes = body.model_dump(exclude_unset=True)

    errors: Dict[str, list] = {}
    if "license_number" in changes and changes["license_number"] is None:
        errors["license_number"] = ["The license number field is required."]
    if changes.get("status", "") is None:
        changes.pop("status")

    after_status = changes.get("status", before.status)
    if "assigned_vehicle" in changes:
        after_vehicle = changes["assigned_vehicle"]
    else:
        after_vehicle = before.assigned_vehicle if after_status == DriverStatus.ON_DUTY.value else None

    if after_status == DriverStatus.ON_DUTY.value and after_vehicle is None:
        errors["status"] = [ON_DUTY_NEEDS_VEHICLE]
    if after_status != DriverStatus.ON_DUTY.value and after_vehicle is not None:
        errors["assigned_vehicle"] = [VEHICLE_NEEDS_ON_DUTY]
    errors.update(driver_store.find_uniqueness_violations(db, changes, exclude_id=driver_id))
    if errors:
        raise ValidationError(errors)

    changes["assigned_vehicle"] = after_vehicle
    # The invariant checks above were made against `before`; only write if it still holds
    if not driver_store.compare_and_set(
        db, driver_id,
        expected={"status": before.status, "assigned_vehicle": before.assigned_vehicle},
        changes=changes,
    ):
        get_driver(db, driver_id)  # deleted meanwhile → NotFoundError
        logger.warning(f"Driver {driver_id} changed during update; expected {before.status}/{before.assigned_vehicle}")
        raise ConflictError("Driver was modified concurrently; reload and retry the update",
                            {"driver_id": driver_id})
    driver = get_driver(db, driver_id)
    after = DriverSnapshot.of(driver)
    logger.info(f"Driver {driver_id} updated: {before.status}/{before.assigned_vehicle} → "
                f"{after.status}/{after.assigned_vehicle}")

    _apply_transition_side_effects(before, after, vehicle_client)
    return driver


def _apply_transition_side_effects(before: DriverSnapshot, after: DriverSnapshot,
                                   vehicle_client: Optional[VehicleServiceClient]):
    """The driver row is already committed here; failures are logged, never raised."""
    released = before.assigned_vehicle
    if released is None or released == after.assigned_vehicle:
        return
    if vehicle_client is None:
        logger.warning(f"Vehicle {released} was released by a driver but no Vehicle Service client is configured")
        return
    try:
        vehicle = vehicle_client.get_vehicle(released)
        if vehicle is None:
            logger.warning(f"Released vehicle {released} no longer exists in the Vehicle Service")
            return
        vehicle_client.set_status(vehicle, STATUS_AVAILABLE)
    except UpstreamError as e:
        logger.error(f"Could not mark vehicle {released} {STATUS_AVAILABLE}: {e.message}")


def delete_driver(db: Session, driver_id: int):
    driver = get_driver(db, driver_id)
    if driver.assigned_vehicle is not None:
        # Vehicle is not released on delete; it stays InUse until fixed on the vehicle side
        logger.warning(f"Driver {driver_id} deleted while holding vehicle {driver.assigned_vehicle}; "
                       f"vehicle was not released")
    driver_store.delete_driver(db, driver)
    logger.info(f"Driver {driver_id} deleted")
