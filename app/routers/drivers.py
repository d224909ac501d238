# app/routers/drivers.py
"""Driver CRUD + cross-service vehicle assignment."""

from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_auth_client, get_vehicle_client
from app.schemas.driver import AssignRequest, DriverCreate, DriverOut, DriverUpdate
from app.services import assignment_service, driver_service
from app.services.auth_client import AuthServiceClient
from app.services.vehicle_client import VehicleServiceClient

router = APIRouter()


@router.get("/drivers", response_model=list[DriverOut], summary="List all drivers")
def list_drivers(db: Session = Depends(get_db)):
    return driver_service.list_drivers(db)


@router.post("/drivers", response_model=DriverOut, status_code=status.HTTP_201_CREATED,
             summary="Create a new driver")
def create_driver(body: DriverCreate, db: Session = Depends(get_db),
                  auth_client: Optional[AuthServiceClient] = Depends(get_auth_client)):
    """Creates the driver; provisions a login for it when account provisioning is enabled."""
    return driver_service.create_driver(db, body, auth_client)


@router.post("/drivers/assign", response_model=DriverOut,
             summary="Assign an available driver to an available vehicle")
def assign_driver(body: AssignRequest, db: Session = Depends(get_db),
                  vehicle_client: VehicleServiceClient = Depends(get_vehicle_client)):
    """
    With vehicle_id: assigns that vehicle if it is available.
    Without: picks the first available vehicle listed by the Vehicle Service.
    The vehicle is marked InUse; if that fails the driver is put back to available.
    """
    return assignment_service.assign_driver(db, body.driver_id, vehicle_client, body.vehicle_id)


@router.get("/drivers/{driver_id}", response_model=DriverOut, summary="Get driver by ID")
def get_driver(driver_id: int, db: Session = Depends(get_db)):
    return driver_service.get_driver(db, driver_id)


@router.put("/drivers/{driver_id}", response_model=DriverOut, summary="Update a driver")
def update_driver(driver_id: int, body: DriverUpdate, db: Session = Depends(get_db),
                  vehicle_client: VehicleServiceClient = Depends(get_vehicle_client)):
    return driver_service.update_driver(db, driver_id, body, vehicle_client)


@router.delete("/drivers/{driver_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a driver")
def delete_driver(driver_id: int, db: Session = Depends(get_db)):
    driver_service.delete_driver(db, driver_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
