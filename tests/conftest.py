# tests/conftest.py
"""Shared fixtures: in-memory SQLite database and a fresh session per test."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Must be set before app.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTH_PROVISIONING_ENABLED"] = "false"

import pytest
from app.database import Base, SessionLocal, engine
from app.models.driver import Driver
from app.schemas.vehicle import VehicleRecord


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_driver(db):
    """Insert a driver row directly, bypassing the lifecycle rules."""
    counter = {"n": 0}

    def _make(**fields):
        counter["n"] += 1
        fields.setdefault("license_number", f"LIC{counter['n']:06d}")
        fields.setdefault("name", f"Driver {counter['n']}")
        fields.setdefault("email", f"driver{counter['n']}@example.com")
        fields.setdefault("status", "available")
        driver = Driver(**fields)
        db.add(driver)
        db.commit()
        db.refresh(driver)
        return driver

    return _make


def vehicle(id, status="Available", type="Sedan", plate_number=None):
    return VehicleRecord(id=id, type=type, plate_number=plate_number or f"B {id}00 XYZ", status=status)


def write_from_other_session(driver_id, **changes):
    """Commit a change to a driver row through its own session, as a concurrent request would."""
    other = SessionLocal()
    try:
        other.query(Driver).filter(Driver.id == driver_id).update(changes, synchronize_session=False)
        other.commit()
    finally:
        other.close()
