# tests/test_driver_service.py
"""Unit tests for the driver lifecycle (create / update / delete)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import MagicMock, patch
from conftest import vehicle, write_from_other_session
from app.exceptions import CompensationFailedError, ConflictError, NotFoundError, UpstreamError, ValidationError
from app.models.driver import Driver
from app.schemas.driver import DriverCreate, DriverUpdate
from app.services import driver_service, driver_store
from app.services.auth_client import AuthServiceClient
from app.services.vehicle_client import VehicleServiceClient


def create_body(**overrides):
    fields = {"license_number": "LIC123456", "name": "Joko Nawar", "email": "jokonawar@example.com"}
    fields.update(overrides)
    return DriverCreate(**fields)


class TestCreateDriver:
    def test_defaults_status_to_available(self, db):
        driver = driver_service.create_driver(db, create_body())
        assert driver.id is not None
        assert driver.status == "available"
        assert driver.assigned_vehicle is None
        assert driver.created_at is not None

    def test_duplicate_license_rejected(self, db):
        first = driver_service.create_driver(db, create_body())
        with pytest.raises(ValidationError) as exc:
            driver_service.create_driver(db, create_body(email="other@example.com"))

        assert "license_number" in exc.value.errors
        assert [d.id for d in db.query(Driver).all()] == [first.id]

    def test_duplicate_email_and_user_id_reported_together(self, db):
        driver_service.create_driver(db, create_body(user_id="u-1"))
        with pytest.raises(ValidationError) as exc:
            driver_service.create_driver(db, create_body(license_number="LIC999", user_id="u-1"))

        assert set(exc.value.errors) == {"email", "user_id"}
        assert db.query(Driver).count() == 1

    def test_drivers_without_email_do_not_collide(self, db):
        driver_service.create_driver(db, create_body(email=None))
        driver_service.create_driver(db, create_body(license_number="LIC2", email=None))
        assert db.query(Driver).count() == 2

    def test_cannot_create_on_duty(self, db):
        with pytest.raises(ValidationError) as exc:
            driver_service.create_driver(db, create_body(status="on_duty"))
        assert "status" in exc.value.errors

    def test_ids_are_not_reused_after_delete(self, db):
        first = driver_service.create_driver(db, create_body())
        driver_service.delete_driver(db, first.id)
        second = driver_service.create_driver(db, create_body())
        assert second.id > first.id


class TestProvisioning:
    def test_registers_account_with_driver_role(self, db):
        auth = MagicMock(spec=AuthServiceClient)
        driver = driver_service.create_driver(db, create_body(), auth)

        auth.register_driver.assert_called_once_with(
            full_name="Joko Nawar",
            email="jokonawar@example.com",
            username="jokonawar",
            password="LIC123456",
        )
        assert driver_service.get_driver(db, driver.id).license_number == "LIC123456"

    def test_failed_provisioning_removes_driver(self, db):
        auth = MagicMock(spec=AuthServiceClient)
        auth.register_driver.side_effect = UpstreamError("auth", "Failed to create driver account",
                                                         {"http_status": 500})

        with pytest.raises(UpstreamError):
            driver_service.create_driver(db, create_body(), auth)

        assert db.query(Driver).count() == 0

    def test_failed_cleanup_is_reported_as_compensation_failure(self, db):
        auth = MagicMock(spec=AuthServiceClient)
        auth.register_driver.side_effect = UpstreamError("auth", "Auth Service unreachable")

        with patch("app.services.driver_service.driver_store.delete_driver", side_effect=RuntimeError("db gone")):
            with pytest.raises(CompensationFailedError) as exc:
                driver_service.create_driver(db, create_body(), auth)

        assert exc.value.step == "delete driver"

    def test_name_and_email_required(self, db):
        auth = MagicMock(spec=AuthServiceClient)
        with pytest.raises(ValidationError) as exc:
            driver_service.create_driver(db, create_body(name=None, email=None), auth)

        assert set(exc.value.errors) == {"name", "email"}
        auth.register_driver.assert_not_called()


class TestGetAndList:
    def test_get_missing(self, db):
        with pytest.raises(NotFoundError):
            driver_service.get_driver(db, 42)

    def test_list_in_insertion_order(self, db, make_driver):
        ids = [make_driver().id for _ in range(3)]
        assert [d.id for d in driver_service.list_drivers(db)] == ids


class TestUpdateDriver:
    def test_missing_driver(self, db):
        with pytest.raises(NotFoundError):
            driver_service.update_driver(db, 1, DriverUpdate(name="x"))

    def test_partial_update_keeps_other_fields(self, db, make_driver):
        driver = make_driver(name="Old Name")
        updated = driver_service.update_driver(db, driver.id, DriverUpdate(name="New Name"))
        assert updated.name == "New Name"
        assert updated.license_number == driver.license_number

    def test_uniqueness_excludes_own_record(self, db, make_driver):
        driver = make_driver(license_number="LIC-A")
        updated = driver_service.update_driver(db, driver.id, DriverUpdate(license_number="LIC-A"))
        assert updated.license_number == "LIC-A"

    def test_uniqueness_against_other_records(self, db, make_driver):
        make_driver(license_number="LIC-A")
        other = make_driver(license_number="LIC-B")
        with pytest.raises(ValidationError) as exc:
            driver_service.update_driver(db, other.id, DriverUpdate(license_number="LIC-A"))
        assert "license_number" in exc.value.errors

    def test_on_duty_without_vehicle_rejected(self, db, make_driver):
        driver = make_driver()
        with pytest.raises(ValidationError) as exc:
            driver_service.update_driver(db, driver.id, DriverUpdate(status="on_duty"))
        assert "status" in exc.value.errors

    def test_vehicle_without_on_duty_rejected(self, db, make_driver):
        driver = make_driver()
        with pytest.raises(ValidationError) as exc:
            driver_service.update_driver(db, driver.id, DriverUpdate(vehicle_id="12"))
        assert "assigned_vehicle" in exc.value.errors

    def test_becoming_available_releases_vehicle(self, db, make_driver):
        driver = make_driver(status="on_duty", assigned_vehicle="4")
        client = MagicMock(spec=VehicleServiceClient)
        client.get_vehicle.return_value = vehicle("4", "InUse", "Truck", "L 9 AB")

        updated = driver_service.update_driver(db, driver.id, DriverUpdate(status="available"), client)

        assert (updated.status, updated.assigned_vehicle) == ("available", None)
        client.get_vehicle.assert_called_once_with("4")
        sent_vehicle, sent_status = client.set_status.call_args[0]
        assert sent_status == "Available"
        assert (sent_vehicle.type, sent_vehicle.plate_number) == ("Truck", "L 9 AB")

    def test_release_failure_does_not_fail_update(self, db, make_driver):
        driver = make_driver(status="on_duty", assigned_vehicle="4")
        client = MagicMock(spec=VehicleServiceClient)
        client.get_vehicle.return_value = vehicle("4", "InUse")
        client.set_status.side_effect = UpstreamError("vehicle", "Failed to update vehicle 4 status")

        updated = driver_service.update_driver(db, driver.id, DriverUpdate(status="available"), client)

        assert updated.status == "available"
        db.refresh(driver)
        assert driver.assigned_vehicle is None

    def test_update_without_transition_does_not_call_vehicle_service(self, db, make_driver):
        driver = make_driver(status="on_duty", assigned_vehicle="4")
        client = MagicMock(spec=VehicleServiceClient)

        driver_service.update_driver(db, driver.id, DriverUpdate(name="Renamed"), client)

        client.get_vehicle.assert_not_called()
        client.set_status.assert_not_called()

    def test_invariant_holds_after_update(self, db, make_driver):
        driver = make_driver(status="on_duty", assigned_vehicle="4")
        client = MagicMock(spec=VehicleServiceClient)
        client.get_vehicle.return_value = None

        updated = driver_service.update_driver(db, driver.id, DriverUpdate(status="unavailable"), client)

        assert updated.status == "unavailable"
        assert updated.assigned_vehicle is None

    def test_assignment_committed_mid_update_is_not_overwritten(self, db, make_driver):
        driver = make_driver()
        client = MagicMock(spec=VehicleServiceClient)
        real_check = driver_store.find_uniqueness_violations

        def assigned_meanwhile(*args, **kwargs):
            write_from_other_session(driver.id, status="on_duty", assigned_vehicle="2")
            return real_check(*args, **kwargs)

        with patch("app.services.driver_store.find_uniqueness_violations", side_effect=assigned_meanwhile):
            with pytest.raises(ConflictError, match="modified concurrently"):
                driver_service.update_driver(db, driver.id, DriverUpdate(status="unavailable"), client)

        db.expire_all()
        row = db.get(Driver, driver.id)
        assert (row.status, row.assigned_vehicle) == ("on_duty", "2")
        client.get_vehicle.assert_not_called()
        client.set_status.assert_not_called()

    def test_unique_constraint_at_write_time_is_validation_error(self, db, make_driver):
        make_driver(license_number="TAKEN1")
        driver = make_driver(license_number="MINE01")

        with patch("app.services.driver_store.find_uniqueness_violations", return_value={}):
            with pytest.raises(ValidationError) as exc:
                driver_service.update_driver(db, driver.id, DriverUpdate(license_number="TAKEN1"))

        assert "license_number" in exc.value.errors
        db.expire_all()
        assert db.get(Driver, driver.id).license_number == "MINE01"


class TestDeleteDriver:
    def test_delete(self, db, make_driver):
        driver = make_driver()
        driver_service.delete_driver(db, driver.id)
        assert db.query(Driver).count() == 0

    def test_delete_missing(self, db):
        with pytest.raises(NotFoundError):
            driver_service.delete_driver(db, 7)
