# app/services/driver_store.py
"""
Driver Store: persistence helpers for the drivers table.
Used by driver_service and assignment_service. Status/vehicle writes that
race with other requests go through compare_and_set() so the database decides
the winner.
"""

from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import ValidationError
from app.models.driver import Driver
from app.utils.logger import get_logger

logger = get_logger(__name__)

# Columns that must be unique across all drivers when present
UNIQUE_FIELDS = ("license_number", "email", "user_id")


def get_driver(db: Session, driver_id: int) -> Optional[Driver]:
    return db.query(Driver).filter(Driver.id == driver_id).first()


def list_drivers(db: Session) -> List[Driver]:
    return db.query(Driver).order_by(Driver.id).all()


def find_uniqueness_violations(db: Session, fields: Dict, exclude_id: Optional[int] = None) -> Dict[str, list]:
    """Return {field: [message]} for every unique field already taken by another driver."""
    errors: Dict[str, list] = {}
    for field in UNIQUE_FIELDS:
        value = fields.get(field)
        if value is None:
            continue
        q = db.query(Driver.id).filter(getattr(Driver, field) == value)
        if exclude_id is not None:
            q = q.filter(Driver.id != exclude_id)
        if q.first():
            errors[field] = [f"The {field.replace('_', ' ')} has already been taken."]
    return errors


def insert_driver(db: Session, fields: Dict) -> Driver:
    now = datetime.utcnow()
    driver = Driver(**fields, created_at=now, updated_at=now)
    db.add(driver)
    _commit_or_raise(db, fields)
    db.refresh(driver)
    return driver


def delete_driver(db: Session, driver: Driver):
    try:
        db.delete(driver)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


def compare_and_set(db: Session, driver_id: int, expected: Dict, changes: Dict) -> bool:
    """
    Conditionally update one driver row: only if every column in `expected`
    still holds the expected value. Commits and returns True when the row was
    updated, False when another writer got there first.
    A unique-constraint violation raises ValidationError.
    """
    q = db.query(Driver).filter(Driver.id == driver_id)
    for column, value in expected.items():
        attr = getattr(Driver, column)
        q = q.filter(attr.is_(None) if value is None else attr == value)
    try:
        matched = q.update({**changes, "updated_at": datetime.utcnow()}, synchronize_session=False)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise _taken_error(e, changes)
    except SQLAlchemyError:
        db.rollback()
        raise
    db.expire_all()
    return matched == 1


def _commit_or_raise(db: Session, fields: Dict):
    """Commit; a unique-constraint race lost at the database becomes a ValidationError."""
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise _taken_error(e, fields)


def _taken_error(e: IntegrityError, fields: Dict) -> ValidationError:
    logger.warning(f"Unique constraint rejected driver write: {e.orig}")
    taken = [f for f in UNIQUE_FIELDS if fields.get(f) is not None] or ["driver"]
    return ValidationError({f: [f"The {f.replace('_', ' ')} has already been taken."] for f in taken})
