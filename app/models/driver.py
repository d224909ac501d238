# app/models/driver.py
"""
Drivers table — the only entity this service owns.
`assigned_vehicle` is a weak reference to a vehicle owned by the Vehicle Service.
Status and vehicle reference move together: on_duty iff assigned_vehicle is set.
"""

import enum

from sqlalchemy import Column, Integer, String, DateTime
from app.database import Base


class DriverStatus(str, enum.Enum):
    AVAILABLE = "available"
    ON_DUTY = "on_duty"
    UNAVAILABLE = "unavailable"


class Driver(Base):
    __tablename__ = "drivers"
    __table_args__ = {"sqlite_autoincrement": True}   # ids are never reused after delete

    id = Column(Integer, primary_key=True, autoincrement=True)
    license_number = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(255))
    email = Column(String(255), unique=True, index=True)
    user_id = Column(String(100), unique=True, index=True)
    status = Column(String(20), nullable=False, default=DriverStatus.AVAILABLE.value)
    assigned_vehicle = Column(String(255))
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    def __repr__(self):
        return f"<Driver {self.id} license={self.license_number} status={self.status} vehicle={self.assigned_vehicle}>"
