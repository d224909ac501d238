# app/schemas/driver.py
from pydantic import BaseModel, EmailStr, Field, AliasChoices, field_serializer, field_validator
from datetime import datetime
from typing import Optional, Literal

from app.utils.timefmt import to_display_time

DriverStatusLiteral = Literal["available", "on_duty", "unavailable"]


def _id_as_str(value):
    # Vehicle ids are numeric in the Vehicle Service but stored as strings here
    return str(value) if isinstance(value, int) and not isinstance(value, bool) else value


class DriverCreate(BaseModel):
    license_number: str = Field(min_length=1, max_length=50)
    name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[EmailStr] = None
    user_id: Optional[str] = Field(default=None, max_length=100)
    status: Optional[DriverStatusLiteral] = None


class DriverUpdate(BaseModel):
    """Partial update — only fields present in the request body are applied."""
    license_number: Optional[str] = Field(default=None, min_length=1, max_length=50)
    name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[EmailStr] = None
    user_id: Optional[str] = Field(default=None, max_length=100)
    status: Optional[DriverStatusLiteral] = None
    assigned_vehicle: Optional[str] = Field(
        default=None,
        max_length=255,
        validation_alias=AliasChoices("assigned_vehicle", "vehicle_id"),
    )

    @field_validator("assigned_vehicle", mode="before")
    @classmethod
    def vehicle_id_as_str(cls, v):
        return _id_as_str(v)


class AssignRequest(BaseModel):
    driver_id: int
    vehicle_id: Optional[str] = None   # omitted → first available vehicle

    @field_validator("vehicle_id", mode="before")
    @classmethod
    def vehicle_id_as_str(cls, v):
        return _id_as_str(v)


class DriverOut(BaseModel):
    id: int
    license_number: str
    name: Optional[str]
    email: Optional[str]
    user_id: Optional[str]
    status: str
    assigned_vehicle: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    @field_serializer("created_at", "updated_at")
    def _display_time(self, value: Optional[datetime]):
        return to_display_time(value)

    class Config:
        from_attributes = True
