# app/schemas/vehicle.py
"""Vehicle as seen through the Vehicle Service API. This service never persists it."""

from pydantic import BaseModel, field_validator
from typing import Optional


class VehicleRecord(BaseModel):
    id: str
    type: Optional[str] = None
    plate_number: Optional[str] = None
    status: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        # Vehicle ids arrive as ints from the Vehicle Service; drivers store them as strings
        return str(v)

    @property
    def is_available(self) -> bool:
        return (self.status or "").lower() == "available"

    class Config:
        extra = "ignore"
