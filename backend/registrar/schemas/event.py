"""
Pydantic schemas for event facts and capacity.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from registrar.schemas.registration import RegistrationResponse


class EventUpsert(BaseModel):
    capacity: int = Field(..., gt=0, le=100000)
    registration_open: bool = True
    starts_at: Optional[datetime] = None


class EventResponse(BaseModel):
    id: int
    capacity: int
    registration_open: bool
    starts_at: Optional[datetime]

    model_config = {"from_attributes": True}


class CapacityIncrease(BaseModel):
    additional: int = Field(..., gt=0, le=100000)


class CapacityResponse(BaseModel):
    event_id: int
    capacity: int
    confirmed: int
    waitlisted: int
    available: int

    model_config = {"from_attributes": True}


class CapacityIncreaseResponse(BaseModel):
    capacity: CapacityResponse
    promoted: list[RegistrationResponse]
