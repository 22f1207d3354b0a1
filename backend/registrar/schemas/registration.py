"""
Pydantic schemas for registration request/response validation.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from registrar.domain.models import RegistrationStatus


class RegistrationCreate(BaseModel):
    participant_id: int = Field(..., gt=0)


class RegistrationResponse(BaseModel):
    id: int
    event_id: int
    participant_id: int
    status: RegistrationStatus
    requested_at: datetime
    checked_in: bool
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RegistrationListResponse(BaseModel):
    registrations: list[RegistrationResponse]
    total: int


class RegistrationCheckResponse(BaseModel):
    event_id: int
    participant_id: int
    registered: bool
