"""
Event endpoints: event facts, capacity, and per-event registrations.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from registrar.api.dependencies import get_registration_service
from registrar.core.logging import get_logger
from registrar.domain.models import RegistrationStatus
from registrar.schemas.event import (
    CapacityIncrease,
    CapacityIncreaseResponse,
    CapacityResponse,
    EventResponse,
    EventUpsert,
)
from registrar.schemas.registration import (
    RegistrationCreate,
    RegistrationListResponse,
    RegistrationResponse,
)
from registrar.services.registration_service import RegistrationService

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


@router.put("/{event_id}", response_model=EventResponse)
async def upsert_event_endpoint(
    event_id: int,
    event_data: EventUpsert,
    service: RegistrationService = Depends(get_registration_service),
):
    """
    Create or update the facts registration depends on.

    Capacity may only grow once the event has registrations; growing it
    promotes from the waitlist.
    """
    return await service.upsert_event(
        event_id,
        capacity=event_data.capacity,
        registration_open=event_data.registration_open,
        starts_at=event_data.starts_at,
    )


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: int,
    service: RegistrationService = Depends(get_registration_service),
):
    return await service.get_event(event_id)


@router.get("/{event_id}/capacity", response_model=CapacityResponse)
async def capacity_endpoint(
    event_id: int,
    service: RegistrationService = Depends(get_registration_service),
):
    """Confirmed and waitlisted counts. Recounted on every call."""
    summary = await service.capacity_summary(event_id)
    return CapacityResponse.model_validate(summary)


@router.post("/{event_id}/capacity", response_model=CapacityIncreaseResponse)
async def increase_capacity_endpoint(
    event_id: int,
    increase: CapacityIncrease,
    service: RegistrationService = Depends(get_registration_service),
):
    promoted = await service.increase_capacity(event_id, increase.additional)
    summary = await service.capacity_summary(event_id)
    return CapacityIncreaseResponse(
        capacity=CapacityResponse.model_validate(summary),
        promoted=[RegistrationResponse.model_validate(r) for r in promoted],
    )


@router.post(
    "/{event_id}/registrations",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_registration_endpoint(
    event_id: int,
    registration_data: RegistrationCreate,
    service: RegistrationService = Depends(get_registration_service),
):
    """
    Register a participant for an event.

    Confirmed while capacity lasts, waitlisted after that. Concurrent
    requests for the same event are serialized, so the last slot is
    handed out exactly once.
    """
    return await service.request_registration(registration_data.participant_id, event_id)


@router.get("/{event_id}/registrations", response_model=RegistrationListResponse)
async def list_registrations_endpoint(
    event_id: int,
    status_filter: Optional[RegistrationStatus] = Query(None, alias="status"),
    service: RegistrationService = Depends(get_registration_service),
):
    """Registrations in arrival order, optionally filtered by status."""
    registrations = await service.registrations_for_event(event_id, status_filter)
    return RegistrationListResponse(
        registrations=[RegistrationResponse.model_validate(r) for r in registrations],
        total=len(registrations),
    )


@router.delete("/{event_id}/registrations/{participant_id}", response_model=RegistrationResponse)
async def cancel_participant_registration_endpoint(
    event_id: int,
    participant_id: int,
    service: RegistrationService = Depends(get_registration_service),
):
    """Cancel the participant's active registration for this event."""
    return await service.cancel_for_participant(event_id, participant_id)
