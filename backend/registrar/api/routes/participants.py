"""
Participant-centric views.
"""

from fastapi import APIRouter, Depends

from registrar.api.dependencies import get_registration_service
from registrar.schemas.registration import RegistrationCheckResponse, RegistrationResponse
from registrar.services.registration_service import RegistrationService

router = APIRouter(prefix="/participants", tags=["Participants"])


@router.get("/{participant_id}/registrations", response_model=list[RegistrationResponse])
async def participant_registrations_endpoint(
    participant_id: int,
    service: RegistrationService = Depends(get_registration_service),
):
    """All registrations of a participant, most recent first."""
    return await service.registrations_for_participant(participant_id)


@router.get("/{participant_id}/events/{event_id}", response_model=RegistrationCheckResponse)
async def participant_event_check_endpoint(
    participant_id: int,
    event_id: int,
    service: RegistrationService = Depends(get_registration_service),
):
    registered = await service.is_registered(event_id, participant_id)
    return RegistrationCheckResponse(event_id=event_id, participant_id=participant_id, registered=registered)
