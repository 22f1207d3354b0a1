"""
Registration endpoints addressed by registration id.
"""

from fastapi import APIRouter, Depends

from registrar.api.dependencies import get_registration_service
from registrar.schemas.registration import RegistrationResponse
from registrar.services.registration_service import RegistrationService

router = APIRouter(prefix="/registrations", tags=["Registrations"])


@router.get("/{registration_id}", response_model=RegistrationResponse)
async def get_registration_endpoint(
    registration_id: int,
    service: RegistrationService = Depends(get_registration_service),
):
    return await service.get_registration(registration_id)


@router.post("/{registration_id}/cancel", response_model=RegistrationResponse)
async def cancel_registration_endpoint(
    registration_id: int,
    service: RegistrationService = Depends(get_registration_service),
):
    """Cancel a registration. A freed confirmed slot goes to the oldest waitlisted one."""
    return await service.cancel_registration(registration_id)


@router.post("/{registration_id}/check-in", response_model=RegistrationResponse)
async def check_in_endpoint(
    registration_id: int,
    service: RegistrationService = Depends(get_registration_service),
):
    return await service.check_in(registration_id)


@router.post("/{registration_id}/no-show", response_model=RegistrationResponse)
async def no_show_endpoint(
    registration_id: int,
    service: RegistrationService = Depends(get_registration_service),
):
    """Mark a confirmed registration as no-show. Only allowed once the event has started."""
    return await service.mark_no_show(registration_id)
