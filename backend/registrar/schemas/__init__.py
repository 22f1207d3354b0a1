from registrar.schemas.event import (
    CapacityIncrease,
    CapacityIncreaseResponse,
    CapacityResponse,
    EventResponse,
    EventUpsert,
)
from registrar.schemas.registration import (
    RegistrationCheckResponse,
    RegistrationCreate,
    RegistrationListResponse,
    RegistrationResponse,
)

__all__ = [
    "EventUpsert", "EventResponse",
    "CapacityIncrease", "CapacityResponse", "CapacityIncreaseResponse",
    "RegistrationCreate", "RegistrationResponse", "RegistrationListResponse",
    "RegistrationCheckResponse",
]
