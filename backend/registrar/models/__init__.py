from registrar.models.event import Event
from registrar.models.registration import Registration

__all__ = ["Event", "Registration"]
