"""
FastAPI dependencies.
The service is built once in the application lifespan and kept on app.state.
"""

from fastapi import Request

from registrar.services.registration_service import RegistrationService


def get_registration_service(request: Request) -> RegistrationService:
    return request.app.state.registration_service
