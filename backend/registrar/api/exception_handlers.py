"""
Maps registration errors onto HTTP responses.

Response body: {"detail": <message>, "code": <ErrorCode>}.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from registrar.core.exceptions import ErrorCode, RegistrarError
from registrar.core.logging import get_logger

logger = get_logger(__name__)

STATUS_BY_CODE = {
    ErrorCode.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.PARTICIPANT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.REGISTRATION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.EVENT_NOT_OPEN: status.HTTP_409_CONFLICT,
    ErrorCode.EVENT_NOT_STARTED: status.HTTP_409_CONFLICT,
    ErrorCode.DUPLICATE_ACTIVE_REGISTRATION: status.HTTP_409_CONFLICT,
    ErrorCode.ILLEGAL_STATUS_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_CAPACITY: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.CONTENTION: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.LEDGER_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


async def registrar_error_handler(request: Request, exc: RegistrarError) -> JSONResponse:
    status_code = STATUS_BY_CODE.get(exc.code, status.HTTP_400_BAD_REQUEST)
    headers = {"Retry-After": "1"} if exc.retriable else None

    log = logger.warning if status_code >= 500 else logger.info
    log("request_rejected", code=exc.code.value, status_code=status_code, detail=exc.message)

    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code.value},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RegistrarError, registrar_error_handler)
