"""
Service wiring.
Chooses the ledger backend and the notification dispatcher from settings.
"""

from registrar.core.config import Settings
from registrar.core.logging import get_logger
from registrar.db.session import build_engine, build_session_factory
from registrar.infrastructure.memory_ledger import InMemoryLedger
from registrar.infrastructure.redis_client import get_redis
from registrar.infrastructure.sql_ledger import SqlAlchemyLedger
from registrar.services.interfaces.ledger import RegistrationLedger
from registrar.services.interfaces.notifier import NotificationDispatcher
from registrar.services.notification_service import LoggingDispatcher, RedisNotificationDispatcher
from registrar.services.registration_service import RegistrationService

logger = get_logger(__name__)


def build_ledger(settings: Settings) -> RegistrationLedger:
    """
    Get configured ledger backend.

    - memory: single-process, state is lost on restart (development, tests)
    - sql: PostgreSQL via asyncpg, row locks on the event row

    Selected via LEDGER_BACKEND.
    """
    backend = settings.LEDGER_BACKEND
    if backend == "sql":
        session_factory = build_session_factory(build_engine(settings))
        return SqlAlchemyLedger(session_factory, lock_timeout=settings.LOCK_TIMEOUT_SECONDS)
    if backend == "memory":
        return InMemoryLedger(lock_timeout=settings.LOCK_TIMEOUT_SECONDS)
    raise ValueError(f"Unknown LEDGER_BACKEND: {settings.LEDGER_BACKEND!r}")


def build_dispatcher(settings: Settings) -> NotificationDispatcher:
    if settings.REDIS_ENABLED:
        return RedisNotificationDispatcher(get_redis(settings), settings.NOTIFICATION_CHANNEL)
    return LoggingDispatcher()


def build_registration_service(settings: Settings, ledger: RegistrationLedger,
                               dispatcher: NotificationDispatcher) -> RegistrationService:
    logger.info(
        "registration_service_configured",
        ledger=type(ledger).__name__,
        dispatcher=type(dispatcher).__name__,
        retry_attempts=settings.CONTENTION_RETRY_ATTEMPTS,
    )
    return RegistrationService(
        ledger,
        dispatcher=dispatcher,
        retry_attempts=settings.CONTENTION_RETRY_ATTEMPTS,
    )
