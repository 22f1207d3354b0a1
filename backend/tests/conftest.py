"""
Pytest fixtures for ledgers, the registration service, and the HTTP client.

Service-level tests run against the in-memory ledger; test_sql_ledger.py
builds its own SQLite-backed ledger. The HTTP client talks to a fresh app
whose service dependency is overridden with the test service.
"""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from registrar.api.dependencies import get_registration_service
from registrar.domain.notifications import NotificationKind, RegistrationNotification
from registrar.infrastructure.memory_ledger import InMemoryLedger
from registrar.main import create_app
from registrar.services.interfaces.directory import ParticipantDirectory
from registrar.services.interfaces.notifier import NotificationDispatcher
from registrar.services.registration_service import RegistrationService

EVENT_ID = 1
START = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Deterministic clock; advance() moves it forward explicitly."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


class RecordingDispatcher(NotificationDispatcher):

    def __init__(self) -> None:
        self.sent: list[RegistrationNotification] = []

    async def dispatch(self, notification: RegistrationNotification) -> None:
        self.sent.append(notification)

    def kinds(self) -> list[NotificationKind]:
        return [n.kind for n in self.sent]

    def participants(self, kind: NotificationKind) -> list[int]:
        return [n.participant_id for n in self.sent if n.kind is kind]


class FailingDispatcher(NotificationDispatcher):

    def __init__(self) -> None:
        self.attempts = 0

    async def dispatch(self, notification: RegistrationNotification) -> None:
        self.attempts += 1
        raise ConnectionError("notification channel down")


class StaticParticipantDirectory(ParticipantDirectory):

    def __init__(self, known: set[int]) -> None:
        self.known = known

    async def participant_exists(self, participant_id: int) -> bool:
        return participant_id in self.known


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger(lock_timeout=1.0)


@pytest.fixture
def service(ledger: InMemoryLedger, dispatcher: RecordingDispatcher, clock: FrozenClock) -> RegistrationService:
    return RegistrationService(ledger, dispatcher=dispatcher, clock=clock)


@pytest_asyncio.fixture
async def small_event(service: RegistrationService):
    """Event 1 with two slots, open for registration, starting in a day."""
    return await service.upsert_event(EVENT_ID, capacity=2, starts_at=START + timedelta(days=1))


@pytest_asyncio.fixture(scope="function")
async def client(service: RegistrationService) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the service dependency with the test service."""
    app = create_app()
    app.dependency_overrides[get_registration_service] = lambda: service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
