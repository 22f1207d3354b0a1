"""
SQLAlchemy-backed registration ledger.

CONCURRENCY STRATEGY: SELECT ... FOR UPDATE on the event row
=============================================================

Every transaction opens a database transaction and locks the event row
before reading anything:

  1. SELECT * FROM events WHERE id = :event_id FOR UPDATE
  2. Recount CONFIRMED registrations, decide, INSERT/UPDATE registrations
  3. COMMIT releases the row lock

Another process working on the same event blocks on step 1 until we
commit, so it always sees our writes. Different events lock different
rows and never wait on each other.

Inside one process the same per-event asyncio lock as the in-memory
ledger is taken first, so tasks queue locally instead of tying up pool
connections while they wait on the row lock.

On PostgreSQL the row-lock wait is bounded with SET LOCAL lock_timeout.
Lock timeouts, serialization failures and deadlocks (SQLSTATE 55P03,
40001, 40P01) surface as ContentionError; any other database failure is
LedgerUnavailableError. The transaction is rolled back in both cases.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional

from sqlalchemy import func, select, text, update
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from registrar.core.exceptions import ContentionError, LedgerUnavailableError
from registrar.core.logging import get_logger
from registrar.db.base import Base
from registrar.domain.models import EventRecord, Registration, RegistrationStatus, as_utc
from registrar.infrastructure.locks import EventLockRegistry
from registrar.models.event import Event as EventRow
from registrar.models.registration import Registration as RegistrationRow
from registrar.services.interfaces.ledger import LedgerTransaction, RegistrationLedger

logger = get_logger(__name__)

CONTENTION_SQLSTATES = {"55P03", "40001", "40P01"}


def _event_to_domain(row: EventRow) -> EventRecord:
    return EventRecord(
        id=row.id,
        capacity=row.capacity,
        registration_open=row.registration_open,
        starts_at=as_utc(row.starts_at),
    )


def _registration_to_domain(row: RegistrationRow) -> Registration:
    return Registration(
        id=row.id,
        event_id=row.event_id,
        participant_id=row.participant_id,
        status=RegistrationStatus(row.status),
        requested_at=as_utc(row.requested_at),
        checked_in=row.checked_in,
        updated_at=as_utc(row.updated_at),
    )


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


class SqlTransaction(LedgerTransaction):

    def __init__(self, session: AsyncSession, event_id: int) -> None:
        self.event_id = event_id
        self._session = session
        self._event_row: Optional[EventRow] = None

    async def lock_event(self) -> None:
        result = await self._session.execute(
            select(EventRow).where(EventRow.id == self.event_id).with_for_update()
        )
        self._event_row = result.scalar_one_or_none()

    async def get_event(self) -> Optional[EventRecord]:
        if self._event_row is None:
            return None
        return _event_to_domain(self._event_row)

    async def save_event(self, event: EventRecord) -> None:
        if self._event_row is None:
            self._event_row = EventRow(
                id=event.id,
                capacity=event.capacity,
                registration_open=event.registration_open,
                starts_at=event.starts_at,
            )
            self._session.add(self._event_row)
        else:
            self._event_row.capacity = event.capacity
            self._event_row.registration_open = event.registration_open
            self._event_row.starts_at = event.starts_at
        await self._session.flush()

    def _for_event(self):
        return select(RegistrationRow).where(RegistrationRow.event_id == self.event_id)

    async def has_registrations(self) -> bool:
        result = await self._session.execute(self._for_event().limit(1))
        return result.scalar_one_or_none() is not None

    async def get_registration(self, registration_id: int) -> Optional[Registration]:
        result = await self._session.execute(
            self._for_event().where(RegistrationRow.id == registration_id)
        )
        row = result.scalar_one_or_none()
        return _registration_to_domain(row) if row else None

    async def find_active(self, participant_id: int) -> Optional[Registration]:
        result = await self._session.execute(
            self._for_event().where(
                RegistrationRow.participant_id == participant_id,
                RegistrationRow.status != RegistrationStatus.CANCELLED.value,
            )
        )
        row = result.scalars().first()
        return _registration_to_domain(row) if row else None

    async def count_by_status(self, status: RegistrationStatus) -> int:
        result = await self._session.execute(
            select(func.count())
            .select_from(RegistrationRow)
            .where(RegistrationRow.event_id == self.event_id, RegistrationRow.status == status.value)
        )
        return result.scalar_one()

    async def oldest_waitlisted(self) -> Optional[Registration]:
        result = await self._session.execute(
            self._for_event()
            .where(RegistrationRow.status == RegistrationStatus.WAITLISTED.value)
            .order_by(RegistrationRow.requested_at.asc(), RegistrationRow.id.asc())
            .limit(1)
        )
        row = result.scalar_one_or_none()
        return _registration_to_domain(row) if row else None

    async def latest_requested_at(self) -> Optional[datetime]:
        result = await self._session.execute(
            select(RegistrationRow.requested_at)
            .where(RegistrationRow.event_id == self.event_id)
            .order_by(RegistrationRow.requested_at.desc())
            .limit(1)
        )
        return as_utc(result.scalar_one_or_none())

    async def add(self, participant_id: int, status: RegistrationStatus,
                  requested_at: datetime) -> Registration:
        row = RegistrationRow(
            event_id=self.event_id,
            participant_id=participant_id,
            status=status.value,
            requested_at=requested_at,
            checked_in=False,
            updated_at=requested_at,
        )
        self._session.add(row)
        await self._session.flush()
        return _registration_to_domain(row)

    async def update(self, registration: Registration) -> None:
        result = await self._session.execute(
            update(RegistrationRow)
            .where(RegistrationRow.id == registration.id, RegistrationRow.event_id == self.event_id)
            .values(
                status=registration.status.value,
                checked_in=registration.checked_in,
                updated_at=registration.updated_at,
            )
        )
        if result.rowcount != 1:
            raise LedgerUnavailableError(f"registration {registration.id} vanished during update")


class SqlAlchemyLedger(RegistrationLedger):
    """PostgreSQL (or SQLite for tests) ledger using async SQLAlchemy sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], lock_timeout: float = 5.0) -> None:
        self._session_factory = session_factory
        self._lock_timeout = lock_timeout
        self._locks = EventLockRegistry(lock_timeout)

    async def create_schema(self) -> None:
        """Create tables directly; production uses alembic migrations instead."""
        engine = self._session_factory.kw["bind"]
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        engine = self._session_factory.kw.get("bind")
        if engine is not None:
            await engine.dispose()

    @asynccontextmanager
    async def transaction(self, event_id: int) -> AsyncIterator[SqlTransaction]:
        async with self._locks.hold(event_id):
            try:
                async with self._session_factory() as session:
                    async with session.begin():
                        if session.bind.dialect.name == "postgresql":
                            timeout_ms = int(self._lock_timeout * 1000)
                            await session.execute(text(f"SET LOCAL lock_timeout = '{timeout_ms}ms'"))
                        tx = SqlTransaction(session, event_id)
                        await tx.lock_event()
                        yield tx
            except IntegrityError as exc:
                # Only reachable when another process slipped a row in first
                logger.warning("ledger_integrity_conflict", event_id=event_id, error=str(exc.orig))
                raise ContentionError(event_id, "integrity_conflict") from exc
            except DBAPIError as exc:
                if _sqlstate(exc) in CONTENTION_SQLSTATES:
                    raise ContentionError(event_id, "database_lock") from exc
                logger.error("ledger_unavailable", event_id=event_id, error=str(exc.orig))
                raise LedgerUnavailableError(str(exc.orig)) from exc
            except (SQLAlchemyError, OSError) as exc:
                logger.error("ledger_unavailable", event_id=event_id, error=str(exc))
                raise LedgerUnavailableError(str(exc)) from exc

    @asynccontextmanager
    async def _reading(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except (SQLAlchemyError, OSError) as exc:
            logger.error("ledger_unavailable", error=str(exc))
            raise LedgerUnavailableError(str(exc)) from exc

    async def get_event(self, event_id: int) -> Optional[EventRecord]:
        async with self._reading() as session:
            row = await session.get(EventRow, event_id)
            return _event_to_domain(row) if row else None

    async def get_registration(self, registration_id: int) -> Optional[Registration]:
        async with self._reading() as session:
            row = await session.get(RegistrationRow, registration_id)
            return _registration_to_domain(row) if row else None

    async def list_for_event(self, event_id: int,
                             status: Optional[RegistrationStatus] = None) -> list[Registration]:
        query = select(RegistrationRow).where(RegistrationRow.event_id == event_id)
        if status is not None:
            query = query.where(RegistrationRow.status == status.value)
        query = query.order_by(RegistrationRow.requested_at.asc(), RegistrationRow.id.asc())
        async with self._reading() as session:
            result = await session.execute(query)
            return [_registration_to_domain(row) for row in result.scalars().all()]

    async def list_for_participant(self, participant_id: int) -> list[Registration]:
        query = (
            select(RegistrationRow)
            .where(RegistrationRow.participant_id == participant_id)
            .order_by(RegistrationRow.requested_at.desc(), RegistrationRow.id.desc())
        )
        async with self._reading() as session:
            result = await session.execute(query)
            return [_registration_to_domain(row) for row in result.scalars().all()]

    async def count_by_status(self, event_id: int, status: RegistrationStatus) -> int:
        async with self._reading() as session:
            result = await session.execute(
                select(func.count())
                .select_from(RegistrationRow)
                .where(RegistrationRow.event_id == event_id, RegistrationRow.status == status.value)
            )
            return result.scalar_one()
