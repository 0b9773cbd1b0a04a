"""Pytest configuration and fixtures."""

import asyncio
import uuid
from datetime import datetime
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from dental_works.core.database import get_db
from dental_works.core.models import Base
from dental_works.core.repository import PatientRepository
from dental_works.core.schemas import PatientRead
from dental_works.scheduling.errors import StoreError
from dental_works.scheduling.models import Appointment, AppointmentPatch, PatientSummary
from dental_works.scheduling.store import AppointmentStore


# ---------------------------------------------------------------------------
# Auth override for tests: bypass get_current_user dependency
# ---------------------------------------------------------------------------

class _MockUser:
    """Lightweight stand-in for the User ORM model used in tests."""

    def __init__(self):
        self.id = uuid.UUID("bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb")
        self.email = "reception@example.com"
        self.password_hash = ""


def _fake_current_user():
    return _MockUser()


def apply_auth_override(app):
    """Apply get_current_user override to a FastAPI test app."""
    from dental_works.api.dependencies import get_current_user
    app.dependency_overrides[get_current_user] = _fake_current_user
    return app


# ---------------------------------------------------------------------------
# Database: in-memory SQLite shared by every session of one test
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite://", echo=False, poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as sess:
        yield sess


@pytest_asyncio.fixture
async def patient(session_factory):
    """One committed patient."""
    async with session_factory() as sess:
        row = await PatientRepository(sess).create(
            first_name="Anna", last_name="Petrova", phone="+7 900 123-45-67"
        )
        await sess.commit()
    return row


def make_app(session_factory, authenticated: bool = True):
    """Full API app bound to the test database."""
    from dental_works.api.app import create_app

    async def _override_get_db():
        async with session_factory() as sess:
            try:
                yield sess
                await sess.commit()
            except Exception:
                await sess.rollback()
                raise

    app = create_app()
    app.dependency_overrides[get_db] = _override_get_db
    if authenticated:
        apply_auth_override(app)
    return app


@pytest_asyncio.fixture
async def client(session_factory):
    """Authenticated AsyncClient against the API and the test database."""
    transport = ASGITransport(app=make_app(session_factory))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def anon_client(session_factory):
    """AsyncClient with real bearer-token auth."""
    transport = ASGITransport(app=make_app(session_factory, authenticated=False))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# In-memory store for calendar tests
# ---------------------------------------------------------------------------

def make_appointment(
    scheduled: datetime,
    appointment_id: Optional[str] = None,
    patient_id: str = "p-1",
    duration: int = 30,
    **kwargs,
) -> Appointment:
    return Appointment(
        id=appointment_id or str(uuid.uuid4()),
        patient_id=patient_id,
        scheduled_date=scheduled,
        duration=duration,
        patient=PatientSummary(first_name="Anna", last_name="Petrova", phone="+7 900"),
        **kwargs,
    )


class FakeStore(AppointmentStore):
    """Appointment store kept in a list, recording every call.

    ``gates`` lets a test hold individual ``list_appointments`` calls open:
    the n-th call (0-based) waits on ``gates[n]`` before answering.
    """

    def __init__(self, appointments: Optional[list[Appointment]] = None):
        self.appointments: list[Appointment] = list(appointments or [])
        self.patients: list[PatientRead] = []
        self.calls: list[tuple] = []
        self.gates: dict[int, asyncio.Event] = {}
        self.list_error: Optional[StoreError] = None
        self.mutation_error: Optional[StoreError] = None
        self._list_count = 0

    async def list_appointments(self, start, end):
        n = self._list_count
        self._list_count += 1
        self.calls.append(("list_appointments", start, end))
        snapshot = sorted(
            (a for a in self.appointments if start <= a.scheduled_date <= end),
            key=lambda a: a.scheduled_date,
        )
        if n in self.gates:
            await self.gates[n].wait()
        if self.list_error is not None:
            raise self.list_error
        return snapshot

    async def create_appointment(self, patient_id, scheduled_date, duration, treatment_type=None, notes=None):
        self.calls.append(("create_appointment", patient_id, scheduled_date, duration, treatment_type, notes))
        if self.mutation_error is not None:
            raise self.mutation_error
        appt = make_appointment(
            scheduled_date,
            patient_id=patient_id,
            duration=duration,
            treatment_type=treatment_type,
            notes=notes,
        )
        self.appointments.append(appt)
        return appt

    async def update_appointment(self, appointment_id, patch: AppointmentPatch):
        self.calls.append(("update_appointment", appointment_id, patch))
        if self.mutation_error is not None:
            raise self.mutation_error
        for i, appt in enumerate(self.appointments):
            if appt.id == appointment_id:
                self.appointments[i] = appt.model_copy(update=patch.changes())
                return self.appointments[i]
        raise StoreError("Appointment not found", status_code=404)

    async def delete_appointment(self, appointment_id):
        self.calls.append(("delete_appointment", appointment_id))
        if self.mutation_error is not None:
            raise self.mutation_error
        before = len(self.appointments)
        self.appointments = [a for a in self.appointments if a.id != appointment_id]
        if len(self.appointments) == before:
            raise StoreError("Appointment not found", status_code=404)

    async def list_patients(self):
        self.calls.append(("list_patients",))
        return list(self.patients)

    async def search_patients(self, query):
        self.calls.append(("search_patients", query))
        needle = query.strip().lower()
        return [
            p for p in self.patients
            if needle in p.first_name.lower()
            or needle in p.last_name.lower()
            or needle in (p.email or "").lower()
            or query.strip() in p.phone
        ]

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]


@pytest.fixture
def fake_store():
    return FakeStore()
