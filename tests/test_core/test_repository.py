"""Tests for clinic repositories using async SQLite."""

from __future__ import annotations

import asyncio
import uuid
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from dental_works.core.repository import (
    AppointmentRepository,
    AuditRepository,
    PatientRepository,
    UserRepository,
    to_utc,
)

MOSCOW = ZoneInfo("Europe/Moscow")


def test_to_utc():
    assert to_utc(datetime(2024, 3, 13, 9, 0, tzinfo=MOSCOW)) == datetime(2024, 3, 13, 6, 0, tzinfo=timezone.utc)
    assert to_utc(datetime(2024, 3, 13, 9, 0)).tzinfo is timezone.utc


# --- Patient ---

async def test_patient_create_and_get(session: AsyncSession):
    repo = PatientRepository(session)
    p = await repo.create(
        first_name="Ivan", last_name="Sidorov", phone="+7 901 000-00-00", birth_date=date(1990, 1, 15)
    )
    assert p.id is not None

    fetched = await repo.get_by_id(p.id)
    assert fetched is not None
    assert fetched.last_name == "Sidorov"
    assert fetched.birth_date == date(1990, 1, 15)


async def test_patient_update(session: AsyncSession):
    repo = PatientRepository(session)
    p = await repo.create(first_name="Olga", last_name="Smirnova", phone="123")
    updated = await repo.update(p.id, phone="555-1234", email="olga@example.com")
    assert updated is not None
    assert updated.phone == "555-1234"
    assert updated.email == "olga@example.com"
    assert await repo.update(uuid.uuid4(), phone="1") is None


async def test_patient_search(session: AsyncSession):
    repo = PatientRepository(session)
    await repo.create(first_name="Alice", last_name="Johnson", phone="111-22-33")
    await repo.create(first_name="Bob", last_name="Williams", phone="999", email="bob@clinic.ru")
    await session.flush()

    assert [p.first_name for p in await repo.search("john")] == ["Alice"]
    assert [p.first_name for p in await repo.search("CLINIC")] == ["Bob"]
    assert [p.first_name for p in await repo.search("22-33")] == ["Alice"]
    assert await repo.search("nobody") == []


async def test_patient_count(session: AsyncSession):
    repo = PatientRepository(session)
    assert await repo.count() == 0
    await repo.create(first_name="Alice", last_name="Johnson", phone="1")
    await repo.create(first_name="Bob", last_name="Williams", phone="2")
    assert await repo.count() == 2


async def test_patient_list_orders(session: AsyncSession):
    repo = PatientRepository(session)
    zoe = await repo.create(first_name="Zoe", last_name="A", phone="1")
    await asyncio.sleep(0.01)
    adam = await repo.create(first_name="Adam", last_name="B", phone="2")

    assert [p.id for p in await repo.list()] == [adam.id, zoe.id]
    assert [p.id for p in await repo.list(order_by="created_at")] == [adam.id, zoe.id]
    assert len(await repo.list(limit=1)) == 1


# --- Appointment ---

async def test_appointment_list_between_is_inclusive_and_sorted(session: AsyncSession):
    patient = await PatientRepository(session).create(first_name="A", last_name="B", phone="1")
    repo = AppointmentRepository(session)
    start = datetime(2024, 3, 11, tzinfo=MOSCOW)
    end = datetime(2024, 3, 17, 23, 59, 59, 999000, tzinfo=MOSCOW)

    last = await repo.create(patient_id=patient.id, scheduled_date=end, duration=30)
    first = await repo.create(patient_id=patient.id, scheduled_date=start, duration=30)
    await repo.create(patient_id=patient.id, scheduled_date=end + timedelta(milliseconds=1), duration=30)

    rows = await repo.list_between(start, end)

    assert [r.id for r in rows] == [first.id, last.id]
    assert rows[0].patient.first_name == "A"


async def test_appointment_count_between_excludes_end(session: AsyncSession):
    patient = await PatientRepository(session).create(first_name="A", last_name="B", phone="1")
    repo = AppointmentRepository(session)
    start = datetime(2024, 3, 13, tzinfo=MOSCOW)
    end = datetime(2024, 3, 14, tzinfo=MOSCOW)

    await repo.create(patient_id=patient.id, scheduled_date=start, duration=30)
    await repo.create(patient_id=patient.id, scheduled_date=end - timedelta(milliseconds=1), duration=30)
    await repo.create(patient_id=patient.id, scheduled_date=end, duration=30)
    await repo.create(patient_id=patient.id, scheduled_date=start - timedelta(milliseconds=1), duration=30)

    assert await repo.count_between(start, end) == 2


async def test_appointment_defaults(session: AsyncSession):
    patient = await PatientRepository(session).create(first_name="A", last_name="B", phone="1")
    appt = await AppointmentRepository(session).create(
        patient_id=patient.id, scheduled_date=datetime(2024, 3, 13, 9, tzinfo=MOSCOW)
    )
    assert appt.duration == 30
    assert appt.status == "scheduled"


async def test_appointment_update_and_delete(session: AsyncSession):
    patient = await PatientRepository(session).create(first_name="A", last_name="B", phone="1")
    repo = AppointmentRepository(session)
    appt = await repo.create(patient_id=patient.id, scheduled_date=datetime(2024, 3, 13, 9, tzinfo=MOSCOW))

    updated = await repo.update(appt.id, status="completed", notes="done")
    assert updated.status == "completed"
    assert updated.notes == "done"

    assert await repo.delete(appt.id) is True
    assert await repo.get_by_id(appt.id) is None
    assert await repo.delete(appt.id) is False


async def test_appointments_by_patient(session: AsyncSession):
    prepo = PatientRepository(session)
    a = await prepo.create(first_name="A", last_name="A", phone="1")
    b = await prepo.create(first_name="B", last_name="B", phone="2")
    repo = AppointmentRepository(session)
    await repo.create(patient_id=a.id, scheduled_date=datetime(2024, 3, 13, tzinfo=MOSCOW))
    await repo.create(patient_id=b.id, scheduled_date=datetime(2024, 3, 14, tzinfo=MOSCOW))

    rows = await repo.list_by_patient(a.id)
    assert [r.patient_id for r in rows] == [a.id]


# --- User ---

async def test_user_email_is_normalized(session: AsyncSession):
    repo = UserRepository(session)
    user = await repo.create(email="  Reception@Clinic.RU ", password_hash="x")
    assert user.email == "reception@clinic.ru"
    assert (await repo.get_by_email("RECEPTION@clinic.ru")).id == user.id
    assert await repo.get_by_id(user.id) is user


# --- Audit ---

async def test_audit_logging(session: AsyncSession):
    arepo = AuditRepository(session)
    entry = await arepo.log_action(
        action="create",
        resource_type="appointment",
        resource_id="test-123",
        user_id="admin",
        details={"patient_id": "p-1"},
    )
    assert entry.id is not None

    logs = await arepo.get_by_resource("appointment", "test-123")
    assert len(logs) == 1
    assert logs[0].action == "create"
