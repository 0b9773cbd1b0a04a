"""Tests for the dashboard counters."""

from datetime import date, datetime, timedelta

import pytest

from dental_works.api.routes.dashboard import stats_windows
from dental_works.config import get_settings
from dental_works.core.repository import AppointmentRepository, PatientRepository


@pytest.fixture
def tz():
    return get_settings().tzinfo


def test_windows_are_clinic_midnights(tz):
    (today_start, today_end), (upcoming_start, upcoming_end) = stats_windows(date(2024, 3, 13), tz)

    assert today_start == datetime(2024, 3, 13, tzinfo=tz)
    assert today_end == upcoming_start == datetime(2024, 3, 14, tzinfo=tz)
    assert upcoming_end == datetime(2024, 3, 20, tzinfo=tz)


async def test_stats_boundaries(client, session_factory, tz):
    midnight = datetime(2024, 3, 13, tzinfo=tz)
    tomorrow = midnight + timedelta(days=1)
    horizon = midnight + timedelta(days=7)
    ms = timedelta(milliseconds=1)

    async with session_factory() as sess:
        patient = await PatientRepository(sess).create(first_name="Anna", last_name="Petrova", phone="1")
        await PatientRepository(sess).create(first_name="Boris", last_name="Ivanov", phone="2")
        repo = AppointmentRepository(sess)
        for instant in (
            midnight - ms,      # yesterday
            midnight,           # today
            tomorrow - ms,      # today
            tomorrow,           # upcoming
            horizon - ms,       # upcoming
            horizon,            # beyond the horizon
        ):
            await repo.create(patient_id=patient.id, scheduled_date=instant, duration=30)
        await sess.commit()

    response = await client.get("/api/v1/dashboard/stats", params={"date": "2024-03-13"})

    assert response.status_code == 200
    assert response.json() == {
        "patients_count": 2,
        "appointments_today": 2,
        "upcoming_appointments": 2,
    }


async def test_stats_default_to_today(client, patient, tz):
    noon = datetime.combine(datetime.now(tz).date(), datetime.min.time(), tzinfo=tz) + timedelta(hours=12)
    created = await client.post(
        "/api/v1/appointments",
        json={"patient_id": str(patient.id), "scheduled_date": noon.isoformat()},
    )
    assert created.status_code == 201

    response = await client.get("/api/v1/dashboard/stats")

    assert response.status_code == 200
    assert response.json()["patients_count"] == 1
    assert response.json()["appointments_today"] == 1


async def test_stats_require_auth(anon_client):
    response = await anon_client.get("/api/v1/dashboard/stats")
    assert response.status_code == 401
