"""Dashboard counters for the clinic front page."""

from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from dental_works.api.dependencies import get_current_user
from dental_works.config import get_settings
from dental_works.core.database import get_db
from dental_works.core.models import User
from dental_works.core.repository import AppointmentRepository, PatientRepository
from dental_works.scheduling.week import day_start

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

UPCOMING_HORIZON_DAYS = 7


class DashboardStats(BaseModel):
    patients_count: int = 0
    appointments_today: int = 0
    upcoming_appointments: int = 0


def stats_windows(today: date, tz: tzinfo) -> tuple[tuple[datetime, datetime], tuple[datetime, datetime]]:
    """Half-open ``[start, end)`` ranges for today and the days after it.

    Today runs from local midnight to the next midnight. Upcoming runs from
    tomorrow's midnight to midnight of ``today + 7``.
    """
    midnight = day_start(today, tz)
    tomorrow = day_start(today + timedelta(days=1), tz)
    horizon = day_start(today + timedelta(days=UPCOMING_HORIZON_DAYS), tz)
    return (midnight, tomorrow), (tomorrow, horizon)


@router.get("/stats", response_model=DashboardStats)
async def get_stats(
    day: Optional[date] = Query(None, alias="date"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> DashboardStats:
    """Patient total plus appointment counts for today and the coming week."""
    tz = get_settings().tzinfo
    today = day or datetime.now(tz).date()
    (today_start, today_end), (upcoming_start, upcoming_end) = stats_windows(today, tz)

    appointments = AppointmentRepository(db)
    return DashboardStats(
        patients_count=await PatientRepository(db).count(),
        appointments_today=await appointments.count_between(today_start, today_end),
        upcoming_appointments=await appointments.count_between(upcoming_start, upcoming_end),
    )
