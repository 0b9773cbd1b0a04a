"""Appointment API routes, including the per-week calendar view."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from dental_works.api.dependencies import client_ip, get_current_user
from dental_works.config import get_settings
from dental_works.core.database import get_db
from dental_works.core.models import User
from dental_works.core.repository import AppointmentRepository, AuditRepository, PatientRepository
from dental_works.scheduling.binning import bucket_by_day, to_day_buckets
from dental_works.scheduling.models import (
    Appointment,
    AppointmentCreate,
    AppointmentPatch,
    WeekView,
)
from dental_works.scheduling.week import week_days, week_range

router = APIRouter(prefix="/appointments", tags=["appointments"])


def _clinic_local(value: datetime) -> datetime:
    """Naive instants from clients are clinic wall-clock time."""
    if value.tzinfo is None:
        return value.replace(tzinfo=get_settings().tzinfo)
    return value


def _parse_patient_id(value: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=404, detail="Patient not found")


async def _require_patient(db: AsyncSession, patient_id: uuid.UUID) -> None:
    if not await PatientRepository(db).get_by_id(patient_id):
        raise HTTPException(status_code=404, detail="Patient not found")


@router.get("", response_model=list[Appointment])
async def list_appointments(
    start: datetime = Query(...),
    end: datetime = Query(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    start, end = _clinic_local(start), _clinic_local(end)
    if end < start:
        raise HTTPException(status_code=400, detail="end must not be before start")
    return await AppointmentRepository(db).list_between(start, end)


@router.get("/week", response_model=WeekView)
async def get_week(
    day: Optional[date] = Query(None, alias="date"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> WeekView:
    """The Monday..Sunday week containing ``date`` (default: today)."""
    tz = get_settings().tzinfo
    reference = day or datetime.now(tz).date()
    interval = week_range(reference, tz)
    rows = await AppointmentRepository(db).list_between(interval.start, interval.end)
    appointments = [Appointment.model_validate(row) for row in rows]
    buckets = bucket_by_day(appointments, week_days(reference, tz), tz)
    return WeekView(interval=interval, days=to_day_buckets(buckets))


@router.post("", response_model=Appointment, status_code=201)
async def create_appointment(
    data: AppointmentCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    patient_id = _parse_patient_id(data.patient_id)
    await _require_patient(db, patient_id)
    appt = await AppointmentRepository(db).create(
        patient_id=patient_id,
        scheduled_date=_clinic_local(data.scheduled_date),
        duration=data.duration,
        status=data.status.value,
        treatment_type=data.treatment_type,
        notes=data.notes,
    )
    await AuditRepository(db).log_action(
        action="create",
        resource_type="appointment",
        resource_id=str(appt.id),
        user_id=str(current_user.id),
        details={"patient_id": str(patient_id)},
        ip_address=client_ip(request),
    )
    return appt


@router.get("/{appointment_id}", response_model=Appointment)
async def get_appointment(
    appointment_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    appt = await AppointmentRepository(db).get_by_id(appointment_id)
    if not appt:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return appt


@router.put("/{appointment_id}", response_model=Appointment)
async def update_appointment(
    appointment_id: uuid.UUID,
    data: AppointmentPatch,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    changes = data.changes()
    if changes.get("patient_id") is not None:
        changes["patient_id"] = _parse_patient_id(changes["patient_id"])
        await _require_patient(db, changes["patient_id"])
    if changes.get("scheduled_date") is not None:
        changes["scheduled_date"] = _clinic_local(changes["scheduled_date"])
    if changes.get("status") is not None:
        changes["status"] = changes["status"].value

    appt = await AppointmentRepository(db).update(appointment_id, **changes)
    if not appt:
        raise HTTPException(status_code=404, detail="Appointment not found")
    await AuditRepository(db).log_action(
        action="update",
        resource_type="appointment",
        resource_id=str(appointment_id),
        user_id=str(current_user.id),
        details={"fields": sorted(changes)},
        ip_address=client_ip(request),
    )
    return appt


@router.delete("/{appointment_id}", status_code=204)
async def delete_appointment(
    appointment_id: uuid.UUID,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    if not await AppointmentRepository(db).delete(appointment_id):
        raise HTTPException(status_code=404, detail="Appointment not found")
    await AuditRepository(db).log_action(
        action="delete",
        resource_type="appointment",
        resource_id=str(appointment_id),
        user_id=str(current_user.id),
        ip_address=client_ip(request),
    )
    return Response(status_code=204)
