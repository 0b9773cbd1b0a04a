"""Patient CRUD API routes."""

from __future__ import annotations

import uuid
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from dental_works.api.dependencies import client_ip, get_current_user
from dental_works.core.database import get_db
from dental_works.core.models import User
from dental_works.core.repository import AuditRepository, PatientRepository
from dental_works.core.schemas import PatientCreate, PatientRead, PatientUpdate

router = APIRouter(prefix="/patients", tags=["patients"])


@router.get("", response_model=list[PatientRead])
async def list_patients(
    search: Optional[str] = Query(None),
    order: Literal["first_name", "created_at"] = Query("first_name"),
    offset: int = Query(0, ge=0),
    limit: int = Query(200, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    repo = PatientRepository(db)
    if search and search.strip():
        return await repo.search(search, limit=limit)
    return await repo.list(order_by=order, offset=offset, limit=limit)


@router.get("/{patient_id}", response_model=PatientRead)
async def get_patient(
    patient_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    patient = await PatientRepository(db).get_by_id(patient_id)
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")
    return patient


@router.post("", response_model=PatientRead, status_code=201)
async def create_patient(
    data: PatientCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    patient = await PatientRepository(db).create(**data.model_dump())
    await AuditRepository(db).log_action(
        action="create",
        resource_type="patient",
        resource_id=str(patient.id),
        user_id=str(current_user.id),
        ip_address=client_ip(request),
    )
    return patient


@router.put("/{patient_id}", response_model=PatientRead)
async def update_patient(
    patient_id: uuid.UUID,
    data: PatientUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    changes = data.model_dump(exclude_unset=True)
    patient = await PatientRepository(db).update(patient_id, **changes)
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")
    # Field names only; contact details and notes stay out of the audit trail
    await AuditRepository(db).log_action(
        action="update",
        resource_type="patient",
        resource_id=str(patient_id),
        user_id=str(current_user.id),
        details={"fields": sorted(changes)},
        ip_address=client_ip(request),
    )
    return patient
