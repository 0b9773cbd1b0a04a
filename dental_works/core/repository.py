"""CRUD repositories for the clinic schema."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Literal, Optional, Sequence

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from dental_works.core.models import Appointment, AuditLog, Patient, User

PatientOrder = Literal["first_name", "created_at"]


def to_utc(value: datetime) -> datetime:
    """Normalize an instant to UTC before it is bound to a query.

    Naive values are assumed to already be UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PatientRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> Patient:
        patient = Patient(**kwargs)
        self.session.add(patient)
        await self.session.flush()
        return patient

    async def get_by_id(self, patient_id: uuid.UUID) -> Optional[Patient]:
        return await self.session.get(Patient, patient_id)

    async def list(
        self,
        order_by: PatientOrder = "first_name",
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Sequence[Patient]:
        stmt = select(Patient)
        if order_by == "created_at":
            stmt = stmt.order_by(Patient.created_at.desc())
        else:
            stmt = stmt.order_by(Patient.first_name, Patient.last_name)
        stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def count(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(Patient))
        return result.scalar_one()

    async def search(self, query: str, limit: int = 50) -> Sequence[Patient]:
        """Match names and email case-insensitively, phone as a substring."""
        pattern = f"%{query.strip()}%"
        stmt = (
            select(Patient)
            .where(
                or_(
                    Patient.first_name.ilike(pattern),
                    Patient.last_name.ilike(pattern),
                    Patient.email.ilike(pattern),
                    Patient.phone.contains(query.strip()),
                )
            )
            .order_by(Patient.first_name, Patient.last_name)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def update(self, patient_id: uuid.UUID, **kwargs) -> Optional[Patient]:
        patient = await self.get_by_id(patient_id)
        if not patient:
            return None
        for k, v in kwargs.items():
            setattr(patient, k, v)
        patient.updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        return patient


class AppointmentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> Appointment:
        if kwargs.get("scheduled_date") is not None:
            kwargs["scheduled_date"] = to_utc(kwargs["scheduled_date"])
        appt = Appointment(**kwargs)
        self.session.add(appt)
        await self.session.flush()
        return await self.get_by_id(appt.id)

    async def get_by_id(self, appointment_id: uuid.UUID) -> Optional[Appointment]:
        stmt = (
            select(Appointment)
            .where(Appointment.id == appointment_id)
            .options(selectinload(Appointment.patient))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_between(self, start: datetime, end: datetime) -> Sequence[Appointment]:
        """Appointments with ``start <= scheduled_date <= end``, earliest first."""
        stmt = (
            select(Appointment)
            .where(
                Appointment.scheduled_date >= to_utc(start),
                Appointment.scheduled_date <= to_utc(end),
            )
            .options(selectinload(Appointment.patient))
            .order_by(Appointment.scheduled_date.asc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def count_between(self, start: datetime, end: datetime) -> int:
        """Number of appointments with ``start <= scheduled_date < end``."""
        stmt = (
            select(func.count())
            .select_from(Appointment)
            .where(
                Appointment.scheduled_date >= to_utc(start),
                Appointment.scheduled_date < to_utc(end),
            )
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def list_by_patient(self, patient_id: uuid.UUID, limit: int = 50) -> Sequence[Appointment]:
        stmt = (
            select(Appointment)
            .where(Appointment.patient_id == patient_id)
            .options(selectinload(Appointment.patient))
            .order_by(Appointment.scheduled_date.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def update(self, appointment_id: uuid.UUID, **kwargs) -> Optional[Appointment]:
        appt = await self.session.get(Appointment, appointment_id)
        if not appt:
            return None
        if kwargs.get("scheduled_date") is not None:
            kwargs["scheduled_date"] = to_utc(kwargs["scheduled_date"])
        for k, v in kwargs.items():
            setattr(appt, k, v)
        appt.updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        return await self.get_by_id(appointment_id)

    async def delete(self, appointment_id: uuid.UUID) -> bool:
        """Hard delete. Returns False when nothing matched."""
        result = await self.session.execute(
            delete(Appointment).where(Appointment.id == appointment_id)
        )
        await self.session.flush()
        return result.rowcount > 0


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, email: str, password_hash: str) -> User:
        user = User(email=email.strip().lower(), password_hash=password_hash)
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.session.get(User, user_id)


class AuditRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def log_action(
        self,
        action: str,
        resource_type: str,
        resource_id: str,
        user_id: Optional[str] = None,
        details: Optional[dict] = None,
        ip_address: Optional[str] = None,
    ) -> AuditLog:
        entry = AuditLog(
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id),
            details=details,
            ip_address=ip_address,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def get_by_resource(self, resource_type: str, resource_id: str, limit: int = 50) -> Sequence[AuditLog]:
        stmt = (
            select(AuditLog)
            .where(AuditLog.resource_type == resource_type, AuditLog.resource_id == resource_id)
            .order_by(AuditLog.timestamp.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()
