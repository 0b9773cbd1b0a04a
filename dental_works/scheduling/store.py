"""Appointment store interface and its database-backed implementation."""

import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dental_works.core.repository import AppointmentRepository, PatientRepository
from dental_works.core.schemas import PatientRead
from dental_works.scheduling.errors import StoreError
from dental_works.scheduling.models import Appointment, AppointmentPatch

logger = logging.getLogger(__name__)


class AppointmentStore(ABC):
    """Everything the calendar needs from persistence.

    Implementations raise ``StoreError`` for every failure; the message is
    shown to the user as-is.
    """

    @abstractmethod
    async def list_appointments(self, start: datetime, end: datetime) -> list[Appointment]:
        """Appointments with ``start <= scheduled_date <= end``.

        Args:
            start: Inclusive lower bound (aware)
            end: Inclusive upper bound (aware)

        Returns:
            Appointments ascending by ``scheduled_date`` with patient summary
        """
        pass

    @abstractmethod
    async def create_appointment(
        self,
        patient_id: str,
        scheduled_date: datetime,
        duration: int,
        treatment_type: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Appointment:
        """Persist a new appointment and return it."""
        pass

    @abstractmethod
    async def update_appointment(self, appointment_id: str, patch: AppointmentPatch) -> Appointment:
        """Apply *patch* and return the updated appointment."""
        pass

    @abstractmethod
    async def delete_appointment(self, appointment_id: str) -> None:
        """Remove an appointment permanently."""
        pass

    @abstractmethod
    async def list_patients(self) -> list[PatientRead]:
        """All patients ascending by first name, for form pickers."""
        pass

    @abstractmethod
    async def search_patients(self, query: str) -> list[PatientRead]:
        """Patients whose name or email contains *query* (any case), or whose phone does."""
        pass


def parse_id(value: str, kind: str) -> uuid.UUID:
    """Parse a string id, turning malformed input into a not-found error."""
    try:
        return uuid.UUID(str(value))
    except ValueError as e:
        raise StoreError(f"{kind} not found", status_code=404) from e


class DatabaseAppointmentStore(AppointmentStore):
    """Store that talks to the database directly through the repositories.

    Each call runs in its own session and commits on success.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self._session_factory = session_factory

    async def list_appointments(self, start: datetime, end: datetime) -> list[Appointment]:
        try:
            async with self._session_factory() as session:
                rows = await AppointmentRepository(session).list_between(start, end)
                return [Appointment.model_validate(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Listing appointments failed: {e}")
            raise StoreError("Failed to load appointments") from e

    async def create_appointment(
        self,
        patient_id: str,
        scheduled_date: datetime,
        duration: int,
        treatment_type: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Appointment:
        pid = parse_id(patient_id, "Patient")
        try:
            async with self._session_factory() as session:
                if await PatientRepository(session).get_by_id(pid) is None:
                    raise StoreError("Patient not found", status_code=404)
                row = await AppointmentRepository(session).create(
                    patient_id=pid,
                    scheduled_date=scheduled_date,
                    duration=duration,
                    treatment_type=treatment_type,
                    notes=notes,
                )
                appointment = Appointment.model_validate(row)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Creating appointment failed: {e}")
            raise StoreError("Failed to create appointment") from e
        logger.info(f"Created appointment {appointment.id} for patient {appointment.patient_id}")
        return appointment

    async def update_appointment(self, appointment_id: str, patch: AppointmentPatch) -> Appointment:
        aid = parse_id(appointment_id, "Appointment")
        changes = patch.changes()
        if "patient_id" in changes:
            changes["patient_id"] = parse_id(changes["patient_id"], "Patient")
        if "status" in changes and changes["status"] is not None:
            changes["status"] = changes["status"].value
        try:
            async with self._session_factory() as session:
                if "patient_id" in changes:
                    if await PatientRepository(session).get_by_id(changes["patient_id"]) is None:
                        raise StoreError("Patient not found", status_code=404)
                row = await AppointmentRepository(session).update(aid, **changes)
                if row is None:
                    raise StoreError("Appointment not found", status_code=404)
                appointment = Appointment.model_validate(row)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Updating appointment {appointment_id} failed: {e}")
            raise StoreError("Failed to update appointment") from e
        logger.info(f"Updated appointment {appointment_id}: {sorted(changes)}")
        return appointment

    async def delete_appointment(self, appointment_id: str) -> None:
        aid = parse_id(appointment_id, "Appointment")
        try:
            async with self._session_factory() as session:
                deleted = await AppointmentRepository(session).delete(aid)
                if not deleted:
                    raise StoreError("Appointment not found", status_code=404)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Deleting appointment {appointment_id} failed: {e}")
            raise StoreError("Failed to delete appointment") from e
        logger.info(f"Deleted appointment {appointment_id}")

    async def list_patients(self) -> list[PatientRead]:
        try:
            async with self._session_factory() as session:
                rows = await PatientRepository(session).list(order_by="first_name")
                return [PatientRead.model_validate(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Listing patients failed: {e}")
            raise StoreError("Failed to load patients") from e

    async def search_patients(self, query: str) -> list[PatientRead]:
        try:
            async with self._session_factory() as session:
                rows = await PatientRepository(session).search(query)
                return [PatientRead.model_validate(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Searching patients failed: {e}")
            raise StoreError("Failed to load patients") from e
