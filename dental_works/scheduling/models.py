"""Pydantic models for the appointment calendar."""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AppointmentStatus(str, Enum):
    """Appointment statuses. Changes are always manual."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Known treatment categories; the column itself is a free-form tag.
TREATMENT_TYPES: tuple[str, ...] = (
    "consultation",
    "cleaning",
    "filling",
    "extraction",
    "checkup",
)
DEFAULT_TREATMENT_TYPE = "consultation"
DEFAULT_DURATION_MINUTES = 30

_REQUIRED_COLUMNS = frozenset({"patient_id", "scheduled_date", "duration", "status"})


def _as_str_id(value: Any) -> Any:
    return str(value) if value is not None and not isinstance(value, str) else value


def _as_aware(value: Any) -> Any:
    # Rows read back from SQLite lose their offset; they were written in UTC.
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class PatientSummary(BaseModel):
    """Patient fields joined onto every appointment row."""

    model_config = ConfigDict(from_attributes=True)

    first_name: str
    last_name: str
    phone: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Appointment(BaseModel):
    """An appointment as seen by the calendar."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    patient_id: str
    scheduled_date: datetime
    duration: int = Field(gt=0, description="Duration in minutes")
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    treatment_type: Optional[str] = None
    notes: Optional[str] = None
    patient: Optional[PatientSummary] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("id", "patient_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        return _as_str_id(value)

    @field_validator("scheduled_date", "created_at", "updated_at", mode="before")
    @classmethod
    def _coerce_instant(cls, value: Any) -> Any:
        return _as_aware(value)


class AppointmentPatch(BaseModel):
    """Partial update for an appointment. Only set fields are applied."""

    patient_id: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, gt=0)
    status: Optional[AppointmentStatus] = None
    treatment_type: Optional[str] = None
    notes: Optional[str] = None

    def changes(self) -> dict[str, Any]:
        """Fields explicitly set by the caller.

        An explicit null is dropped for columns that cannot be cleared.
        """
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True, mode="python").items()
            if value is not None or key not in _REQUIRED_COLUMNS
        }


class AppointmentForm(BaseModel):
    """Raw create-form input: date and time arrive as separate strings."""

    patient_id: str = ""
    scheduled_date: str = ""
    scheduled_time: str = "09:00"
    duration: int = DEFAULT_DURATION_MINUTES
    treatment_type: Optional[str] = DEFAULT_TREATMENT_TYPE
    notes: Optional[str] = None


class WeekInterval(BaseModel):
    """Monday 00:00:00.000 through Sunday 23:59:59.999, clinic-local."""

    start: datetime
    end: datetime


class DayBucket(BaseModel):
    """One calendar day and the appointments that fall on it."""

    day: date
    appointments: list[Appointment] = []


class AppointmentCreate(BaseModel):
    """Request body for creating an appointment over the API."""

    patient_id: str
    scheduled_date: datetime
    duration: int = Field(default=DEFAULT_DURATION_MINUTES, gt=0)
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    treatment_type: Optional[str] = DEFAULT_TREATMENT_TYPE
    notes: Optional[str] = None


class WeekView(BaseModel):
    """A week's interval with its seven day buckets, Monday first."""

    interval: WeekInterval
    days: list[DayBucket]
