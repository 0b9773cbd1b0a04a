"""Weekly appointment calendar: week math, day binning and view state."""

from dental_works.scheduling.binning import bucket_by_day, to_day_buckets
from dental_works.scheduling.calendar import CalendarViewState
from dental_works.scheduling.errors import (
    CalendarError,
    StaleResponseDiscarded,
    StoreError,
    ValidationError,
)
from dental_works.scheduling.models import (
    Appointment,
    AppointmentForm,
    AppointmentPatch,
    AppointmentStatus,
    DayBucket,
    WeekInterval,
)
from dental_works.scheduling.store import AppointmentStore, DatabaseAppointmentStore
from dental_works.scheduling.week import monday_offset, week_days, week_range

__all__ = [
    "Appointment",
    "AppointmentForm",
    "AppointmentPatch",
    "AppointmentStatus",
    "AppointmentStore",
    "CalendarError",
    "CalendarViewState",
    "DatabaseAppointmentStore",
    "DayBucket",
    "StaleResponseDiscarded",
    "StoreError",
    "ValidationError",
    "WeekInterval",
    "bucket_by_day",
    "monday_offset",
    "to_day_buckets",
    "week_days",
    "week_range",
]
