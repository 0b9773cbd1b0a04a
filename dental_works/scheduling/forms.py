"""Create-appointment form handling.

The form supplies the date and time as two separate strings; they are
validated here and combined into one clinic-local instant before the store
is ever called.
"""

from collections.abc import Mapping
from datetime import date, datetime, time, tzinfo
from typing import Any, Optional, Union

import pydantic

from dental_works.scheduling.errors import ValidationError
from dental_works.scheduling.models import AppointmentForm
from dental_works.scheduling.week import resolve_tz

REQUIRED_MESSAGES = {
    "patient_id": "Select a patient",
    "scheduled_date": "Select a date",
    "scheduled_time": "Select a time",
}


def parse_form(data: Union[AppointmentForm, Mapping[str, Any]]) -> AppointmentForm:
    """Coerce raw form data into an ``AppointmentForm``."""
    if isinstance(data, AppointmentForm):
        return data
    try:
        return AppointmentForm.model_validate(dict(data))
    except pydantic.ValidationError as exc:
        errors = {
            str(err["loc"][0]) if err["loc"] else "form": err["msg"]
            for err in exc.errors()
        }
        raise ValidationError(errors) from exc


def validate_form(form: AppointmentForm) -> dict[str, str]:
    """Return field -> message for every problem in *form*."""
    errors: dict[str, str] = {}
    for field, message in REQUIRED_MESSAGES.items():
        value = getattr(form, field)
        if not value or not value.strip():
            errors[field] = message

    if "scheduled_date" not in errors:
        try:
            date.fromisoformat(form.scheduled_date.strip())
        except ValueError:
            errors["scheduled_date"] = "Invalid date, expected YYYY-MM-DD"

    if "scheduled_time" not in errors:
        try:
            time.fromisoformat(form.scheduled_time.strip())
        except ValueError:
            errors["scheduled_time"] = "Invalid time, expected HH:MM"

    if form.duration <= 0:
        errors["duration"] = "Duration must be a positive number of minutes"
    return errors


def compose_scheduled_instant(
    scheduled_date: str,
    scheduled_time: str,
    tz: Optional[tzinfo] = None,
) -> datetime:
    """Combine the date and time inputs into one aware instant."""
    return datetime.combine(
        date.fromisoformat(scheduled_date.strip()),
        time.fromisoformat(scheduled_time.strip()),
        tzinfo=resolve_tz(tz),
    )


def clean_optional(value: Optional[str]) -> Optional[str]:
    """Blank optional text becomes ``None``."""
    if value is None:
        return None
    value = value.strip()
    return value or None
