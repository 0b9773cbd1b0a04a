"""Weekly calendar view state.

Holds the week being shown, fetches its appointments from an
``AppointmentStore`` and notifies listeners when the displayed week changes.
The displayed list only ever changes through a fetch; mutations go to the
store first and are followed by a re-fetch of the current week.
"""

import inspect
import logging
from collections.abc import Callable, Mapping
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Optional, Union

import pydantic

from dental_works.core.schemas import PatientRead
from dental_works.scheduling.binning import bucket_by_day
from dental_works.scheduling.errors import StaleResponseDiscarded, StoreError, ValidationError
from dental_works.scheduling.forms import (
    clean_optional,
    compose_scheduled_instant,
    parse_form,
    validate_form,
)
from dental_works.scheduling.models import (
    Appointment,
    AppointmentForm,
    AppointmentPatch,
    WeekInterval,
)
from dental_works.scheduling.store import AppointmentStore
from dental_works.scheduling.week import DAYS_IN_WEEK, local_day, resolve_tz, week_days, week_range

WeekListener = Callable[[WeekInterval, dict[date, list[Appointment]]], Any]
ErrorListener = Callable[[str], Any]


class CalendarViewState:
    """State machine behind the weekly appointment calendar."""

    def __init__(
        self,
        store: AppointmentStore,
        *,
        tz: Optional[tzinfo] = None,
        today: Optional[Callable[[], date]] = None,
        current_date: Optional[Union[date, datetime]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize the calendar.

        Args:
            store: Where appointments and patients come from
            tz: Clinic timezone (defaults to the configured one)
            today: Clock returning the current local date
            current_date: Initial reference date (defaults to today)
            logger: Logger for fetch and callback failures
        """
        self.store = store
        self.tz = resolve_tz(tz)
        self._today = today or (lambda: datetime.now(self.tz).date())
        self._log = logger or logging.getLogger(__name__)

        self.current_date: date = (
            local_day(current_date, self.tz) if current_date is not None else self._today()
        )
        self.interval: WeekInterval = week_range(self.current_date, self.tz)
        self.appointments: list[Appointment] = []
        self.buckets: dict[date, list[Appointment]] = bucket_by_day(
            [], week_days(self.current_date, self.tz), self.tz
        )
        self.request_seq = 0
        self.loading = False
        self.error: Optional[str] = None

        self._week_listeners: list[WeekListener] = []
        self._error_listeners: list[ErrorListener] = []

    # --- observers ---

    def on_week_changed(self, callback: WeekListener) -> None:
        """Register ``callback(interval, buckets)`` for every applied fetch."""
        self._week_listeners.append(callback)

    def on_error(self, callback: ErrorListener) -> None:
        """Register ``callback(message)`` for failed week fetches."""
        self._error_listeners.append(callback)

    async def _notify(self, listeners: list[Callable[..., Any]], *args: Any) -> None:
        for callback in listeners:
            try:
                result = callback(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self._log.warning(f"Calendar listener {callback!r} failed: {e}")

    # --- fetching ---

    @property
    def days(self) -> list[date]:
        return list(self.buckets)

    def _ensure_latest(self, seq: int) -> None:
        if seq != self.request_seq:
            raise StaleResponseDiscarded(seq, self.request_seq)

    async def _fetch(self) -> bool:
        """Fetch the week of ``current_date``. Returns False if not applied."""
        self.request_seq += 1
        seq = self.request_seq
        interval = week_range(self.current_date, self.tz)
        days = week_days(self.current_date, self.tz)
        self.loading = True

        try:
            appointments = await self.store.list_appointments(interval.start, interval.end)
            self._ensure_latest(seq)
        except StaleResponseDiscarded as e:
            self._log.debug(str(e))
            return False
        except StoreError as e:
            if seq != self.request_seq:
                self._log.debug(f"Ignoring failure of superseded fetch #{seq}: {e}")
                return False
            self.loading = False
            self.error = e.message
            self._log.warning(f"Loading week {interval.start.date()} failed: {e}")
            await self._notify(self._error_listeners, e.message)
            return False

        self.loading = False
        self.error = None
        self.interval = interval
        self.appointments = list(appointments)
        self.buckets = bucket_by_day(self.appointments, days, self.tz)
        self._log.debug(
            f"Week {interval.start.date()}: {len(self.appointments)} appointments (fetch #{seq})"
        )
        await self._notify(self._week_listeners, self.interval, self.buckets)
        return True

    # --- navigation ---

    async def set_week(self, value: Union[date, datetime]) -> None:
        """Show the week containing *value*."""
        self.current_date = local_day(value, self.tz)
        await self._fetch()

    async def refresh(self) -> None:
        await self._fetch()

    async def go_to_previous_week(self) -> None:
        self.current_date = self.current_date - timedelta(days=DAYS_IN_WEEK)
        await self._fetch()

    async def go_to_next_week(self) -> None:
        self.current_date = self.current_date + timedelta(days=DAYS_IN_WEEK)
        await self._fetch()

    async def go_to_today(self) -> None:
        self.current_date = self._today()
        await self._fetch()

    # --- mutations ---

    async def create_appointment(
        self, form: Union[AppointmentForm, Mapping[str, Any]]
    ) -> Appointment:
        """Validate the form, create the appointment and reload the week.

        Raises:
            ValidationError: Form is incomplete; the store was not called
            StoreError: The store rejected the appointment
        """
        form = parse_form(form)
        errors = validate_form(form)
        if errors:
            raise ValidationError(errors)

        appointment = await self.store.create_appointment(
            patient_id=form.patient_id.strip(),
            scheduled_date=compose_scheduled_instant(
                form.scheduled_date, form.scheduled_time, self.tz
            ),
            duration=form.duration,
            treatment_type=clean_optional(form.treatment_type),
            notes=clean_optional(form.notes),
        )
        await self._fetch()
        return appointment

    async def update_appointment(
        self,
        appointment_id: str,
        patch: Union[AppointmentPatch, Mapping[str, Any]],
    ) -> Appointment:
        if not isinstance(patch, AppointmentPatch):
            try:
                patch = AppointmentPatch.model_validate(dict(patch))
            except pydantic.ValidationError as e:
                raise ValidationError(
                    {str(err["loc"][0]) if err["loc"] else "patch": err["msg"] for err in e.errors()}
                ) from e
        appointment = await self.store.update_appointment(appointment_id, patch)
        await self._fetch()
        return appointment

    async def delete_appointment(self, appointment_id: str) -> None:
        await self.store.delete_appointment(appointment_id)
        await self._fetch()

    async def list_patients(self) -> list[PatientRead]:
        return await self.store.list_patients()
