"""Group a week's appointments into per-day buckets."""

from collections.abc import Iterable, Sequence
from datetime import date, datetime, tzinfo
from typing import Optional

from dental_works.scheduling.models import Appointment, DayBucket
from dental_works.scheduling.week import local_day, resolve_tz


def local_date(instant: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar date of *instant* in the clinic timezone.

    Naive instants are taken as already local.
    """
    return local_day(instant, tz)


def bucket_by_day(
    appointments: Iterable[Appointment],
    days: Sequence[date],
    tz: Optional[tzinfo] = None,
) -> dict[date, list[Appointment]]:
    """Assign each appointment to the day its scheduled instant falls on.

    Every entry of *days* gets a bucket, empty or not, in the order given.
    Appointments are filtered, never re-sorted: each bucket keeps the input
    order. Appointments outside *days* are dropped.
    """
    tz = resolve_tz(tz)
    buckets: dict[date, list[Appointment]] = {day: [] for day in days}
    for appt in appointments:
        bucket = buckets.get(local_date(appt.scheduled_date, tz))
        if bucket is not None:
            bucket.append(appt)
    return buckets


def to_day_buckets(buckets: dict[date, list[Appointment]]) -> list[DayBucket]:
    """Convert a ``bucket_by_day`` mapping into ordered ``DayBucket`` models."""
    return [DayBucket(day=day, appointments=list(appts)) for day, appts in buckets.items()]


def total_bucketed(buckets: dict[date, list[Appointment]]) -> int:
    return sum(len(appts) for appts in buckets.values())
