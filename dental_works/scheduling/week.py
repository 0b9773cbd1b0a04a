"""Monday-to-Sunday week boundaries for the appointment calendar.

The same rule feeds both the fetch range and the per-day headers, so
``week_days`` is always derived from ``week_range`` rather than recomputed.
The week starts on Monday regardless of the host locale.
"""

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, Union

from dental_works.config import get_settings
from dental_works.scheduling.models import WeekInterval

DAYS_IN_WEEK = 7
END_OF_DAY = time(23, 59, 59, 999000)

DateLike = Union[date, datetime]


def resolve_tz(tz: Optional[tzinfo] = None) -> tzinfo:
    """Return *tz* or the configured clinic timezone."""
    return tz if tz is not None else get_settings().tzinfo


def local_day(reference: DateLike, tz: Optional[tzinfo] = None) -> date:
    """Calendar date of *reference* in the clinic timezone.

    Aware datetimes are converted first; naive ones are taken as local
    wall-clock time.
    """
    if isinstance(reference, datetime):
        if reference.tzinfo is not None:
            return reference.astimezone(resolve_tz(tz)).date()
        return reference.date()
    return reference


def day_start(day: date, tz: Optional[tzinfo] = None) -> datetime:
    """Local midnight at the start of *day* in the clinic timezone."""
    return datetime.combine(day, time.min, tzinfo=resolve_tz(tz))


def monday_offset(day: date) -> int:
    """Days between *day* and the Monday of its week."""
    dow = (day.weekday() + 1) % 7  # Sunday=0 .. Saturday=6
    return 6 if dow == 0 else dow - 1


def week_range(reference: DateLike, tz: Optional[tzinfo] = None) -> WeekInterval:
    """Return the week containing *reference*.

    ``start`` is Monday at 00:00:00.000 and ``end`` is the following Sunday
    at 23:59:59.999, both aware in the clinic timezone. Days are added as
    calendar days, so the interval stays correct across DST changes.
    """
    tz = resolve_tz(tz)
    day = local_day(reference, tz)
    monday = day - timedelta(days=monday_offset(day))
    sunday = monday + timedelta(days=DAYS_IN_WEEK - 1)
    return WeekInterval(
        start=datetime.combine(monday, time.min, tzinfo=tz),
        end=datetime.combine(sunday, END_OF_DAY, tzinfo=tz),
    )


def week_days(reference: DateLike, tz: Optional[tzinfo] = None) -> list[date]:
    """The seven dates Monday..Sunday of the week containing *reference*."""
    monday = week_range(reference, tz).start.date()
    return [monday + timedelta(days=i) for i in range(DAYS_IN_WEEK)]
