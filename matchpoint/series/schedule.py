"""Date stepping for recurring series.

Occurrences are always counted from the series start date, so generating
two adjacent windows yields the same dates as generating their union.
Days of the week are numbered 0 (Sunday) to 6 (Saturday).
"""

from __future__ import annotations

import calendar
import datetime
from typing import Iterator, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from matchpoint.core.constants import (
    DEFAULT_TIMEZONE,
    FREQUENCY_BIWEEKLY,
    FREQUENCY_MONTHLY,
    FREQUENCY_WEEKLY,
)
from matchpoint.errors import ValidationError

STEP_DAYS = {FREQUENCY_WEEKLY: 7, FREQUENCY_BIWEEKLY: 14}


def sunday_based_weekday(day: datetime.date) -> int:
    """Weekday of ``day`` with Sunday as 0."""
    return (day.weekday() + 1) % 7


def resolve_timezone(name: str | None) -> datetime.tzinfo:
    """Look up an IANA timezone; raise ValidationError for unknown names."""
    if not name or name == DEFAULT_TIMEZONE:
        return datetime.timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValidationError(f"Unknown timezone: {name}") from e


def add_months(anchor: datetime.date, months: int) -> datetime.date:
    """Same day of month as ``anchor``, ``months`` later, clamped to month end."""
    month_index = anchor.month - 1 + months
    year = anchor.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return datetime.date(year, month, min(anchor.day, last_day))


def first_occurrence(
    start_date: datetime.date, day_of_week: Optional[int] = None
) -> datetime.date:
    """First date on or after ``start_date`` falling on ``day_of_week``."""
    if day_of_week is None:
        return start_date
    offset = (day_of_week - sunday_based_weekday(start_date)) % 7
    return start_date + datetime.timedelta(days=offset)


def _weekly(
    first: datetime.date, step: int, start: datetime.date, end: datetime.date
) -> Iterator[datetime.date]:
    current = first
    if start > first:
        periods = -(-(start - first).days // step)
        current = first + datetime.timedelta(days=periods * step)
    while current <= end:
        yield current
        current += datetime.timedelta(days=step)


def _monthly(
    anchor: datetime.date, start: datetime.date, end: datetime.date
) -> Iterator[datetime.date]:
    index = max(0, (start.year - anchor.year) * 12 + start.month - anchor.month)
    while True:
        current = add_months(anchor, index)
        if current > end:
            return
        if current >= start:
            yield current
        index += 1


def calculate_recurring_dates(  # noqa: PLR0913
    frequency: str,
    series_start: datetime.date,
    start_date: datetime.date,
    end_date: datetime.date,
    day_of_week: Optional[int] = None,
    series_end: Optional[datetime.date] = None,
) -> list[datetime.date]:
    """All occurrence dates of a series inside a window, ascending.

    The window is clipped to the series' own start and end dates. Weekly and
    biweekly series step from the first matching weekday on or after the
    series start; monthly series keep the start date's day of month.
    """
    if start_date > end_date:
        raise ValidationError("Start date cannot be after the end date.")

    window_start = max(start_date, series_start)
    window_end = min(end_date, series_end) if series_end else end_date
    if window_start > window_end:
        return []

    if frequency in STEP_DAYS:
        first = first_occurrence(series_start, day_of_week)
        return list(_weekly(first, STEP_DAYS[frequency], window_start, window_end))
    if frequency == FREQUENCY_MONTHLY:
        return list(_monthly(series_start, window_start, window_end))
    raise ValidationError(f"Unsupported frequency: {frequency}")


def scheduled_time(
    day: datetime.date, time_of_day: datetime.time, timezone: str | None = None
) -> datetime.datetime:
    """The UTC instant of ``time_of_day`` on ``day`` in the series timezone."""
    local = datetime.datetime.combine(day, time_of_day, tzinfo=resolve_timezone(timezone))
    return local.astimezone(datetime.timezone.utc)
