# -*- coding: utf-8 -*-
"""
School-day rotation calendar.

Weekdays alternate between "odd" and "even" days, which decides which
classes meet. Individual days can be re-labelled (snow day, assembly, ...).
"""
from __future__ import annotations

import calendar as _calendar
from dataclasses import asdict, dataclass, replace
from datetime import date, datetime, timedelta
import json
import typing as t

from planner_server.errors import InvalidInputError, StorageReadError, StorageWriteError
from planner_server.log import get_logger
from planner_server.storage import KeyValueStorage

logger = get_logger("calendar")

CALENDAR_KEY = "teacherPlannerCalendar"

ODD = "odd"
EVEN = "even"
DAY_TYPES: tuple[str, ...] = (ODD, EVEN, "workshop", "assembly", "snow", "holiday", "early_release")

EARLIEST_DATE = date(1900, 1, 1)


@dataclass(frozen=True)
class SchoolDay:
    """One weekday of the school calendar."""
    type: str
    state: str = "school"
    notes: str = ""
    last_modified: str = ""


SchoolCalendar = t.Mapping[str, SchoolDay]


def parse_iso_date(value: t.Union[str, date]) -> date:
    """Parses a ``YYYY-MM-DD`` string (dates pass through unchanged)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as e:
        raise InvalidInputError(f"Invalid date: {value!r}") from e


def _add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = _calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


def build_school_calendar(start: t.Union[str, date], months: int = 6) -> dict[str, SchoolDay]:
    """Builds the odd/even rotation for every weekday in a span of months.

    :param start: First day of the calendar.
    :param months: How many months to cover (end date inclusive).
    :return: Mapping of ISO date to SchoolDay, weekends excluded.
    """
    first = parse_iso_date(start)
    last = _add_months(first, months)
    stamp = _now()

    days: dict[str, SchoolDay] = {}
    is_odd = True
    current = first
    while current <= last:
        if current.weekday() < 5:
            days[current.isoformat()] = SchoolDay(type=ODD if is_odd else EVEN, last_modified=stamp)
            is_odd = not is_odd
        current += timedelta(days=1)
    return days


def update_calendar_day(
        school_calendar: SchoolCalendar,
        day: t.Union[str, date],
        **updates: t.Any
) -> dict[str, SchoolDay]:
    """Returns a new calendar with one day's fields merged with ``updates``.

    :param school_calendar: The calendar to update (left unmodified).
    :param day: The day to update.
    :param updates: SchoolDay fields to overwrite (type, state, notes).
    :return: The updated calendar.
    """
    when = parse_iso_date(day)
    if when < EARLIEST_DATE:
        raise InvalidInputError(f"Invalid date: {when.isoformat()}")
    if "type" in updates and updates["type"] not in DAY_TYPES:
        raise InvalidInputError(f"Unknown day type: {updates['type']!r}")

    key = when.isoformat()
    existing = school_calendar.get(key) or SchoolDay(type=ODD)
    result = dict(school_calendar)
    result[key] = replace(existing, **updates, last_modified=_now())
    return result


def toggle_day_type(school_calendar: SchoolCalendar, day: t.Union[str, date]) -> dict[str, SchoolDay]:
    """Flips a day between odd and even (special days become odd)."""
    key = parse_iso_date(day).isoformat()
    existing = school_calendar.get(key) or SchoolDay(type=ODD)
    return update_calendar_day(school_calendar, key, type=EVEN if existing.type == ODD else ODD)


def day_type_on(school_calendar: SchoolCalendar, day: t.Union[str, date]) -> t.Optional[str]:
    """Returns the day type for a date, or None if the date is not a school day."""
    entry = school_calendar.get(parse_iso_date(day).isoformat())
    return entry.type if entry else None


def calendar_to_json(school_calendar: SchoolCalendar) -> str:
    return json.dumps({day: asdict(entry) for day, entry in school_calendar.items()}, ensure_ascii=False)


def calendar_from_json(raw: str) -> dict[str, SchoolDay]:
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("stored calendar must be an object")
    return {str(day): SchoolDay(**entry) for day, entry in data.items()}


def load_calendar(storage: KeyValueStorage, key: str = CALENDAR_KEY) -> t.Optional[dict[str, SchoolDay]]:
    """Reads the saved calendar; None when nothing usable is stored."""
    try:
        raw = storage.get_item(key)
        return calendar_from_json(raw) if raw else None
    except (StorageReadError, ValueError, TypeError) as e:
        logger.warning("Ignoring saved calendar: %s", e)
        return None


def save_calendar(storage: KeyValueStorage, school_calendar: SchoolCalendar, key: str = CALENDAR_KEY) -> bool:
    try:
        storage.set_item(key, calendar_to_json(school_calendar))
    except (StorageReadError, StorageWriteError) as e:
        logger.error("Failed to save calendar: %s", e)
        return False
    return True
