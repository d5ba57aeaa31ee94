"""Conversion between Notion date tokens and iCalendar date stamps.

Notion date mentions carry either a bare calendar date (``2022-01-11``) or a
full ISO-8601 instant (``2022-12-11T23:00:00.000+00:00``). Calendar dates
become all-day values; instants are shifted into the feed's display timezone
and rendered as floating local timestamps, since the feed declares a single
``X-WR-TIMEZONE`` rather than per-event offsets.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
import re
from typing import Any, assert_never
from zoneinfo import ZoneInfo

_CALENDAR_DATE_MAX_LENGTH = 10
_CALENDAR_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_ICAL_DATE_PATTERN = re.compile(r"^\d{8}$")
_ICAL_INSTANT_PATTERN = re.compile(r"^\d{8}T\d{6}$")
_RFC3339_INSTANT_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}[Tt]\d{2}:\d{2}:\d{2}(?:\.\d{1,6})?(?:[Zz]|[+-]\d{2}:\d{2})$"
)


class DateNormalizationError(Exception):
    pass


@dataclass(frozen=True)
class CalendarDate:
    value: date


@dataclass(frozen=True)
class Instant:
    value: datetime


NormalizedDate = CalendarDate | Instant


def normalize_date_token(
    token: Any,
    *,
    treat_as_end: bool,
    timezone: ZoneInfo,
) -> NormalizedDate | None:
    if not isinstance(token, str):
        return None

    cleaned = token.strip()
    if len(cleaned) <= _CALENDAR_DATE_MAX_LENGTH:
        parsed_date = _parse_calendar_date(cleaned)
        if treat_as_end:
            # All-day DTEND is exclusive.
            parsed_date = _add_one_day(parsed_date)
        return CalendarDate(parsed_date)

    return Instant(_to_local_timestamp(_parse_instant(cleaned), timezone))


def _parse_calendar_date(raw_value: str) -> date:
    if not _CALENDAR_DATE_PATTERN.match(raw_value):
        raise DateNormalizationError(f"Date token is not YYYY-MM-DD: {raw_value!r}")
    try:
        return date.fromisoformat(raw_value)
    except ValueError as exc:
        raise DateNormalizationError(f"Date token is not a valid date: {raw_value!r}") from exc


def _add_one_day(value: date) -> date:
    try:
        return value + timedelta(days=1)
    except OverflowError as exc:
        raise DateNormalizationError(f"Date is out of range: {value.isoformat()}") from exc


def _parse_instant(raw_value: str) -> datetime:
    if not _RFC3339_INSTANT_PATTERN.match(raw_value):
        raise DateNormalizationError(f"Instant token is not RFC 3339: {raw_value!r}")
    try:
        return datetime.fromisoformat(raw_value.upper())
    except ValueError as exc:
        raise DateNormalizationError(f"Instant token is not a valid instant: {raw_value!r}") from exc


def _to_local_timestamp(instant: datetime, timezone: ZoneInfo) -> datetime:
    try:
        utc_naive = instant.astimezone(UTC).replace(tzinfo=None, microsecond=0)
        localized = instant.astimezone(timezone)
        daylight_delta = localized.dst() or timedelta(0)
        base_offset = (localized.utcoffset() or timedelta(0)) - daylight_delta
        return utc_naive + base_offset + daylight_delta
    except OverflowError as exc:
        raise DateNormalizationError(f"Instant is out of range: {instant.isoformat()}") from exc


def to_ical_value(value: NormalizedDate) -> date | datetime:
    """Value handed to icalendar: a date for all-day, a naive datetime for floating."""
    match value:
        case CalendarDate(value=calendar_date):
            return calendar_date
        case Instant(value=local_timestamp):
            return local_timestamp
        case _:
            assert_never(value)


def parse_ical_stamp(stamp: str) -> NormalizedDate:
    """Read back a DTSTART/DTEND content line of the rendered feed."""
    _, _, raw_value = stamp.rpartition(":")
    if len(raw_value) <= _CALENDAR_DATE_MAX_LENGTH:
        if not _ICAL_DATE_PATTERN.match(raw_value):
            raise DateNormalizationError(f"Not an iCalendar date: {stamp!r}")
        return CalendarDate(datetime.strptime(raw_value, "%Y%m%d").date())

    if not _ICAL_INSTANT_PATTERN.match(raw_value):
        raise DateNormalizationError(f"Not an iCalendar local timestamp: {stamp!r}")
    return Instant(datetime.strptime(raw_value, "%Y%m%dT%H%M%S"))


def fallback_end(start: NormalizedDate) -> NormalizedDate:
    """End value used when a mention's own end token is unusable."""
    match start:
        case CalendarDate(value=calendar_date):
            return CalendarDate(_add_one_day(calendar_date))
        case Instant():
            return start
        case _:
            assert_never(start)
