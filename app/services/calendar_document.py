from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from icalendar import Calendar, Event

from app.services.date_normalizer import NormalizedDate, to_ical_value


@dataclass(frozen=True)
class CalendarHeader:
    product_id: str
    name: str
    timezone: str
    uid_domain: str


@dataclass
class CalendarEvent:
    title: str
    start: NormalizedDate
    end: NormalizedDate
    uid: str = field(default_factory=lambda: str(uuid4()))
    created: datetime = field(default_factory=lambda: datetime.now(UTC))


def render_calendar_document(header: CalendarHeader, events: Iterable[CalendarEvent]) -> str:
    calendar = Calendar()
    calendar.add("prodid", header.product_id)
    calendar.add("calscale", "GREGORIAN")
    calendar.add("version", "2.0")
    calendar.add("method", "PUBLISH")
    calendar.add("x-wr-calname", header.name)
    calendar.add("x-wr-timezone", header.timezone)
    for event in events:
        calendar.add_component(_build_vevent(event, header.uid_domain))
    return calendar.to_ical().decode("utf-8")


def _build_vevent(event: CalendarEvent, uid_domain: str) -> Event:
    created = event.created.astimezone(UTC)
    vevent = Event()
    # All-day values serialize as VALUE=DATE; naive datetimes stay floating.
    vevent.add("dtstart", to_ical_value(event.start))
    vevent.add("dtend", to_ical_value(event.end))
    vevent.add("dtstamp", created)
    vevent.add("uid", f"{event.uid}@{uid_domain}")
    vevent.add("created", created)
    vevent.add("description", "")
    vevent.add("last-modified", created)
    vevent.add("location", "")
    vevent.add("sequence", 0)
    vevent.add("status", "CONFIRMED")
    vevent.add("summary", event.title)
    vevent.add("transp", "OPAQUE")
    return vevent
