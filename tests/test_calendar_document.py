from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

from icalendar import Calendar
import pytest

from app.services.calendar_document import CalendarEvent, CalendarHeader, render_calendar_document
from app.services.date_normalizer import CalendarDate, Instant, normalize_date_token, parse_ical_stamp

HEADER = CalendarHeader(
    product_id="-//Tests//Feed//EN",
    name="Test Calendar",
    timezone="Europe/Amsterdam",
    uid_domain="example.test",
)


def _vevent_lines(document: str) -> list[str]:
    lines = document.split("\r\n")
    return lines[lines.index("BEGIN:VEVENT") + 1 : lines.index("END:VEVENT")]


def test_render_empty_calendar_has_header_and_footer() -> None:
    document = render_calendar_document(HEADER, [])
    lines = document.split("\r\n")

    assert lines[0] == "BEGIN:VCALENDAR"
    assert document.endswith("END:VCALENDAR\r\n")
    assert {
        "PRODID:-//Tests//Feed//EN",
        "CALSCALE:GREGORIAN",
        "VERSION:2.0",
        "METHOD:PUBLISH",
        "X-WR-CALNAME:Test Calendar",
        "X-WR-TIMEZONE:Europe/Amsterdam",
    } <= set(lines)
    assert "BEGIN:VEVENT" not in lines


def test_render_event_block_fields() -> None:
    event = CalendarEvent(
        title="Trip:",
        start=CalendarDate(date(2022, 1, 11)),
        end=CalendarDate(date(2022, 1, 12)),
        uid="1234",
        created=datetime(2022, 1, 1, 8, 30, 0, tzinfo=UTC),
    )

    block = _vevent_lines(render_calendar_document(HEADER, [event]))

    assert sorted(block) == sorted(
        [
            "DTSTART;VALUE=DATE:20220111",
            "DTEND;VALUE=DATE:20220112",
            "DTSTAMP:20220101T083000Z",
            "UID:1234@example.test",
            "CREATED:20220101T083000Z",
            "DESCRIPTION:",
            "LAST-MODIFIED:20220101T083000Z",
            "LOCATION:",
            "SEQUENCE:0",
            "STATUS:CONFIRMED",
            "SUMMARY:Trip:",
            "TRANSP:OPAQUE",
        ],
    )


def test_creation_stamps_are_written_in_utc() -> None:
    event = CalendarEvent(
        title="Call",
        start=CalendarDate(date(2022, 12, 12)),
        end=CalendarDate(date(2022, 12, 13)),
        created=datetime(2022, 12, 12, 1, 2, 3, tzinfo=ZoneInfo("Europe/Amsterdam")),
    )

    block = _vevent_lines(render_calendar_document(HEADER, [event]))

    assert "CREATED:20221212T000203Z" in block
    assert "DTSTAMP:20221212T000203Z" in block


def test_render_timed_event_uses_floating_timestamps() -> None:
    event = CalendarEvent(
        title="Call",
        start=Instant(datetime(2022, 12, 12, 0, 0, 0)),
        end=Instant(datetime(2022, 12, 12, 1, 0, 0)),
    )

    document = render_calendar_document(HEADER, [event])

    assert "DTSTART:20221212T000000\r\n" in document
    assert "DTEND:20221212T010000\r\n" in document


def test_events_without_uid_get_unique_ids() -> None:
    first = CalendarEvent(title="a", start=CalendarDate(date(2022, 1, 1)), end=CalendarDate(date(2022, 1, 2)))
    second = CalendarEvent(title="a", start=CalendarDate(date(2022, 1, 1)), end=CalendarDate(date(2022, 1, 2)))

    assert first.uid != second.uid


def test_summary_text_is_escaped_and_long_lines_are_folded() -> None:
    title = "Dinner, drinks; and " + "é" * 60
    event = CalendarEvent(
        title=title,
        start=CalendarDate(date(2022, 1, 1)),
        end=CalendarDate(date(2022, 1, 2)),
    )

    document = render_calendar_document(HEADER, [event])

    assert all(len(line.encode("utf-8")) <= 75 for line in document.split("\r\n"))
    assert "SUMMARY:Dinner\\, drinks\\; and " in document
    parsed = Calendar.from_ical(document)
    assert [str(component.get("summary")) for component in parsed.walk("VEVENT")] == [title]


@pytest.mark.parametrize(
    "token",
    ["2022-01-11", "2024-02-29", "2022-12-11T23:00:00Z", "2022-03-27T01:30:00+00:00"],
)
def test_rendered_stamps_read_back_as_same_values(token: str) -> None:
    timezone = ZoneInfo("Europe/Amsterdam")
    start = normalize_date_token(token, treat_as_end=False, timezone=timezone)
    end = normalize_date_token(token, treat_as_end=True, timezone=timezone)
    assert start is not None and end is not None

    block = _vevent_lines(
        render_calendar_document(HEADER, [CalendarEvent(title="x", start=start, end=end)]),
    )

    dtstart = next(line for line in block if line.startswith("DTSTART"))
    dtend = next(line for line in block if line.startswith("DTEND"))
    assert parse_ical_stamp(dtstart) == start
    assert parse_ical_stamp(dtend) == end
