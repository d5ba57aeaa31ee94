from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import logging
from typing import Any

from app.services.notion_database_client import NotionDatabaseClient

logger = logging.getLogger(__name__)


class EventExtractionError(Exception):
    pass


@dataclass(frozen=True)
class DateMention:
    start: Any
    end: Any = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> DateMention:
        return cls(start=payload.get("start"), end=payload.get("end"))


@dataclass
class ExtractedEntry:
    title: str
    mentions: list[DateMention] = field(default_factory=list)


class EventExtractor:
    def __init__(self, source: NotionDatabaseClient) -> None:
        self.source = source

    def extract(self, record: Mapping[str, Any]) -> ExtractedEntry | None:
        page_id = record.get("id")
        if not isinstance(page_id, str) or not page_id.strip():
            raise EventExtractionError("Notion record is missing its id.")

        items = self.source.get_title_property_items(page_id)
        segments = [self._title_segment(item) for item in items]
        mentions = [
            DateMention.from_payload(self._date_payload(segment))
            for segment in segments
            if self._is_date_mention(segment)
        ]
        if not mentions:
            return None

        # The first segment holds the descriptive text, even when it is the mention itself.
        raw_title = segments[0].get("plain_text")
        if not isinstance(raw_title, str):
            raise EventExtractionError(f"Title of page {page_id} has no plain_text.")
        title = raw_title.strip()

        logger.info(
            "Got date information page_id=%s title=%r mentions=%s",
            page_id,
            title,
            len(mentions),
        )
        return ExtractedEntry(title=title, mentions=mentions)

    def _title_segment(self, item: Mapping[str, Any]) -> Mapping[str, Any]:
        segment = item.get("title")
        if not isinstance(segment, Mapping):
            raise EventExtractionError("Title property item is missing its title segment.")
        return segment

    def _is_date_mention(self, segment: Mapping[str, Any]) -> bool:
        if segment.get("type") != "mention":
            return False
        mention = segment.get("mention")
        return isinstance(mention, Mapping) and mention.get("type") == "date"

    def _date_payload(self, segment: Mapping[str, Any]) -> Mapping[str, Any]:
        date_payload = segment["mention"].get("date")
        if not isinstance(date_payload, Mapping):
            raise EventExtractionError("Date mention is missing its date payload.")
        return date_payload
