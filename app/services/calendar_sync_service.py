from __future__ import annotations

from datetime import UTC, datetime
import logging
from zoneinfo import ZoneInfo

from app.core.config import Settings
from app.services.calendar_document import CalendarEvent, CalendarHeader, render_calendar_document
from app.services.date_normalizer import (
    CalendarDate,
    DateNormalizationError,
    Instant,
    NormalizedDate,
    fallback_end,
    normalize_date_token,
)
from app.services.event_extractor import DateMention, EventExtractionError, EventExtractor
from app.services.feed_cache import FeedCache, FeedCacheError, create_feed_cache
from app.services.notion_database_client import NotionDatabaseClient, NotionDatabaseError

logger = logging.getLogger(__name__)


class CalendarSyncService:
    def __init__(
        self,
        settings: Settings,
        notion_client: NotionDatabaseClient | None = None,
        extractor: EventExtractor | None = None,
        feed_cache: FeedCache | None = None,
    ) -> None:
        self.settings = settings
        self.notion_client = notion_client or self._create_notion_client()
        self.extractor = extractor or EventExtractor(self.notion_client)
        self.feed_cache = feed_cache or create_feed_cache(settings)
        self.timezone = ZoneInfo(settings.calendar_timezone)
        self.header = CalendarHeader(
            product_id=settings.calendar_product_id,
            name=settings.calendar_name,
            timezone=settings.calendar_timezone,
            uid_domain=settings.calendar_uid_domain,
        )

    def refresh(self) -> str:
        logger.info("Updating calendar database_id=%s", self.settings.notion_database_id)
        events = self.collect_events()
        document = render_calendar_document(self.header, events)
        self.feed_cache.write(document)
        logger.info("Calendar updated events=%s", len(events))
        return document

    def refresh_safely(self) -> bool:
        try:
            self.refresh()
        except NotionDatabaseError:
            logger.exception("Calendar refresh failed fetching Notion data; keeping previous feed")
            return False
        except FeedCacheError:
            logger.exception("Calendar refresh failed writing feed; keeping previous feed")
            return False
        return True

    def collect_events(self) -> list[CalendarEvent]:
        records = self.notion_client.query_database()
        logger.info("Fetched Notion records count=%s", len(records))

        events: list[CalendarEvent] = []
        for record in records:
            try:
                entry = self.extractor.extract(record)
            except EventExtractionError as exc:
                logger.warning("Skipping Notion record id=%s reason=%s", record.get("id"), exc)
                continue
            if entry is None:
                continue

            created = datetime.now(UTC)
            for mention in entry.mentions:
                event = self._build_event(entry.title, mention, created)
                if event is not None:
                    events.append(event)
        return events

    def _build_event(
        self,
        title: str,
        mention: DateMention,
        created: datetime,
    ) -> CalendarEvent | None:
        try:
            start = normalize_date_token(mention.start, treat_as_end=False, timezone=self.timezone)
        except DateNormalizationError as exc:
            logger.warning("Skipping date mention title=%r reason=%s", title, exc)
            return None
        if start is None:
            logger.warning("Skipping date mention without start title=%r", title)
            return None

        try:
            end = self._resolve_end(title, mention, start)
        except DateNormalizationError as exc:
            logger.warning("Skipping date mention title=%r reason=%s", title, exc)
            return None

        return CalendarEvent(title=title, start=start, end=end, created=created)

    def _resolve_end(self, title: str, mention: DateMention, start: NormalizedDate) -> NormalizedDate:
        try:
            end = normalize_date_token(mention.end, treat_as_end=True, timezone=self.timezone)
        except DateNormalizationError as exc:
            logger.warning("Ignoring unusable end date title=%r reason=%s", title, exc)
            end = None

        if end is None or _unusable_end(start, end):
            return fallback_end(start)
        return end

    def _create_notion_client(self) -> NotionDatabaseClient:
        if not self.settings.has_notion_credentials():
            logger.error("NOTION_API_KEY or NOTION_DATABASE_ID is missing; refreshes will fail")
        return NotionDatabaseClient(
            api_token=self.settings.notion_api_key,
            database_id=self.settings.notion_database_id,
            timeout_seconds=self.settings.notion_api_timeout_seconds,
            api_version=self.settings.notion_api_version,
            title_property_id=self.settings.notion_title_property_id,
            page_size=self.settings.notion_page_size,
            api_base_url=self.settings.notion_api_base_url,
        )


def _unusable_end(start: NormalizedDate, end: NormalizedDate) -> bool:
    match (start, end):
        case (CalendarDate(value=start_date), CalendarDate(value=end_date)):
            return end_date <= start_date
        case (Instant(value=start_moment), Instant(value=end_moment)):
            return end_moment < start_moment
        case _:
            # DTSTART and DTEND must share a value type.
            return True
