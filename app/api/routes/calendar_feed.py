import hmac
import logging

from fastapi import APIRouter, HTTPException, Response, status

from app.core.config import get_settings
from app.services.feed_cache import FeedCacheError, create_feed_cache

CALENDAR_MEDIA_TYPE = "text/calendar; charset=utf-8"

router = APIRouter(tags=["calendar"])
logger = logging.getLogger(__name__)


@router.get("/{feed_token:path}", response_class=Response)
def get_calendar_feed(feed_token: str) -> Response:
    settings = get_settings()
    if not hmac.compare_digest(feed_token.encode("utf-8"), settings.secret_url.encode("utf-8")):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    logger.info("Got a calendar feed request")
    try:
        document = create_feed_cache(settings).read_all()
    except FeedCacheError as exc:
        logger.warning("Calendar feed unavailable reason=%s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Calendar feed is not available yet.",
        ) from exc
    return Response(content=document, media_type=CALENDAR_MEDIA_TYPE)
