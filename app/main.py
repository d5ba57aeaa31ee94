from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from app.api.router import api_router
from app.core.config import get_settings
from app.services.calendar_sync_service import CalendarSyncService
from app.services.feed_cache import create_feed_cache
from app.services.refresh_scheduler import RefreshScheduler


logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    if not settings.refresh_enabled:
        logger.info("Calendar refresh disabled; serving cached feed only")
        yield
        return

    feed_cache = create_feed_cache(settings)
    sync_service = CalendarSyncService(settings, feed_cache=feed_cache)
    scheduler = RefreshScheduler(
        sync_service.refresh_safely,
        interval_seconds=settings.refresh_interval_seconds,
        feed_cache=feed_cache,
    )
    await scheduler.ensure_initial_document()
    scheduler.start()
    app.state.refresh_scheduler = scheduler
    try:
        yield
    finally:
        await scheduler.stop()


def create_application() -> FastAPI:
    _configure_logging()
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
        lifespan=_lifespan,
    )
    app.include_router(api_router)
    return app


app = create_application()


def run() -> None:
    import uvicorn

    settings = get_settings()
    logger.info("Started listening on %s:%s", settings.server_host, settings.server_port)
    uvicorn.run("app.main:app", host=settings.server_host, port=settings.server_port)
