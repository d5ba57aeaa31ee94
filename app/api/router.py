from fastapi import APIRouter

from app.api.routes.calendar_feed import router as calendar_feed_router

api_router = APIRouter()
api_router.include_router(calendar_feed_router)
