"""API routers."""

from app.routers.calls import emails_router, videos_router
from app.routers.calls import router as calls_router
from app.routers.webhooks import router as webhooks_router

__all__ = [
    "calls_router",
    "emails_router",
    "videos_router",
    "webhooks_router",
]
