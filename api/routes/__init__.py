"""API routes."""

from api.routes.chat import router as chat_router
from api.routes.report import router as report_router
from api.routes.review import router as review_router
from api.routes.session import region_router
from api.routes.session import router as session_router

__all__ = [
    "chat_router",
    "region_router",
    "report_router",
    "review_router",
    "session_router",
]
