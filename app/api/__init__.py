"""API package."""

from .prd import router as prd_router
from .diagrams import router as diagrams_router
from .sessions import router as sessions_router
from .admin import router as admin_router
from .track import router as track_router

__all__ = [
    "prd_router",
    "diagrams_router",
    "sessions_router",
    "admin_router",
    "track_router",
]
