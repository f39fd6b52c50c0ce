"""
app/api/routers package marker.
"""

from app.api.routers.logs import router as logs_router
from app.api.routers.sync import router as sync_router

__all__ = [
    "logs_router",
    "sync_router",
]
