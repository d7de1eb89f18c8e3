"""API Routers."""

from .automation import router as automation_router
from .scheduler import router as scheduler_router

__all__ = [
    "automation_router",
    "scheduler_router",
]
