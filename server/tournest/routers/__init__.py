"""FastAPI routers package."""

from .health import router as health_router
from .metrics import router as metrics_router
from .tour import router as tour_router
from .users import router as users_router

__all__ = [
    "health_router",
    "metrics_router",
    "tour_router",
    "users_router",
]
