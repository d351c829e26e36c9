"""
HTTP routers for the row services.
"""

from .services import router as services_router
from .health import router as health_router

__all__ = [
    "services_router",
    "health_router",
]
