"""Members service routers package."""

from services.members_service.routers.admin import router as admin_router
from services.members_service.routers.auth import router as auth_router
from services.members_service.routers.members import router as members_router

__all__ = [
    "admin_router",
    "auth_router",
    "members_router",
]
