"""SOC console routers."""

from soc_console.routers.auth import router as auth_router
from soc_console.routers.notifications import router as notifications_router
from soc_console.routers.views import admin_router, analyst_router

__all__ = ["admin_router", "analyst_router", "auth_router", "notifications_router"]
