"""Routers package for the Working Status API."""

from .admin import router as admin_router
from .auth import router as auth_router
from .billing import router as billing_router
from .tasks import router as tasks_router
from .users import router as users_router

__all__ = ["admin_router", "auth_router", "billing_router", "tasks_router", "users_router"]
