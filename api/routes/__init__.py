"""API route modules."""

from routes.admin_routes import router as admin_router
from routes.auth_routes import router as auth_router
from routes.health_routes import router as health_router
from routes.instructor_routes import router as instructor_router
from routes.machines_routes import router as machines_router
from routes.reports_routes import router as reports_router
from routes.users_routes import router as users_router
from routes.workouts_routes import router as workouts_router

__all__ = [
    "admin_router",
    "auth_router",
    "health_router",
    "instructor_router",
    "machines_router",
    "reports_router",
    "users_router",
    "workouts_router",
]
