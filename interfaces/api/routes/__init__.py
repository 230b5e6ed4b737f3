"""API route registrations."""

from interfaces.api.routes.client_routes import router as client_router
from interfaces.api.routes.project_routes import router as project_router
from interfaces.api.routes.task_routes import router as task_router
from interfaces.api.routes.team_routes import router as team_router

__all__ = ["client_router", "project_router", "task_router", "team_router"]
