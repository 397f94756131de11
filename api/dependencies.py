"""
API Dependencies - Dependency injection for FastAPI.

Components are built once per application by create_app() and kept on
app.state; these functions hand them to route handlers.
"""
from fastapi import Request

from config.settings import Settings
from data.image_store import ImageStore
from services.status_service import StatusService


def get_settings(request: Request) -> Settings:
    """Dependency for application settings."""
    return request.app.state.settings


def get_image_store(request: Request) -> ImageStore:
    """Dependency for the image store."""
    return request.app.state.image_store


def get_status_service(request: Request) -> StatusService:
    """Dependency for session creation and status polling."""
    return request.app.state.status_service
