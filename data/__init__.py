"""Data access layer - Session store, image registry and database connections."""

from .db_models import Base, UploadedImage
from .database import DatabaseManager
from .session_store import SessionStore, InMemorySessionStore
from .image_store import ImageStore, is_supported_image

__all__ = [
    # Models
    'Base',
    'UploadedImage',

    # Database
    'DatabaseManager',

    # Stores
    'SessionStore',
    'InMemorySessionStore',
    'ImageStore',
    'is_supported_image'
]
