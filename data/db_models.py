"""
Database models for the uploaded image registry.

Maps an opaque image id to the stored file and its pixel dimensions.
"""
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def generate_uuid():
    """Generate UUID string for primary keys."""
    return str(uuid.uuid4())


class UploadedImage(Base):
    """An image accepted by the upload endpoint."""

    __tablename__ = 'uploaded_images'

    id = Column(String, primary_key=True, default=generate_uuid)
    original_filename = Column(String, nullable=False)
    stored_filename = Column(String, nullable=False, unique=True)
    content_type = Column(String)
    size_bytes = Column(Integer, nullable=False)
    width = Column(Integer, nullable=False)
    height = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.now)

    def __repr__(self):
        return f"<UploadedImage(id={self.id}, file={self.stored_filename}, {self.width}x{self.height})>"
