"""
Configuration management using Pydantic Settings.

Environment variables:
- GEMINI_API_KEY: API key for the vision backend (empty = not configured)
- GEMINI_MODEL: Vision model name
- GEMINI_BASE_URL: OpenAI-compatible endpoint of the vision backend
- API_TIMEOUT: Deadline for one region's OCR call including retries (ms)
- OCR_CONCURRENCY_LIMIT: Regions sent to the backend at the same time
- MAX_FILE_SIZE: Upload size ceiling in bytes
- UPLOAD_DIR: Directory for uploaded images
- DATABASE_URL: SQLAlchemy URL of the image registry
- CORS_ORIGIN: Allowed browser origin
"""
import os
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Vision backend
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    api_timeout: int = 30000

    # OCR pipeline
    ocr_concurrency_limit: int = 3
    session_retention_seconds: int = 3600

    # Uploads
    max_file_size: int = 10 * 1024 * 1024
    upload_dir: str = "./uploads"
    database_url: Optional[str] = None

    # Server
    host: str = "0.0.0.0"
    port: int = 5000
    cors_origin: str = "http://localhost:3000"
    app_env: str = "development"
    log_level: str = "INFO"

    def get_upload_dir(self) -> str:
        """Absolute path of the upload directory."""
        return os.path.abspath(self.upload_dir)

    def get_database_url(self) -> str:
        """Image registry URL, defaulting to a SQLite file next to the uploads."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{os.path.join(self.get_upload_dir(), 'images.db')}"

    def is_vision_configured(self) -> bool:
        """True when a vision backend credential is present."""
        return bool(self.gemini_api_key.strip())


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
