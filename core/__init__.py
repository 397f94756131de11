"""Core package - Domain models, errors and constants."""

from .models import (
    EnhancementOutcome,
    ImageRecord,
    OCRError,
    OCRResult,
    ProcessedRegion,
    Region,
    RegionValidation,
    RetryConfig,
    Session,
    SessionStatus,
    VisionRequest,
)
from .constants import (
    RETRYABLE_ERROR_MARKERS,
    DEFAULT_RETRY_PARAMS,
    MIN_REGION_SIZE,
    SUPPORTED_FORMATS,
    OCR_PROMPTS,
    DEFAULT_OCR_PARAMS,
)
from .errors import AppError, matches_retryable_marker

__all__ = [
    'EnhancementOutcome',
    'ImageRecord',
    'OCRError',
    'OCRResult',
    'ProcessedRegion',
    'Region',
    'RegionValidation',
    'RetryConfig',
    'Session',
    'SessionStatus',
    'VisionRequest',
    'RETRYABLE_ERROR_MARKERS',
    'DEFAULT_RETRY_PARAMS',
    'MIN_REGION_SIZE',
    'SUPPORTED_FORMATS',
    'OCR_PROMPTS',
    'DEFAULT_OCR_PARAMS',
    'AppError',
    'matches_retryable_marker',
]
