"""
Core domain models for the region OCR workflow.

These are pure data structures without business logic.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from .constants import DEFAULT_RETRY_PARAMS, RETRYABLE_ERROR_MARKERS


class SessionStatus(str, Enum):
    """Lifecycle states of an OCR session."""
    PENDING = 'pending'
    PROCESSING = 'processing'
    COMPLETED = 'completed'
    FAILED = 'failed'

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.FAILED)


# Forward-only transitions
SESSION_TRANSITIONS = {
    SessionStatus.PENDING: {SessionStatus.PROCESSING},
    SessionStatus.PROCESSING: {SessionStatus.COMPLETED, SessionStatus.FAILED},
    SessionStatus.COMPLETED: set(),
    SessionStatus.FAILED: set(),
}


@dataclass(frozen=True)
class Region:
    """A user-drawn rectangle, in image pixels."""
    id: str
    x: float
    y: float
    width: float
    height: float
    color: str = ""
    label: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        data = {
            'id': self.id,
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height,
            'color': self.color,
        }
        if self.label is not None:
            data['label'] = self.label
        return data


@dataclass
class OCRError:
    """Failure attached to a region result."""
    code: str
    message: str
    retryable: bool = False

    def to_dict(self) -> dict:
        return {
            'code': self.code,
            'message': self.message,
            'retryable': self.retryable,
        }


@dataclass
class OCRResult:
    """Outcome of processing one region."""
    region_id: str
    text: str = ""
    processing_time: int = 0
    error: Optional[OCRError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        """Convert to the camelCase payload used by the API."""
        data = {
            'regionId': self.region_id,
            'text': self.text,
            'processingTime': self.processing_time,
        }
        if self.error is not None:
            data['error'] = self.error.to_dict()
        return data


@dataclass
class Session:
    """Server-side record of one text-extraction request."""
    id: str
    image_id: str
    regions: Tuple[Region, ...]
    results: List[OCRResult] = field(default_factory=list)
    status: SessionStatus = SessionStatus.PENDING
    created_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def progress(self) -> Tuple[int, int]:
        """(completed regions, total regions)."""
        return len(self.results), len(self.regions)

    def processing_time_ms(self, now: Optional[datetime] = None) -> int:
        """Elapsed milliseconds, frozen once the session is terminal."""
        end = self.completed_at or now or datetime.now()
        return int((end - self.created_at).total_seconds() * 1000)

    def find_result(self, region_id: str) -> Optional[OCRResult]:
        for result in self.results:
            if result.region_id == region_id:
                return result
        return None


@dataclass
class ProcessedRegion:
    """Cropped region bytes ready for OCR."""
    region_id: str
    data: bytes
    mime_type: str = 'image/png'


@dataclass
class EnhancementOutcome:
    """
    Result of OCR optimization.

    When enhancement fails, ``data`` is the original buffer,
    ``enhanced`` is False and ``error`` describes the failure.
    """
    data: bytes
    enhanced: bool
    error: Optional[str] = None


@dataclass
class RegionValidation:
    """Outcome of checking regions against the image bounds."""
    valid: bool
    errors: List[str] = field(default_factory=list)


@dataclass
class VisionRequest:
    """Single request to the vision backend."""
    image: bytes
    prompt: Optional[str] = None
    mime_type: str = 'image/png'


@dataclass
class RetryConfig:
    """Retry policy; delays are in milliseconds."""
    max_attempts: int = DEFAULT_RETRY_PARAMS['max_attempts']
    base_delay: float = DEFAULT_RETRY_PARAMS['base_delay']
    max_delay: float = DEFAULT_RETRY_PARAMS['max_delay']
    backoff_multiplier: float = DEFAULT_RETRY_PARAMS['backoff_multiplier']
    retryable_errors: Tuple[str, ...] = RETRYABLE_ERROR_MARKERS


@dataclass
class ImageRecord:
    """Metadata of an uploaded image."""
    id: str
    filename: str
    path: str
    url: str
    width: int
    height: int
    content_type: str = ""
    size_bytes: int = 0
    uploaded_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            'imageId': self.id,
            'imageUrl': self.url,
            'dimensions': {
                'width': self.width,
                'height': self.height,
            },
        }
