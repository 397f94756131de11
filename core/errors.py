"""
Error taxonomy for the OCR service.

Every error raised by the service carries a machine-readable code, a
retryable flag and the HTTP status used when it reaches the API boundary.
"""
from typing import Iterable, List, Optional

from .constants import RETRYABLE_ERROR_MARKERS


class AppError(Exception):
    """Base class for service errors."""

    code = 'INTERNAL_ERROR'
    status_code = 500
    retryable = False

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        retryable: Optional[bool] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if retryable is not None:
            self.retryable = retryable
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        """Convert to the error payload returned to clients."""
        return {
            'message': self.message,
            'code': self.code,
            'retryable': self.retryable,
        }


class InvalidRequestError(AppError):
    code = 'INVALID_REQUEST'
    status_code = 400


class ConfigError(AppError):
    code = 'CONFIG_ERROR'
    status_code = 500


class SessionNotFoundError(AppError):
    code = 'SESSION_NOT_FOUND'
    status_code = 404


class SessionStateError(AppError):
    """Illegal mutation of a session (backward transition, frozen results, foreign id)."""
    code = 'SESSION_STATE_ERROR'
    status_code = 409


class RegionValidationError(AppError):
    code = 'VALIDATION_ERROR'
    status_code = 400

    def __init__(self, errors: List[str]):
        super().__init__(f"Invalid regions: {', '.join(errors)}")
        self.errors = list(errors)


class ProcessingError(AppError):
    code = 'PROCESSING_ERROR'
    status_code = 500


class VisionServiceError(AppError):
    code = 'GEMINI_ERROR'
    status_code = 502


class OperationTimeoutError(AppError):
    code = 'TIMEOUT'
    status_code = 504
    retryable = True


class UploadError(AppError):
    code = 'UPLOAD_ERROR'
    status_code = 400


class InvalidImageError(AppError):
    code = 'INVALID_IMAGE'
    status_code = 400


class ImageNotFoundError(AppError):
    code = 'IMAGE_NOT_FOUND'
    status_code = 404


def matches_retryable_marker(
    code: Optional[str],
    message: Optional[str],
    markers: Iterable[str] = RETRYABLE_ERROR_MARKERS
) -> bool:
    """
    Check whether an error code or message contains a transient-failure marker.

    This is the single classification rule used by both the vision client
    (to tag errors) and the backoff utility (for errors that arrive untagged).

    Args:
        code: Error code, may be None
        message: Error message, may be None
        markers: Marker substrings

    Returns:
        True if any marker is a substring of the code or the message
    """
    code = code or ''
    message = message or ''
    return any(marker in code or marker in message for marker in markers)
