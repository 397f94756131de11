"""Utilities package - Helper functions for images, paths and retries."""

from .image_utils import (
    load_image,
    image_to_png_bytes,
    bytes_to_base64,
    to_data_url,
    get_image_dimensions
)

from .path_utils import (
    ensure_dir,
    get_safe_filename,
    normalize_path
)

from .retry_utils import (
    DEFAULT_RETRY_CONFIG,
    calculate_backoff_delay,
    is_retryable_error,
    retry_with_backoff,
    with_timeout
)

__all__ = [
    # Image utils
    'load_image',
    'image_to_png_bytes',
    'bytes_to_base64',
    'to_data_url',
    'get_image_dimensions',

    # Path utils
    'ensure_dir',
    'get_safe_filename',
    'normalize_path',

    # Retry utils
    'DEFAULT_RETRY_CONFIG',
    'calculate_backoff_delay',
    'is_retryable_error',
    'retry_with_backoff',
    'with_timeout'
]
