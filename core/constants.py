"""
Constants and configuration values for the region OCR workflow.
"""

# Substrings that mark a backend or transport failure as transient.
# Shared by the vision client and the backoff utility.
RETRYABLE_ERROR_MARKERS = (
    'RESOURCE_EXHAUSTED',
    'DEADLINE_EXCEEDED',
    'UNAVAILABLE',
    'INTERNAL',
    'ECONNRESET',   # connection reset
    'ETIMEDOUT',    # connection timeout
    'ENOTFOUND',    # name resolution failure
)

# Default retry policy for vision calls (delays in milliseconds)
DEFAULT_RETRY_PARAMS = {
    'max_attempts': 3,
    'base_delay': 2000,
    'max_delay': 10000,
    'backoff_multiplier': 2,
}

# Region geometry
MIN_REGION_SIZE = 10

# Upload formats accepted by /api/upload
SUPPORTED_FORMATS = ('png', 'jpg', 'jpeg', 'webp')

# OCR prompt templates
OCR_PROMPTS = {
    'transcribe': (
        'You are a professional OCR assistant. Transcribe only the text that '
        'appears in the supplied image. Return plain UTF-8 with no extra markup.'
    ),
}

# Default OCR parameters
DEFAULT_OCR_PARAMS = {
    'max_tokens': 4096,
    'temperature': 0.0,
    'mime_type': 'image/png',
}

# HTTP status -> backend status marker, for errors that carry no code
HTTP_STATUS_MARKERS = {
    429: 'RESOURCE_EXHAUSTED',
    500: 'INTERNAL',
    503: 'UNAVAILABLE',
    504: 'DEADLINE_EXCEEDED',
}
