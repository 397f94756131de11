"""
Filesystem helpers for uploaded images.
"""
import os
import re
import time


def ensure_dir(dir_path: str) -> None:
    """Create a directory (and parents) if it does not exist."""
    os.makedirs(dir_path, exist_ok=True)


def get_safe_filename(original_filename: str) -> str:
    """
    Generate a filesystem-safe filename, keeping the extension.

    Args:
        original_filename: Name supplied by the client

    Returns:
        Sanitized name with a millisecond timestamp appended
    """
    base_name, ext = os.path.splitext(os.path.basename(original_filename or ''))
    safe_name = re.sub(r'[^a-zA-Z0-9\-_]', '_', base_name) or 'image'
    timestamp = int(time.time() * 1000)
    return f"{safe_name}_{timestamp}{ext.lower()}"


def normalize_path(file_path: str) -> str:
    """Normalize a path and use forward slashes on every platform."""
    return os.path.normpath(file_path).replace('\\', '/')
