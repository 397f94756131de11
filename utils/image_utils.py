"""
Image utilities for OCR workflow.

Handles decoding, encoding and base64 transport of image bytes.
"""
import base64
from io import BytesIO
from typing import Tuple, Union

from PIL import Image, ImageOps


def load_image(data: bytes) -> Image.Image:
    """
    Decode image bytes into a PIL Image with EXIF orientation applied.

    Args:
        data: Encoded image bytes (PNG, JPEG, WebP, ...)

    Returns:
        PIL Image object
    """
    img = Image.open(BytesIO(data))
    img.load()
    return ImageOps.exif_transpose(img)


def image_to_png_bytes(img: Image.Image) -> bytes:
    """
    Encode a PIL Image as PNG.

    Args:
        img: Image to encode

    Returns:
        PNG bytes
    """
    if img.mode not in ('1', 'L', 'LA', 'P', 'RGB', 'RGBA', 'I', 'I;16'):
        img = img.convert('RGB')
    buf = BytesIO()
    img.save(buf, format='PNG')
    return buf.getvalue()


def bytes_to_base64(data: bytes) -> str:
    """Base64-encode raw bytes for transport."""
    return base64.b64encode(data).decode()


def to_data_url(data: bytes, mime_type: str = 'image/png') -> str:
    """Build a data URL accepted by OpenAI-compatible vision endpoints."""
    return f"data:{mime_type};base64,{bytes_to_base64(data)}"


def get_image_dimensions(image_or_bytes: Union[Image.Image, bytes]) -> Tuple[int, int]:
    """
    Get image dimensions (width, height).

    Args:
        image_or_bytes: PIL Image or encoded image bytes

    Returns:
        Tuple of (width, height)
    """
    if isinstance(image_or_bytes, (bytes, bytearray)):
        img = load_image(bytes(image_or_bytes))
    else:
        img = image_or_bytes

    return img.size
