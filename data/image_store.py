"""
Image store - Uploaded images on disk, indexed in the database.

Files are written to the upload directory as "<imageId>_<safe name>";
the uploaded_images table resolves an image id to its file and dimensions.
"""
import logging
import os
from typing import Optional, Tuple

from core.constants import SUPPORTED_FORMATS
from core.errors import ImageNotFoundError, UploadError
from core.models import ImageRecord
from services.image_processing_service import ImageProcessingService
from utils.path_utils import ensure_dir, get_safe_filename, normalize_path

from .database import DatabaseManager
from .db_models import UploadedImage, generate_uuid

logger = logging.getLogger(__name__)


def is_supported_image(filename: Optional[str], content_type: Optional[str]) -> bool:
    """Accept png/jpg/jpeg/webp by extension or MIME type."""
    ext = os.path.splitext(filename or '')[1].lower().lstrip('.')
    mime_type = (content_type or '').lower()

    for fmt in SUPPORTED_FORMATS:
        if ext == fmt or mime_type == f"image/{fmt}":
            return True
    return False


class ImageStore:
    """Stores uploads and resolves image ids."""

    def __init__(
        self,
        upload_dir: str,
        db_manager: DatabaseManager,
        max_file_size: int,
        url_prefix: str = "/uploads"
    ):
        """
        Initialize image store.

        Args:
            upload_dir: Directory for stored files (created if missing)
            db_manager: Database holding the image registry
            max_file_size: Upload size ceiling in bytes
            url_prefix: URL path the upload directory is served under
        """
        self.upload_dir = upload_dir
        self.db_manager = db_manager
        self.max_file_size = max_file_size
        self.url_prefix = url_prefix.rstrip('/')

        ensure_dir(self.upload_dir)
        self.db_manager.create_tables()

    def save_upload(
        self,
        data: bytes,
        filename: str,
        content_type: Optional[str] = None
    ) -> ImageRecord:
        """
        Validate and persist an uploaded image.

        Args:
            data: File contents
            filename: Client-side filename
            content_type: Declared MIME type

        Returns:
            ImageRecord of the stored image

        Raises:
            UploadError: Unsupported type (VALIDATION_ERROR) or too large (FILE_TOO_LARGE)
            InvalidImageError: If the bytes are not a readable image
        """
        if not is_supported_image(filename, content_type):
            raise UploadError(
                f"Invalid file type. Supported formats: {', '.join(SUPPORTED_FORMATS)}",
                code='VALIDATION_ERROR'
            )

        if len(data) > self.max_file_size:
            raise UploadError(
                f"File size exceeds limit of {self.max_file_size / 1024 / 1024:g}MB",
                code='FILE_TOO_LARGE'
            )

        metadata = ImageProcessingService.get_image_metadata(data)

        image_id = generate_uuid()
        stored_filename = f"{image_id}_{get_safe_filename(filename)}"
        path = os.path.join(self.upload_dir, stored_filename)

        with open(path, 'wb') as f:
            f.write(data)

        try:
            with self.db_manager.session() as session:
                row = UploadedImage(
                    id=image_id,
                    original_filename=filename or stored_filename,
                    stored_filename=stored_filename,
                    content_type=content_type,
                    size_bytes=len(data),
                    width=metadata['width'],
                    height=metadata['height']
                )
                session.add(row)
                session.flush()
                record = self._to_record(row)
        except Exception:
            os.unlink(path)
            raise

        logger.info(
            f"Image stored: id={image_id}, file={stored_filename}, "
            f"{record.width}x{record.height}, {record.size_bytes} bytes"
        )
        return record

    def get_record(self, image_id: str) -> Optional[ImageRecord]:
        """Return metadata for an image id, or None."""
        with self.db_manager.session() as session:
            row = session.get(UploadedImage, image_id)
            return self._to_record(row) if row else None

    def load_image(self, image_id: str) -> Tuple[ImageRecord, bytes]:
        """
        Resolve an image id to its metadata and bytes.

        Raises:
            ImageNotFoundError: If the id is unknown or the file is missing
        """
        record = self.get_record(image_id)
        if record is None or not os.path.exists(record.path):
            raise ImageNotFoundError('Image file not found')

        with open(record.path, 'rb') as f:
            return record, f.read()

    def _to_record(self, row: UploadedImage) -> ImageRecord:
        return ImageRecord(
            id=row.id,
            filename=row.stored_filename,
            path=os.path.join(self.upload_dir, row.stored_filename),
            url=normalize_path(f"{self.url_prefix}/{row.stored_filename}"),
            width=row.width,
            height=row.height,
            content_type=row.content_type or "",
            size_bytes=row.size_bytes,
            uploaded_at=row.created_at
        )
