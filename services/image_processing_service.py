"""
Image Processing Service - Region validation, cropping and OCR enhancement.

All methods are synchronous and CPU-bound; async callers should run them
in a worker thread.
"""
import logging
from io import BytesIO
from typing import Dict, List, Sequence

from PIL import Image, ImageFilter, ImageOps

from core.constants import MIN_REGION_SIZE
from core.errors import InvalidImageError, ProcessingError
from core.models import EnhancementOutcome, ProcessedRegion, Region, RegionValidation
from utils.image_utils import get_image_dimensions, image_to_png_bytes, load_image

logger = logging.getLogger(__name__)


class ImageProcessingService:
    """Pillow-backed primitives used by the OCR pipeline."""

    @staticmethod
    def validate_regions(image_bytes: bytes, regions: Sequence[Region]) -> RegionValidation:
        """
        Validate regions against the image bounds.

        Every violation of every region is reported; nothing short-circuits.

        Args:
            image_bytes: Source image
            regions: Regions to validate

        Returns:
            RegionValidation with valid=True iff no errors were found
        """
        try:
            width, height = get_image_dimensions(image_bytes)
        except Exception as e:
            logger.warning(f"Unable to read image dimensions: {e}")
            return RegionValidation(valid=False, errors=['Unable to read image dimensions'])

        if not width or not height:
            return RegionValidation(valid=False, errors=['Unable to read image dimensions'])

        errors: List[str] = []
        for region in regions:
            if region.x < 0 or region.y < 0:
                errors.append(f"Region {region.id} has negative coordinates")

            if region.x + region.width > width:
                errors.append(f"Region {region.id} extends beyond image width")

            if region.y + region.height > height:
                errors.append(f"Region {region.id} extends beyond image height")

            if region.width < MIN_REGION_SIZE or region.height < MIN_REGION_SIZE:
                errors.append(
                    f"Region {region.id} is too small "
                    f"(minimum {MIN_REGION_SIZE}x{MIN_REGION_SIZE} pixels)"
                )

        return RegionValidation(valid=not errors, errors=errors)

    @staticmethod
    def crop_regions(image_bytes: bytes, regions: Sequence[Region]) -> List[ProcessedRegion]:
        """
        Crop each region out of the image, in input order.

        Args:
            image_bytes: Source image
            regions: Regions to crop (already validated)

        Returns:
            List of ProcessedRegion with PNG bytes

        Raises:
            ProcessingError: On the first region that cannot be extracted
        """
        try:
            image = load_image(image_bytes)
        except Exception as e:
            raise ProcessingError(f"Failed to read source image: {e}") from e

        processed = []
        for region in regions:
            try:
                left = round(region.x)
                top = round(region.y)
                box = (left, top, left + round(region.width), top + round(region.height))
                cropped = image.crop(box)
                processed.append(ProcessedRegion(
                    region_id=region.id,
                    data=image_to_png_bytes(cropped),
                    mime_type='image/png'
                ))
            except Exception as e:
                logger.error(f"Failed to crop region {region.id}: {e}")
                raise ProcessingError(f"Failed to process region {region.id}") from e

        return processed

    @staticmethod
    def optimize_for_ocr(data: bytes) -> EnhancementOutcome:
        """
        Enhance a region for OCR: grayscale, contrast normalization, sharpening.

        Never raises; if enhancement fails the original bytes come back with
        enhanced=False.

        Args:
            data: Region image bytes

        Returns:
            EnhancementOutcome
        """
        try:
            img = load_image(data)
            img = ImageOps.grayscale(img)
            img = ImageOps.autocontrast(img)
            img = img.filter(ImageFilter.SHARPEN)
            return EnhancementOutcome(data=image_to_png_bytes(img), enhanced=True)
        except Exception as e:
            return EnhancementOutcome(data=data, enhanced=False, error=str(e))

    @staticmethod
    def get_image_metadata(image_bytes: bytes) -> Dict:
        """
        Read basic image metadata.

        Raises:
            InvalidImageError: If the bytes are not a readable image
        """
        try:
            img = Image.open(BytesIO(image_bytes))
            img.load()
            image_format = img.format
            img = ImageOps.exif_transpose(img)
        except Exception as e:
            raise InvalidImageError('Unable to read image dimensions') from e

        width, height = img.size
        if not width or not height:
            raise InvalidImageError('Unable to read image dimensions')

        return {
            'width': width,
            'height': height,
            'format': image_format.lower() if image_format else None,
            'size': len(image_bytes),
        }
