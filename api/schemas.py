"""
Pydantic schemas for API request/response validation.

JSON bodies use camelCase keys; Python attributes are snake_case.
"""
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.models import Region

T = TypeVar('T')


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegionSchema(CamelModel):
    """A rectangle drawn over the uploaded image, in pixels."""
    id: str = Field(min_length=1)
    x: float
    y: float
    width: float
    height: float
    color: str = ""
    label: Optional[str] = None

    def to_region(self) -> Region:
        return Region(
            id=self.id,
            x=self.x,
            y=self.y,
            width=self.width,
            height=self.height,
            color=self.color,
            label=self.label
        )


class ProcessOCRRequest(CamelModel):
    """Request body for starting an OCR session."""
    image_id: Optional[str] = None
    regions: Optional[List[RegionSchema]] = None


class OCRErrorSchema(CamelModel):
    code: str
    message: str
    retryable: bool = False


class OCRResultSchema(CamelModel):
    region_id: str
    text: str
    processing_time: int
    error: Optional[OCRErrorSchema] = None


class ProcessOCRResponse(CamelModel):
    """Session handle returned by /api/ocr/process."""
    session_id: str
    results: List[OCRResultSchema] = []
    processing_time: int = 0
    success: bool = True


class ProgressSchema(CamelModel):
    current: int
    total: int


class OCRStatusResponse(ProcessOCRResponse):
    """Snapshot returned by /api/ocr/status/{sessionId}."""
    status: str
    progress: ProgressSchema


class Dimensions(CamelModel):
    width: int
    height: int


class UploadResponse(CamelModel):
    image_id: str
    image_url: str
    dimensions: Dimensions


class ErrorDetail(CamelModel):
    message: str
    code: str
    retryable: bool = False


class ApiResponse(CamelModel, Generic[T]):
    """Envelope shared by every endpoint."""
    success: bool = True
    data: Optional[T] = None
    error: Optional[ErrorDetail] = None


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    environment: str
