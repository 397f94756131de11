"""
Region OCR API.

Endpoints:
    POST /api/upload                     - upload an image (multipart field "image")
    POST /api/ocr/process                - start OCR over a list of regions
    GET  /api/ocr/status/{session_id}    - poll session progress and results
    GET  /api/health                     - liveness check
    GET  /uploads/{file}                 - stored uploads

Run with:
    uvicorn main:app --port 5000
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import Settings, get_settings as load_settings
from core.errors import AppError, InvalidRequestError, UploadError
from data.database import DatabaseManager
from data.image_store import ImageStore
from data.session_store import InMemorySessionStore, SessionStore
from services.ocr_orchestrator import OCROrchestrator
from services.status_service import StatusService
from services.task_supervisor import TaskSupervisor
from services.vision_service import create_vision_service

from .dependencies import get_image_store, get_settings, get_status_service
from .schemas import (
    ApiResponse,
    Dimensions,
    HealthResponse,
    OCRStatusResponse,
    ProcessOCRRequest,
    ProcessOCRResponse,
    UploadResponse,
)

logger = logging.getLogger(__name__)

IMAGE_FIELD = "image"

HTTP_ERROR_CODES = {
    404: 'NOT_FOUND',
    405: 'METHOD_NOT_ALLOWED',
}

router = APIRouter()


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _error_response(status_code: int, message: str, code: str, retryable: bool = False) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {
                "message": message,
                "code": code,
                "retryable": retryable,
            },
            "timestamp": datetime.now().isoformat(),
        },
    )


@router.get("/api/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_settings)):
    """Liveness check."""
    return HealthResponse(
        status="ok",
        timestamp=datetime.now().isoformat(),
        environment=settings.app_env,
    )


@router.post(
    "/api/upload",
    response_model=ApiResponse[UploadResponse],
    response_model_exclude_none=True,
)
async def upload_image(
    request: Request,
    image_store: ImageStore = Depends(get_image_store),
):
    """
    Accept one image in the multipart field "image".

    Returns:
        Image id, public URL and pixel dimensions
    """
    form = await request.form()
    try:
        uploads = [
            (field, value) for field, value in form.multi_items()
            if isinstance(value, UploadFile)
        ]

        if not uploads:
            raise UploadError('No image file provided', code='NO_FILE')
        if any(field != IMAGE_FIELD for field, _ in uploads):
            raise UploadError('Unexpected field name', code='UNEXPECTED_FIELD')
        if len(uploads) > 1:
            raise UploadError('Too many files uploaded', code='TOO_MANY_FILES')

        upload = uploads[0][1]
        data = await upload.read()
    finally:
        await form.close()

    record = await run_in_threadpool(
        image_store.save_upload,
        data,
        upload.filename or "upload",
        upload.content_type,
    )

    return ApiResponse(data=UploadResponse(
        image_id=record.id,
        image_url=record.url,
        dimensions=Dimensions(width=record.width, height=record.height),
    ))


@router.post(
    "/api/ocr/process",
    response_model=ApiResponse[ProcessOCRResponse],
    response_model_exclude_none=True,
)
async def process_ocr(
    body: ProcessOCRRequest,
    status_service: StatusService = Depends(get_status_service),
):
    """
    Start OCR over the given regions.

    Returns immediately with a session id; poll /api/ocr/status for results.
    """
    regions = [region.to_region() for region in body.regions or []]
    session_id = status_service.create_session(body.image_id, regions)

    return ApiResponse(data=ProcessOCRResponse(
        session_id=session_id,
        results=[],
        processing_time=0,
        success=True,
    ))


@router.get(
    "/api/ocr/status/{session_id}",
    response_model=ApiResponse[OCRStatusResponse],
    response_model_exclude_none=True,
)
async def get_ocr_status(
    session_id: str,
    status_service: StatusService = Depends(get_status_service),
):
    """Progress and results of a session."""
    return ApiResponse(data=OCRStatusResponse(**status_service.get_status(session_id)))


def _register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} -> {exc.status_code} [{exc.code}] {exc.message}")
        return _error_response(exc.status_code, exc.message, exc.code, exc.retryable)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid request: {location} {first.get('msg', '')}".strip()
        return _error_response(400, message, InvalidRequestError.code)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(
            exc.status_code,
            str(exc.detail),
            HTTP_ERROR_CODES.get(exc.status_code, 'HTTP_ERROR'),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return _error_response(500, "Internal Server Error", "INTERNAL_ERROR")


def create_app(
    settings: Optional[Settings] = None,
    vision_service=None,
    session_store: Optional[SessionStore] = None,
) -> FastAPI:
    """
    Build the application and its components.

    Args:
        settings: Settings (environment settings when None)
        vision_service: Vision client (built from settings when None)
        session_store: Session store (fresh in-memory store when None)

    Returns:
        Configured FastAPI app
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    db_manager = DatabaseManager(settings.get_database_url())
    image_store = ImageStore(
        upload_dir=settings.get_upload_dir(),
        db_manager=db_manager,
        max_file_size=settings.max_file_size,
    )
    session_store = session_store or InMemorySessionStore()
    vision_service = vision_service or create_vision_service(settings)

    orchestrator = OCROrchestrator(
        session_store=session_store,
        image_store=image_store,
        vision_service=vision_service,
        concurrency_limit=settings.ocr_concurrency_limit,
        timeout_ms=settings.api_timeout,
        retention=timedelta(seconds=settings.session_retention_seconds),
    )
    supervisor = TaskSupervisor(session_store)

    app = FastAPI(
        title="Region OCR API",
        description="Extract text from user-selected image regions with a vision model",
        version="1.0.0",
    )

    app.state.settings = settings
    app.state.db_manager = db_manager
    app.state.image_store = image_store
    app.state.session_store = session_store
    app.state.vision_service = vision_service
    app.state.orchestrator = orchestrator
    app.state.supervisor = supervisor
    app.state.status_service = StatusService(
        session_store=session_store,
        orchestrator=orchestrator,
        supervisor=supervisor,
        vision_configured=settings.is_vision_configured(),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)
    app.include_router(router)
    app.mount("/uploads", StaticFiles(directory=image_store.upload_dir), name="uploads")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Drain background OCR work and release database connections."""
        await supervisor.shutdown()
        db_manager.dispose()

    logger.info(f"Region OCR API initialized (upload dir: {image_store.upload_dir})")
    return app
