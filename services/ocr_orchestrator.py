"""
OCR Orchestrator - Runs one session through the region pipeline.

Pipeline per session:
    load image -> validate regions -> crop -> batches of concurrency_limit
    regions; inside a batch every region is enhanced and sent to the vision
    backend concurrently, batches run one after another.

Each region call is wrapped as with_timeout(retry_with_backoff(call)), so the
deadline bounds the whole retry loop. A failing region becomes an errored
result and never stops its siblings; only faults outside per-region handling
fail the session.
"""
import asyncio
import logging
import time
from datetime import datetime, timedelta
from functools import partial
from typing import List, Optional, Sequence, TypeVar

from starlette.concurrency import run_in_threadpool

from core.constants import OCR_PROMPTS
from core.errors import AppError, RegionValidationError
from core.models import OCRError, OCRResult, ProcessedRegion, RetryConfig, SessionStatus, VisionRequest
from data.session_store import SessionStore
from utils.retry_utils import retry_with_backoff, with_timeout

from .image_processing_service import ImageProcessingService

logger = logging.getLogger(__name__)

T = TypeVar('T')


def chunk_items(items: Sequence[T], size: int) -> List[List[T]]:
    """
    Split items into consecutive chunks of at most ``size``, keeping order.

    Raises:
        ValueError: If size is less than 1
    """
    if size < 1:
        raise ValueError(f"Chunk size must be at least 1, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class OCROrchestrator:
    """Drives OCR sessions from creation to a terminal state."""

    def __init__(
        self,
        session_store: SessionStore,
        image_store,
        vision_service,
        concurrency_limit: int = 3,
        timeout_ms: float = 30000,
        retry_config: Optional[RetryConfig] = None,
        retention: timedelta = timedelta(hours=1),
        prompt: Optional[str] = None,
        image_processor=ImageProcessingService
    ):
        """
        Initialize orchestrator.

        Args:
            session_store: Store owning the sessions
            image_store: Resolves image ids (load_image)
            vision_service: Provides async extract_text(VisionRequest)
            concurrency_limit: Regions per batch
            timeout_ms: Deadline per region, covering all retries
            retry_config: Backoff policy (default policy when None)
            retention: Age after which sessions are swept
            prompt: OCR prompt (default transcription prompt when None)
            image_processor: Region validation/crop/enhancement primitives
        """
        if concurrency_limit < 1:
            raise ValueError("concurrency_limit must be at least 1")

        self.session_store = session_store
        self.image_store = image_store
        self.vision_service = vision_service
        self.concurrency_limit = concurrency_limit
        self.timeout_ms = timeout_ms
        self.retry_config = retry_config or RetryConfig()
        self.retention = retention
        self.prompt = prompt or OCR_PROMPTS['transcribe']
        self.image_processor = image_processor

    async def process_session(self, session_id: str) -> None:
        """
        Process every region of a session and finalize its status.

        Never raises for session-level faults: they turn the session failed.
        Expired sessions are swept afterwards in all cases.
        """
        started = time.monotonic()
        try:
            await self._run(session_id)
        except AppError as e:
            logger.error(f"OCR processing failed for session {session_id}: [{e.code}] {e.message}")
            self.session_store.mark_failed(session_id)
        except Exception as e:
            logger.exception(f"OCR processing error for session {session_id}: {e}")
            self.session_store.mark_failed(session_id)
        finally:
            logger.info(f"Session {session_id} finished in {int((time.monotonic() - started) * 1000)}ms")
            self.cleanup_sessions()

    def cleanup_sessions(self, now: Optional[datetime] = None) -> int:
        """Sweep sessions older than the retention window."""
        return self.session_store.sweep(now or datetime.now(), self.retention)

    async def _run(self, session_id: str) -> None:
        session = self.session_store.require(session_id)

        _, image_bytes = await run_in_threadpool(self.image_store.load_image, session.image_id)

        validation = await run_in_threadpool(
            self.image_processor.validate_regions, image_bytes, session.regions
        )
        if not validation.valid:
            raise RegionValidationError(validation.errors)

        processed = await run_in_threadpool(
            self.image_processor.crop_regions, image_bytes, session.regions
        )

        batches = chunk_items(processed, self.concurrency_limit)
        for index, batch in enumerate(batches, start=1):
            logger.info(
                f"Session {session_id}: batch {index}/{len(batches)} "
                f"({len(batch)} regions)"
            )
            results = await asyncio.gather(
                *(self._process_region(session_id, region) for region in batch)
            )
            for result in results:
                self.session_store.append_result(session_id, result)

        self.session_store.set_status(session_id, SessionStatus.COMPLETED)

    async def _process_region(self, session_id: str, region: ProcessedRegion) -> OCRResult:
        """Enhance and OCR one region; errors are captured into the result."""
        start = time.monotonic()
        # Set when the deadline wait ends; an abandoned retry loop stops there
        settled = asyncio.Event()
        try:
            outcome = await run_in_threadpool(self.image_processor.optimize_for_ocr, region.data)
            if not outcome.enhanced:
                logger.warning(f"Enhancement skipped for region {region.region_id}: {outcome.error}")

            request = VisionRequest(image=outcome.data, prompt=self.prompt, mime_type='image/png')
            try:
                text = await with_timeout(
                    retry_with_backoff(
                        lambda: self.vision_service.extract_text(request),
                        self.retry_config,
                        on_retry=partial(self._on_retry, session_id, region.region_id, settled),
                        should_continue=lambda: not settled.is_set()
                    ),
                    self.timeout_ms,
                    'OCR processing timed out'
                )
            finally:
                settled.set()

            return OCRResult(
                region_id=region.region_id,
                text=text,
                processing_time=self._elapsed_ms(start)
            )
        except Exception as e:
            code = getattr(e, 'code', None)
            error = OCRError(
                code=code if isinstance(code, str) and code else 'PROCESSING_ERROR',
                message=getattr(e, 'message', None) or str(e) or 'Failed to process region',
                retryable=bool(getattr(e, 'retryable', False))
            )
            logger.warning(f"Region {region.region_id} failed: [{error.code}] {error.message}")
            return OCRResult(
                region_id=region.region_id,
                text="",
                processing_time=self._elapsed_ms(start),
                error=error
            )

    def _on_retry(
        self,
        session_id: str,
        region_id: str,
        settled: asyncio.Event,
        attempt: int,
        error: Exception
    ) -> None:
        if settled.is_set():
            return
        message = getattr(error, 'message', None) or str(error)
        logger.info(f"Retry attempt {attempt} for region {region_id}: {message}")
        self.session_store.annotate_retry(session_id, region_id, f"Retry attempt {attempt}: {message}")

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.monotonic() - start) * 1000)
