"""
Vision Service - Text extraction through an OpenAI-compatible vision model.

The default backend is Gemini's OpenAI-compatible endpoint. Failures are
normalized into VisionServiceError with a code and a retryable flag; the
retry policy itself lives in utils.retry_utils.
"""
import logging
from typing import Optional

import openai
from openai import AsyncOpenAI

from config.settings import Settings
from core.constants import DEFAULT_OCR_PARAMS, HTTP_STATUS_MARKERS, OCR_PROMPTS
from core.errors import VisionServiceError, matches_retryable_marker
from core.models import VisionRequest
from utils.image_utils import to_data_url

logger = logging.getLogger(__name__)


class VisionService:
    """Service for OCR calls to the vision backend."""

    def __init__(
        self,
        client,
        model: str = "gemini-2.5-flash",
        max_tokens: int = DEFAULT_OCR_PARAMS['max_tokens'],
        temperature: float = DEFAULT_OCR_PARAMS['temperature']
    ):
        """
        Initialize vision service.

        Args:
            client: AsyncOpenAI client instance
            model: Vision model name
            max_tokens: Completion token limit
            temperature: Sampling temperature
        """
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def extract_text(self, request: VisionRequest) -> str:
        """
        Extract the text shown in an image.

        Args:
            request: Image bytes and optional prompt

        Returns:
            Extracted text, stripped

        Raises:
            VisionServiceError: On any backend or transport failure
        """
        prompt = request.prompt or OCR_PROMPTS['transcribe']

        try:
            response = await self._call_model(
                prompt=prompt,
                image_url=to_data_url(request.image, request.mime_type)
            )
        except Exception as e:
            error = self.classify_error(e)
            logger.warning(f"Vision backend error [{error.code}, retryable={error.retryable}]: {error.message}")
            raise error from e

        if not response.choices:
            raise VisionServiceError("Vision backend returned no choices")

        text = response.choices[0].message.content or ""
        return text.strip()

    async def check_health(self) -> bool:
        """
        Check if the vision backend is reachable.

        Returns:
            True if a minimal completion succeeds
        """
        try:
            await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": "Hello"}],
                max_tokens=1
            )
            return True
        except Exception as e:
            logger.error(f"Vision health check failed: {e}")
            return False

    async def _call_model(self, prompt: str, image_url: str):
        """Send one chat completion with the prompt and the image."""
        return await self.client.chat.completions.create(
            model=self.model,
            messages=[{
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": image_url}}
                ]
            }],
            max_tokens=self.max_tokens,
            temperature=self.temperature
        )

    @staticmethod
    def classify_error(error: Exception) -> VisionServiceError:
        """
        Normalize a backend failure into a VisionServiceError.

        The code is the error's own string code when it has one, else a status
        marker derived from the HTTP status or transport failure, else
        GEMINI_ERROR. Retryability uses the shared marker rule.

        Args:
            error: Exception raised by the client

        Returns:
            VisionServiceError ready to raise
        """
        if isinstance(error, VisionServiceError):
            return error

        code: Optional[str] = getattr(error, 'code', None)
        if not isinstance(code, str) or not code:
            code = None

        if code is None:
            if isinstance(error, openai.APITimeoutError):
                code = 'ETIMEDOUT'
            elif isinstance(error, openai.APIConnectionError):
                code = 'ECONNRESET'
            elif isinstance(error, openai.APIStatusError):
                code = HTTP_STATUS_MARKERS.get(error.status_code)

        message = getattr(error, 'message', None) or str(error) or 'Failed to process image with Gemini'
        code = code or 'GEMINI_ERROR'

        return VisionServiceError(
            message,
            code=code,
            retryable=matches_retryable_marker(code, message)
        )


def create_vision_service(settings: Settings) -> VisionService:
    """
    Build a VisionService from settings.

    The client's built-in retries are disabled; retry_with_backoff owns
    the retry policy.
    """
    client = AsyncOpenAI(
        api_key=settings.gemini_api_key or "unset",
        base_url=settings.gemini_base_url,
        timeout=settings.api_timeout / 1000,
        max_retries=0
    )
    return VisionService(client=client, model=settings.gemini_model)
