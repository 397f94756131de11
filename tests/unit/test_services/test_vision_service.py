"""
Unit tests for services.vision_service module.
"""
import asyncio
from types import SimpleNamespace

import httpx
import openai
import pytest

from core.errors import VisionServiceError
from core.models import VisionRequest
from services.vision_service import VisionService, create_vision_service


def completion(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


class FakeCompletions:
    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


class FakeClient:
    """Mimics the chat.completions surface of AsyncOpenAI."""

    def __init__(self, outcome):
        self.chat = SimpleNamespace(completions=FakeCompletions(outcome))


def status_error(status):
    request = httpx.Request('POST', 'https://example.test/v1/chat/completions')
    response = httpx.Response(status, request=request)
    return openai.APIStatusError(f"status {status}", response=response, body=None)


class TestExtractText:
    """Tests for VisionService.extract_text."""

    def test_returns_stripped_text(self):
        client = FakeClient(completion('  Invoice #42\n'))
        service = VisionService(client, model='gemini-test')

        text = asyncio.run(service.extract_text(VisionRequest(image=b'png-bytes')))

        assert text == 'Invoice #42'

    def test_sends_prompt_and_data_url(self):
        client = FakeClient(completion('x'))
        service = VisionService(client, model='gemini-test', max_tokens=100, temperature=0.0)

        asyncio.run(service.extract_text(VisionRequest(image=b'abc', prompt='Read it')))

        call = client.chat.completions.calls[0]
        assert call['model'] == 'gemini-test'
        assert call['max_tokens'] == 100
        content = call['messages'][0]['content']
        assert content[0] == {'type': 'text', 'text': 'Read it'}
        assert content[1]['image_url']['url'] == 'data:image/png;base64,YWJj'

    def test_empty_content(self):
        service = VisionService(FakeClient(completion(None)))

        assert asyncio.run(service.extract_text(VisionRequest(image=b'x'))) == ''

    def test_no_choices(self):
        service = VisionService(FakeClient(SimpleNamespace(choices=[])))

        with pytest.raises(VisionServiceError):
            asyncio.run(service.extract_text(VisionRequest(image=b'x')))

    def test_backend_error_is_classified(self):
        service = VisionService(FakeClient(status_error(429)))

        with pytest.raises(VisionServiceError) as exc_info:
            asyncio.run(service.extract_text(VisionRequest(image=b'x')))

        assert exc_info.value.code == 'RESOURCE_EXHAUSTED'
        assert exc_info.value.retryable is True


class TestClassifyError:
    """Tests for VisionService.classify_error."""

    @pytest.mark.parametrize('status, code', [
        (429, 'RESOURCE_EXHAUSTED'),
        (500, 'INTERNAL'),
        (503, 'UNAVAILABLE'),
        (504, 'DEADLINE_EXCEEDED'),
    ])
    def test_transient_statuses(self, status, code):
        error = VisionService.classify_error(status_error(status))

        assert error.code == code
        assert error.retryable is True

    def test_client_error_not_retryable(self):
        error = VisionService.classify_error(status_error(400))

        assert error.code == 'GEMINI_ERROR'
        assert error.retryable is False

    def test_timeout(self):
        request = httpx.Request('POST', 'https://example.test')
        error = VisionService.classify_error(openai.APITimeoutError(request=request))

        assert error.code == 'ETIMEDOUT'
        assert error.retryable is True

    def test_connection_error(self):
        request = httpx.Request('POST', 'https://example.test')
        error = VisionService.classify_error(openai.APIConnectionError(request=request))

        assert error.code == 'ECONNRESET'
        assert error.retryable is True

    def test_own_code_wins(self):
        class CodedError(Exception):
            code = 'UNAVAILABLE'

        error = VisionService.classify_error(CodedError('backend down'))

        assert error.code == 'UNAVAILABLE'
        assert error.message == 'backend down'
        assert error.retryable is True

    def test_marker_in_message(self):
        error = VisionService.classify_error(RuntimeError('DEADLINE_EXCEEDED while reading'))

        assert error.code == 'GEMINI_ERROR'
        assert error.retryable is True

    def test_passthrough(self):
        original = VisionServiceError('x', code='TIMEOUT')

        assert VisionService.classify_error(original) is original


class TestHealth:

    def test_healthy(self):
        assert asyncio.run(VisionService(FakeClient(completion('hi'))).check_health())

    def test_unhealthy(self):
        assert not asyncio.run(VisionService(FakeClient(RuntimeError('down'))).check_health())


def test_create_vision_service(test_settings):
    service = create_vision_service(test_settings)

    assert service.model == test_settings.gemini_model
    assert service.client.max_retries == 0
    assert str(service.client.base_url).startswith(test_settings.gemini_base_url.rstrip('/'))
