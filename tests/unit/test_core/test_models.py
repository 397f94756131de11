"""
Unit tests for core.models module.
"""
from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta

import pytest

from core.models import (
    SESSION_TRANSITIONS,
    ImageRecord,
    OCRError,
    OCRResult,
    Region,
    RetryConfig,
    Session,
    SessionStatus
)


class TestRegion:
    """Tests for Region dataclass."""

    def test_initialization(self):
        region = Region(id='r1', x=1, y=2, width=30, height=40, color='#00ff00')

        assert region.id == 'r1'
        assert region.width == 30
        assert region.label is None

    def test_immutable(self):
        region = Region(id='r1', x=0, y=0, width=10, height=10)

        with pytest.raises(FrozenInstanceError):
            region.x = 5

    def test_to_dict_omits_missing_label(self):
        data = Region(id='r1', x=0, y=0, width=10, height=10).to_dict()

        assert 'label' not in data
        assert data['id'] == 'r1'

    def test_to_dict_with_label(self):
        data = Region(id='r1', x=0, y=0, width=10, height=10, label='Total').to_dict()

        assert data['label'] == 'Total'


class TestOCRResult:
    """Tests for OCRResult dataclass."""

    def test_success_payload(self):
        result = OCRResult(region_id='r1', text='hello', processing_time=12)

        assert result.succeeded
        assert result.to_dict() == {'regionId': 'r1', 'text': 'hello', 'processingTime': 12}

    def test_error_payload(self):
        result = OCRResult(
            region_id='r2',
            error=OCRError(code='TIMEOUT', message='OCR processing timed out', retryable=True)
        )

        assert not result.succeeded
        assert result.to_dict()['error'] == {
            'code': 'TIMEOUT',
            'message': 'OCR processing timed out',
            'retryable': True,
        }
        assert result.to_dict()['text'] == ''


class TestSessionStatus:
    """Tests for SessionStatus enum and transitions."""

    def test_terminal_states(self):
        assert SessionStatus.COMPLETED.is_terminal
        assert SessionStatus.FAILED.is_terminal
        assert not SessionStatus.PROCESSING.is_terminal
        assert not SessionStatus.PENDING.is_terminal

    def test_transitions_only_forward(self):
        assert SESSION_TRANSITIONS[SessionStatus.PROCESSING] == {SessionStatus.COMPLETED, SessionStatus.FAILED}
        assert SESSION_TRANSITIONS[SessionStatus.COMPLETED] == set()
        assert SessionStatus.PENDING not in SESSION_TRANSITIONS[SessionStatus.PROCESSING]

    def test_string_values(self):
        assert SessionStatus.PROCESSING.value == 'processing'
        assert SessionStatus('failed') is SessionStatus.FAILED


class TestSession:
    """Tests for Session dataclass."""

    def _session(self, **kwargs):
        regions = (Region(id='a', x=0, y=0, width=10, height=10),
                   Region(id='b', x=0, y=0, width=10, height=10))
        return Session(id='s1', image_id='img', regions=regions, **kwargs)

    def test_default_values(self):
        session = self._session()

        assert session.status == SessionStatus.PENDING
        assert session.results == []
        assert session.completed_at is None
        assert isinstance(session.created_at, datetime)

    def test_progress(self):
        session = self._session()
        session.results.append(OCRResult(region_id='a', text='x'))

        assert session.progress == (1, 2)

    def test_processing_time_frozen_when_completed(self):
        created = datetime(2024, 1, 1, 12, 0, 0)
        session = self._session(created_at=created, completed_at=created + timedelta(seconds=2))

        assert session.processing_time_ms() == 2000
        assert session.processing_time_ms(now=created + timedelta(hours=1)) == 2000

    def test_processing_time_running(self):
        created = datetime(2024, 1, 1, 12, 0, 0)
        session = self._session(created_at=created)

        assert session.processing_time_ms(now=created + timedelta(milliseconds=1500)) == 1500

    def test_find_result(self):
        session = self._session()
        result = OCRResult(region_id='b', text='y')
        session.results.append(result)

        assert session.find_result('b') is result
        assert session.find_result('a') is None


class TestRetryConfig:
    """Tests for RetryConfig defaults."""

    def test_defaults(self):
        config = RetryConfig()

        assert config.max_attempts == 3
        assert config.base_delay == 2000
        assert config.max_delay == 10000
        assert config.backoff_multiplier == 2
        assert 'RESOURCE_EXHAUSTED' in config.retryable_errors


class TestImageRecord:
    """Tests for ImageRecord dataclass."""

    def test_to_dict(self):
        record = ImageRecord(
            id='img-1', filename='img-1_a.png', path='/tmp/img-1_a.png',
            url='/uploads/img-1_a.png', width=100, height=80
        )

        assert record.to_dict() == {
            'imageId': 'img-1',
            'imageUrl': '/uploads/img-1_a.png',
            'dimensions': {'width': 100, 'height': 80},
        }
