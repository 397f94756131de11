"""
Unit tests for data.session_store module.
"""
from datetime import datetime, timedelta

import pytest

from core.errors import SessionNotFoundError, SessionStateError
from core.models import OCRError, OCRResult, Session, SessionStatus
from tests.conftest import make_region


@pytest.fixture
def session(session_store):
    return session_store.new_session('img-1', [make_region('a'), make_region('b', x=50)])


class TestCreate:
    """Tests for session creation."""

    def test_new_session_is_processing(self, session_store, session):
        assert session.status == SessionStatus.PROCESSING
        assert session.image_id == 'img-1'
        assert session_store.get(session.id) is session
        assert session.id in session_store

    def test_duplicate_id_rejected(self, session_store, session):
        clone = Session(id=session.id, image_id='x', regions=session.regions)

        with pytest.raises(SessionStateError):
            session_store.create(clone)

    def test_duplicate_region_ids_rejected(self, session_store):
        with pytest.raises(SessionStateError):
            session_store.new_session('img', [make_region('a'), make_region('a')])

    def test_require_unknown(self, session_store):
        with pytest.raises(SessionNotFoundError):
            session_store.require('missing')
        assert session_store.get('missing') is None


class TestAppendResult:
    """Tests for result appends."""

    def test_appends_in_order(self, session_store, session):
        session_store.append_result(session.id, OCRResult(region_id='b', text='2'))
        session_store.append_result(session.id, OCRResult(region_id='a', text='1'))

        assert [r.region_id for r in session.results] == ['b', 'a']
        assert session.progress == (2, 2)

    def test_foreign_region_rejected(self, session_store, session):
        with pytest.raises(SessionStateError):
            session_store.append_result(session.id, OCRResult(region_id='zzz'))

    def test_duplicate_result_rejected(self, session_store, session):
        session_store.append_result(session.id, OCRResult(region_id='a'))

        with pytest.raises(SessionStateError):
            session_store.append_result(session.id, OCRResult(region_id='a'))

    def test_frozen_after_terminal(self, session_store, session):
        session_store.set_status(session.id, SessionStatus.FAILED)

        with pytest.raises(SessionStateError):
            session_store.append_result(session.id, OCRResult(region_id='a'))
        assert session.results == []


class TestSetStatus:
    """Tests for status transitions."""

    def test_complete_sets_completed_at(self, session_store, session):
        session_store.set_status(session.id, SessionStatus.COMPLETED)

        assert session.status == SessionStatus.COMPLETED
        assert session.completed_at is not None

    def test_no_backward_transition(self, session_store, session):
        session_store.set_status(session.id, SessionStatus.COMPLETED)

        with pytest.raises(SessionStateError):
            session_store.set_status(session.id, SessionStatus.PROCESSING)
        with pytest.raises(SessionStateError):
            session_store.set_status(session.id, SessionStatus.FAILED)

    def test_same_status_is_noop(self, session_store, session):
        session_store.set_status(session.id, SessionStatus.PROCESSING)

        assert session.status == SessionStatus.PROCESSING

    def test_mark_failed(self, session_store, session):
        assert session_store.mark_failed(session.id) is True
        assert session.status == SessionStatus.FAILED

    def test_mark_failed_keeps_completed(self, session_store, session):
        session_store.set_status(session.id, SessionStatus.COMPLETED)

        assert session_store.mark_failed(session.id) is False
        assert session.status == SessionStatus.COMPLETED

    def test_mark_failed_unknown(self, session_store):
        assert session_store.mark_failed('missing') is False


class TestAnnotateRetry:
    """Tests for retry notes."""

    def test_updates_errored_result(self, session_store, session):
        session_store.append_result(
            session.id, OCRResult(region_id='a', error=OCRError(code='UNAVAILABLE', message='down'))
        )

        assert session_store.annotate_retry(session.id, 'a', 'Retry attempt 1: down')
        assert session.results[0].error.message == 'Retry attempt 1: down'

    def test_ignores_missing_or_successful_result(self, session_store, session):
        session_store.append_result(session.id, OCRResult(region_id='a', text='ok'))

        assert not session_store.annotate_retry(session.id, 'a', 'Retry attempt 1: x')
        assert not session_store.annotate_retry(session.id, 'b', 'Retry attempt 1: x')
        assert session.results[0].error is None


class TestSweep:
    """Tests for retention sweeping."""

    def test_removes_only_expired(self, session_store):
        now = datetime.now()
        old = session_store.new_session('img', [make_region()])
        old.created_at = now - timedelta(hours=1, seconds=1)
        fresh = session_store.new_session('img', [make_region()])
        fresh.created_at = now - timedelta(seconds=1)

        removed = session_store.sweep(now, timedelta(hours=1))

        assert removed == 1
        assert old.id not in session_store
        assert fresh.id in session_store
        assert len(session_store) == 1

    def test_sweeps_regardless_of_status(self, session_store, session):
        session.created_at = datetime.now() - timedelta(days=1)

        assert session_store.sweep(datetime.now(), timedelta(hours=1)) == 1


def test_stats(session_store, session):
    session_store.new_session('img', [make_region()])
    session_store.set_status(session.id, SessionStatus.COMPLETED)

    stats = session_store.stats()

    assert stats['sessions_count'] == 2
    assert stats['by_status']['completed'] == 1
    assert stats['by_status']['processing'] == 1
