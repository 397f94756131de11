"""
Session storage for OCR sessions.

SessionStore defines the operations the pipeline needs; InMemorySessionStore
keeps sessions in a process-local dict. Sessions are lost on restart.
"""
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Dict, Optional, Sequence

from core.errors import SessionNotFoundError, SessionStateError
from core.models import SESSION_TRANSITIONS, OCRResult, Region, Session, SessionStatus

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """
    Abstract store for OCR sessions.

    The store owns Session objects. Other components hold only session ids
    and change sessions through the mutation methods below.
    """

    def new_session(self, image_id: str, regions: Sequence[Region]) -> Session:
        """Create and register a session in the processing state."""
        session = Session(
            id=str(uuid.uuid4()),
            image_id=image_id,
            regions=tuple(regions),
            status=SessionStatus.PROCESSING
        )
        self.create(session)
        return session

    @abstractmethod
    def create(self, session: Session) -> None:
        """Register a new session."""
        pass

    @abstractmethod
    def get(self, session_id: str) -> Optional[Session]:
        """Return the session or None if unknown or swept."""
        pass

    @abstractmethod
    def append_result(self, session_id: str, result: OCRResult) -> None:
        """Append a region result to a non-terminal session."""
        pass

    @abstractmethod
    def set_status(self, session_id: str, status: SessionStatus) -> None:
        """Move a session forward; terminal states set completed_at."""
        pass

    @abstractmethod
    def annotate_retry(self, session_id: str, region_id: str, message: str) -> bool:
        """Write a retry note into an existing errored result, if present."""
        pass

    @abstractmethod
    def sweep(self, now: datetime, retention: timedelta) -> int:
        """Remove sessions created before now - retention. Returns count removed."""
        pass

    @abstractmethod
    def stats(self) -> dict:
        """Return store statistics."""
        pass

    def require(self, session_id: str) -> Session:
        """Return the session or raise SessionNotFoundError."""
        session = self.get(session_id)
        if session is None:
            raise SessionNotFoundError('Session not found')
        return session

    def mark_failed(self, session_id: str) -> bool:
        """
        Fail a session unless it is already terminal or gone.

        Returns:
            True if the session was moved to failed
        """
        session = self.get(session_id)
        if session is None or session.status.is_terminal:
            return False
        self.set_status(session_id, SessionStatus.FAILED)
        return True


class InMemorySessionStore(SessionStore):
    """Process-local session store backed by a dict."""

    def __init__(self):
        self._sessions: Dict[str, Session] = {}

    def create(self, session: Session) -> None:
        if session.id in self._sessions:
            raise SessionStateError(f"Session {session.id} already exists")

        region_ids = [region.id for region in session.regions]
        if len(set(region_ids)) != len(region_ids):
            raise SessionStateError("Region ids must be unique within a session")

        self._sessions[session.id] = session
        logger.info(
            f"Session created: id={session.id}, image={session.image_id}, "
            f"regions={len(session.regions)}, total in store={len(self._sessions)}"
        )

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def append_result(self, session_id: str, result: OCRResult) -> None:
        session = self.require(session_id)

        if session.status.is_terminal:
            raise SessionStateError(f"Session {session_id} is {session.status.value}; results are frozen")

        if result.region_id not in {region.id for region in session.regions}:
            raise SessionStateError(f"Region {result.region_id} does not belong to session {session_id}")

        if session.find_result(result.region_id) is not None:
            raise SessionStateError(f"Region {result.region_id} already has a result")

        session.results.append(result)

    def set_status(self, session_id: str, status: SessionStatus) -> None:
        session = self.require(session_id)

        if status == session.status:
            return
        if status not in SESSION_TRANSITIONS[session.status]:
            raise SessionStateError(
                f"Illegal transition for session {session_id}: "
                f"{session.status.value} -> {status.value}"
            )

        session.status = status
        if status.is_terminal:
            session.completed_at = datetime.now()

        logger.info(f"Session {session_id} -> {status.value}")

    def annotate_retry(self, session_id: str, region_id: str, message: str) -> bool:
        session = self.get(session_id)
        if session is None or session.status.is_terminal:
            return False

        result = session.find_result(region_id)
        if result is None or result.error is None:
            return False

        result.error.message = message
        return True

    def sweep(self, now: datetime, retention: timedelta) -> int:
        cutoff = now - retention
        expired = [
            session_id for session_id, session in self._sessions.items()
            if session.created_at < cutoff
        ]
        for session_id in expired:
            del self._sessions[session_id]

        if expired:
            logger.info(f"Swept {len(expired)} expired sessions, {len(self._sessions)} remaining")
        return len(expired)

    def stats(self) -> dict:
        counts = {status.value: 0 for status in SessionStatus}
        for session in self._sessions.values():
            counts[session.status.value] += 1

        return {
            'sessions_count': len(self._sessions),
            'by_status': counts,
        }

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions
