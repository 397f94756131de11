"""
Status Service - Session creation and progress reporting.

create_session() registers a session and hands processing to the task
supervisor without waiting for it; get_status() returns the snapshot a
polling client sees.
"""
import logging
from typing import Dict, Sequence

from core.errors import ConfigError, InvalidRequestError
from core.models import Region, SessionStatus
from data.session_store import SessionStore

from .ocr_orchestrator import OCROrchestrator
from .task_supervisor import TaskSupervisor

logger = logging.getLogger(__name__)


class StatusService:
    """Entry points of the session polling protocol."""

    def __init__(
        self,
        session_store: SessionStore,
        orchestrator: OCROrchestrator,
        supervisor: TaskSupervisor,
        vision_configured: bool = True
    ):
        self.session_store = session_store
        self.orchestrator = orchestrator
        self.supervisor = supervisor
        self.vision_configured = vision_configured

    def create_session(self, image_id: str, regions: Sequence[Region]) -> str:
        """
        Create a session and start processing it in the background.

        Args:
            image_id: Uploaded image id
            regions: Regions to extract text from

        Returns:
            The new session id

        Raises:
            InvalidRequestError: Missing image id, no regions, duplicate region ids
            ConfigError: No vision backend credential configured
        """
        if not image_id or not regions:
            raise InvalidRequestError('Image ID and regions are required')

        region_ids = [region.id for region in regions]
        if len(set(region_ids)) != len(region_ids):
            raise InvalidRequestError('Region ids must be unique')

        if not self.vision_configured:
            raise ConfigError('Gemini API key not configured')

        session = self.session_store.new_session(image_id, regions)
        self.supervisor.submit(session.id, lambda: self.orchestrator.process_session(session.id))
        return session.id

    def get_status(self, session_id: str) -> Dict:
        """
        Snapshot of a session's progress and results.

        Raises:
            SessionNotFoundError: Unknown or swept session
        """
        session = self.session_store.require(session_id)
        current, total = session.progress

        return {
            'sessionId': session.id,
            'results': [result.to_dict() for result in session.results],
            'processingTime': session.processing_time_ms(),
            'success': session.status == SessionStatus.COMPLETED,
            'status': session.status.value,
            'progress': {
                'current': current,
                'total': total,
            },
        }
