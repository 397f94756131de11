"""
Task Supervisor - Owns background OCR tasks.

Request handlers hand work over with submit() and return immediately. The
supervisor keeps a reference to every task, turns any escaping exception
into a failed session, and drains outstanding work on shutdown.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict

from data.session_store import SessionStore

logger = logging.getLogger(__name__)


class TaskSupervisor:
    """Tracks one background task per session."""

    def __init__(self, session_store: SessionStore):
        self.session_store = session_store
        self._tasks: Dict[str, asyncio.Task] = {}

    @property
    def active_count(self) -> int:
        return len(self._tasks)

    def submit(self, session_id: str, work: Callable[[], Awaitable[None]]) -> asyncio.Task:
        """
        Start background work for a session.

        Must be called from inside the running event loop.

        Args:
            session_id: Session the work belongs to
            work: Zero-argument callable returning the coroutine to run

        Returns:
            The created task
        """
        if session_id in self._tasks:
            raise RuntimeError(f"Session {session_id} already has a running task")

        task = asyncio.get_running_loop().create_task(
            self._supervise(session_id, work),
            name=f"ocr-session-{session_id}"
        )
        self._tasks[session_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(session_id, None))
        return task

    async def _supervise(self, session_id: str, work: Callable[[], Awaitable[None]]) -> None:
        try:
            await work()
        except asyncio.CancelledError:
            logger.warning(f"OCR task for session {session_id} cancelled")
            self.session_store.mark_failed(session_id)
            raise
        except Exception as e:
            logger.exception(f"Async OCR processing failed for session {session_id}: {e}")
            self.session_store.mark_failed(session_id)

    async def wait_all(self) -> None:
        """Wait for every submitted task to settle."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel outstanding work and wait for it to settle."""
        tasks = list(self._tasks.values())
        if not tasks:
            return

        logger.info(f"Cancelling {len(tasks)} OCR tasks")
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
