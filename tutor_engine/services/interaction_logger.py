"""
Fire-and-forget Interaction Logger

Hands interaction log entries to a background task through a bounded
asyncio.Queue so the request path never waits on, or fails because of, log
delivery. Delivery problems only produce warnings.

Usage:
    from tutor_engine.services.interaction_logger import InteractionLogger

    interaction_logger = InteractionLogger(store)
    interaction_logger.log(InteractionLogEntry(user_id=1, event_type="message_sent"))
    await interaction_logger.flush()
"""

import asyncio
from typing import Optional

from tutor_engine.config import settings
from tutor_engine.models.interaction_logs import InteractionLogEntry, InteractionLogStore
from tutor_engine.logging_config import get_logger


logger = get_logger("interaction_logger")


class InteractionLogger:
    """
    Background writer in front of an InteractionLogStore.

    The queue and worker are created lazily on the event loop that first
    logs, and recreated if a later call comes from a different loop.

    Attributes:
        store: Sink that receives the entries
        queue_size: Entries buffered before new ones are dropped
    """

    def __init__(
        self,
        store: Optional[InteractionLogStore] = None,
        queue_size: Optional[int] = None,
    ):
        self.store = store or InteractionLogStore(max_logs_per_user=settings.max_logs_per_user)
        self.queue_size = queue_size or settings.interaction_log_queue_size

        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def log(self, entry: InteractionLogEntry) -> None:
        """
        Enqueue an entry. Never raises.

        Outside a running event loop the entry is written synchronously.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._write(entry)
            return

        try:
            self._ensure_worker(loop)
            self._queue.put_nowait(entry)
        except asyncio.QueueFull:
            logger.warning(
                f"Interaction log queue full, dropping {entry.event_type} event",
                extra={
                    "component": "interaction_logger",
                    "event": "log_dropped",
                    "user_id": entry.user_id,
                },
            )
        except Exception as e:
            logger.warning(
                f"Failed to enqueue interaction log: {e}",
                extra={
                    "component": "interaction_logger",
                    "event": "log_enqueue_failed",
                    "user_id": entry.user_id,
                    "error": str(e),
                },
            )

    async def flush(self) -> None:
        """Wait until every queued entry has been handed to the store."""
        if self._queue is None or self._loop is not asyncio.get_running_loop():
            return
        await self._queue.join()

    async def close(self) -> None:
        """Drain the queue and stop the background worker."""
        await self.flush()
        if self._worker is not None and self._loop is asyncio.get_running_loop():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None
        self._queue = None
        self._loop = None

    def _ensure_worker(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._loop is loop and self._worker is not None and not self._worker.done():
            return
        if self._loop is not loop or self._queue is None:
            self._queue = asyncio.Queue(maxsize=self.queue_size)
        self._loop = loop
        self._worker = loop.create_task(self._drain())

    async def _drain(self) -> None:
        queue = self._queue
        while True:
            entry = await queue.get()
            try:
                self._write(entry)
            finally:
                queue.task_done()

    def _write(self, entry: InteractionLogEntry) -> None:
        try:
            self.store.add_log(entry)
        except Exception as e:
            logger.warning(
                f"Failed to write interaction log: {e}",
                extra={
                    "component": "interaction_logger",
                    "event": "log_write_failed",
                    "user_id": entry.user_id,
                    "error": str(e),
                },
            )
