"""In-memory notice board for non-blocking user messages."""

from __future__ import annotations

import asyncio
import logging

from stayin.models.notice import Notice, NoticeLevel

logger = logging.getLogger(__name__)


class NoticeBoard:
    """Broadcasts notices to screens.

    Late subscribers receive the full notice history before live notices.
    """

    def __init__(self, max_queue: int = 100) -> None:
        self._history: list[Notice] = []
        self._subscribers: list[asyncio.Queue[Notice]] = []
        self._max_queue = max_queue

    @property
    def history(self) -> list[Notice]:
        return list(self._history)

    def post(self, notice: Notice) -> None:
        """Record a notice and push it to all subscriber queues (non-blocking)."""
        self._history.append(notice)
        logger.info(f"Notice [{notice.level.value}] {notice.source}: {notice.message}")

        for queue in self._subscribers:
            try:
                queue.put_nowait(notice)
            except asyncio.QueueFull:
                pass  # Drop notice if subscriber is too slow

    def warn(self, source: str, message: str) -> Notice:
        notice = Notice(level=NoticeLevel.WARNING, source=source, message=message)
        self.post(notice)
        return notice

    def subscribe(self) -> asyncio.Queue[Notice]:
        """Returns a queue pre-populated with existing notice history."""
        queue: asyncio.Queue[Notice] = asyncio.Queue(maxsize=self._max_queue)

        for notice in self._history:
            try:
                queue.put_nowait(notice)
            except asyncio.QueueFull:
                break

        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[Notice]) -> None:
        """Remove a subscriber queue. Idempotent."""
        try:
            self._subscribers.remove(queue)
        except ValueError:
            pass
