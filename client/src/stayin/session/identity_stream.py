"""Identity-change stream.

Turns the credential service's callback subscription into a cancellable
async iterator of discrete events, consumed by a single coordinating task.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from stayin.models.identity import Identity
from stayin.services.credentials import CredentialService, Unsubscribe

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityEvent:
    """One emission of the identity-change stream."""

    seq: int
    identity: Identity | None


_CLOSED = object()


class IdentityStream:
    """Async iterator over identity changes for the lifetime of the process."""

    def __init__(self, credentials: CredentialService) -> None:
        self._credentials = credentials
        self._queue: asyncio.Queue[IdentityEvent | object] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._unsubscribe: Unsubscribe | None = None
        self._seq = 0
        self._closed = False

    @property
    def seq(self) -> int:
        """Sequence number of the most recently pushed event."""
        return self._seq

    @property
    def is_open(self) -> bool:
        return self._unsubscribe is not None and not self._closed

    async def open(self) -> None:
        """Subscribe to the credential service. Idempotent."""
        if self._unsubscribe is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._unsubscribe = await self._credentials.subscribe(self._push)
        logger.debug("Identity stream open")

    def _push(self, identity: Identity | None) -> None:
        if self._closed or self._loop is None:
            return
        self._seq += 1
        event = IdentityEvent(seq=self._seq, identity=identity)

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            self._queue.put_nowait(event)
        else:
            # Provider callback fired off the event loop thread
            self._loop.call_soon_threadsafe(self._queue.put_nowait, event)

    def close(self) -> None:
        """Unsubscribe and end iteration. Idempotent."""
        if self._closed:
            return
        self._closed = True
        if self._unsubscribe is not None:
            try:
                self._unsubscribe()
            except Exception as e:
                logger.warning(f"Identity unsubscribe failed: {e}")
        self._queue.put_nowait(_CLOSED)
        logger.debug("Identity stream closed")

    def __aiter__(self) -> IdentityStream:
        return self

    async def __anext__(self) -> IdentityEvent:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item  # type: ignore[return-value]
