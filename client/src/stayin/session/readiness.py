"""Readiness aggregator - a join over independent startup tasks.

The splash surface is dismissed exactly once, when every task has settled.
A failed task still counts as settled so the user is never stuck behind
the splash; the failure is reported as a non-blocking notice instead.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Protocol

from stayin.exceptions import ReadinessTaskError
from stayin.models.readiness import ReadinessGate, ReadinessTask
from stayin.services.notices import NoticeBoard

logger = logging.getLogger(__name__)

ReadyListener = Callable[[ReadinessGate], None]

FAILURE_MESSAGES: dict[ReadinessTask, str] = {
    ReadinessTask.SESSION: "We couldn't restore your session. Please sign in again.",
    ReadinessTask.ASSETS: "Some images and fonts failed to load. The app will keep working.",
    ReadinessTask.LOCAL_STORE: "Offline storage is unavailable. Some data may load slowly.",
}


class SplashScreen(Protocol):
    """Blocking loading surface shown until the app is ready."""

    def hide(self) -> None: ...


class HeadlessSplash:
    """Splash stand-in for headless runs; records when it was hidden."""

    def __init__(self) -> None:
        self.hidden = False
        self.hide_count = 0

    def hide(self) -> None:
        self.hide_count += 1
        self.hidden = True
        logger.info("Splash dismissed")


class ReadinessAggregator:
    """Folds task completions into one monotonic readiness gate."""

    def __init__(
        self,
        splash: SplashScreen | None = None,
        notices: NoticeBoard | None = None,
    ) -> None:
        self._splash = splash
        self._notices = notices
        self._gate = ReadinessGate()
        self._fired = False
        self._ready = asyncio.Event()
        self._failures: dict[ReadinessTask, ReadinessTaskError] = {}
        self._listeners: list[ReadyListener] = []
        self._tasks: list[asyncio.Task] = []

    @property
    def gate(self) -> ReadinessGate:
        return self._gate

    @property
    def ready(self) -> bool:
        return self._gate.ready

    @property
    def failures(self) -> dict[ReadinessTask, ReadinessTaskError]:
        return dict(self._failures)

    def on_ready(self, listener: ReadyListener) -> Callable[[], None]:
        """Call listener once when the gate opens (immediately if already open).

        Returns:
            A callable that removes the listener if it has not run yet
        """
        if self._fired:
            listener(self._gate)
        else:
            self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    async def wait_ready(self) -> ReadinessGate:
        await self._ready.wait()
        return self._gate

    def settle(self, task: ReadinessTask, error: Exception | None = None) -> None:
        """Mark a task settled. Repeated settles of the same task are ignored.

        Args:
            task: The startup task that finished
            error: The failure, if the task did not succeed
        """
        if self._gate.is_settled(task):
            logger.debug(f"Readiness task {task.value} already settled")
            return

        if error is not None:
            failure = error if isinstance(error, ReadinessTaskError) else ReadinessTaskError(task.value, error)
            self._failures[task] = failure
            logger.error(str(failure))
            if self._notices is not None:
                self._notices.warn(task.value, FAILURE_MESSAGES[task])

        self._gate = self._gate.settle(task)
        logger.info(
            f"Readiness task {task.value} settled"
            + (f" ({len(self._gate.pending)} pending)" if not self._gate.ready else "")
        )

        if self._gate.ready and not self._fired:
            self._fire()

    def _fire(self) -> None:
        self._fired = True
        self._ready.set()
        logger.info("All startup tasks settled")

        if self._splash is not None:
            try:
                self._splash.hide()
            except Exception:
                logger.exception("Splash dismissal failed")

        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            try:
                listener(self._gate)
            except Exception:
                logger.exception("Readiness listener failed")

    def track(self, task: ReadinessTask, work: Awaitable[object]) -> asyncio.Task:
        """Run a startup task and settle it however it ends.

        Args:
            task: Which gate field the work settles
            work: The awaitable doing the work

        Returns:
            The asyncio.Task running the work
        """

        async def _run() -> None:
            try:
                await work
            except Exception as e:
                self.settle(task, e)
                return
            self.settle(task)

        handle = asyncio.create_task(_run(), name=f"readiness-{task.value}")
        self._tasks.append(handle)
        return handle

    async def cancel(self) -> None:
        """Cancel startup tasks still running (used at shutdown)."""
        pending = [t for t in self._tasks if not t.done()]
        for handle in pending:
            handle.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()
