"""Role router - picks the single top-level route tree a session may see."""

import logging
from typing import Callable

from stayin.models.navigation import RouteTree
from stayin.models.session import SessionSnapshot
from stayin.navigation.navigator import Navigator
from stayin.session.readiness import ReadinessAggregator
from stayin.session.state_machine import SessionStateMachine

logger = logging.getLogger(__name__)


def route_for(snapshot: SessionSnapshot) -> RouteTree | None:
    """Allowed destination for a snapshot.

    Returns:
        None while loading (no decision), AUTH when there is no identity or
        no profile, otherwise the tree for the profile's role (unknown roles
        map to the tenant tree)
    """
    if snapshot.loading:
        return None
    if snapshot.identity is None or snapshot.profile is None:
        return RouteTree.AUTH
    return RouteTree.for_role(snapshot.profile.effective_role)


class RoleRouter:
    """Keeps the navigator inside the tree `route_for` allows.

    Re-evaluated on every snapshot change and when the readiness gate opens.
    Redirects are idempotent: being anywhere in the destination tree is a no-op.
    """

    def __init__(
        self,
        session: SessionStateMachine,
        navigator: Navigator,
        readiness: ReadinessAggregator | None = None,
    ) -> None:
        self._session = session
        self._navigator = navigator
        self._readiness = readiness
        self._unsubscribe: Callable[[], None] | None = None
        self._cancel_ready: Callable[[], None] | None = None

    def destination(self) -> RouteTree | None:
        if self._readiness is not None and not self._readiness.ready:
            return None
        return route_for(self._session.snapshot)

    def evaluate(self) -> str | None:
        """Redirect if the current route is outside the allowed tree.

        Returns:
            The route redirected to, or None if nothing changed
        """
        tree = self.destination()
        if tree is None:
            return None

        current = self._navigator.current
        if tree.contains(current):
            logger.debug(f"Already in {tree.value} tree at {current}")
            return None

        self._navigator.replace(tree.entry, source="router")
        return tree.entry

    def start(self) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._session.subscribe(lambda _snapshot: self.evaluate())
        if self._readiness is not None:
            self._cancel_ready = self._readiness.on_ready(lambda _gate: self.evaluate())
        self.evaluate()

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._cancel_ready is not None:
            self._cancel_ready()
            self._cancel_ready = None
