"""Per-root guards for the role-scoped route trees.

Each guard re-validates the session independently of the role router, so a
deep link, back-navigation or stale cached route cannot land a user in a
tree for another role. For any snapshot a guard allows entry exactly when
`route_for` picks its tree.
"""

import logging
from typing import Callable

from stayin.models.identity import UserRole
from stayin.models.navigation import GuardDecision, RouteTree
from stayin.models.session import SessionSnapshot
from stayin.navigation.navigator import Navigator, StackNavigator
from stayin.session.state_machine import SessionStateMachine

logger = logging.getLogger(__name__)


class RoleGuard:
    """Gatekeeper for one role's route tree."""

    def __init__(self, role: UserRole) -> None:
        self.role = role
        self.tree = RouteTree.for_role(role)
        self._detach: list[Callable[[], None]] = []

    def check(self, snapshot: SessionSnapshot) -> GuardDecision:
        if snapshot.loading:
            return GuardDecision.PENDING
        if snapshot.identity is None or snapshot.profile is None:
            return GuardDecision.REDIRECT
        if snapshot.profile.effective_role != self.role:
            return GuardDecision.REDIRECT
        return GuardDecision.ALLOW

    def enter(self, navigator: Navigator, snapshot: SessionSnapshot) -> GuardDecision:
        """Run the check for a visitor of this tree, redirecting if refused."""
        decision = self.check(snapshot)
        if decision == GuardDecision.REDIRECT:
            logger.info(
                f"{self.tree.value} guard refused {navigator.current} "
                f"(role={snapshot.role.value if snapshot.role else None})"
            )
            navigator.replace(RouteTree.AUTH.entry, source=f"guard:{self.tree.value}")
        return decision

    def attach(self, navigator: StackNavigator, session: SessionStateMachine) -> None:
        """Check on every entry into this tree and on session changes while inside it."""

        def _on_entry(path: str) -> None:
            if self.tree.contains(path):
                self.enter(navigator, session.snapshot)

        def _on_snapshot(snapshot: SessionSnapshot) -> None:
            if self.tree.contains(navigator.current):
                self.enter(navigator, snapshot)

        self._detach.append(navigator.add_entry_hook(_on_entry))
        self._detach.append(session.subscribe(_on_snapshot))

    def detach(self) -> None:
        for remove in self._detach:
            remove()
        self._detach.clear()


def role_guards() -> dict[UserRole, RoleGuard]:
    """One guard per role-scoped tree."""
    return {role: RoleGuard(role) for role in UserRole}
