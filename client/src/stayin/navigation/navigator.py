"""Navigation surface used by the router and guards."""

import logging
from typing import Callable, Protocol

from stayin.models.navigation import RedirectRecord

logger = logging.getLogger(__name__)

EntryHook = Callable[[str], None]

# Redirect chains longer than this mean two components disagree
MAX_REDIRECT_DEPTH = 8


class Navigator(Protocol):
    """What the router and guards need from the host navigation stack."""

    @property
    def current(self) -> str | None: ...

    def replace(self, path: str, *, source: str = "app") -> None: ...


class StackNavigator:
    """In-process navigation stack with entry hooks.

    Entry hooks run whenever a route becomes current (push, replace, back),
    which is how per-root guards see deep links and back-navigation.
    """

    def __init__(self, initial: str | None = None) -> None:
        self._stack: list[str] = [initial] if initial else []
        self._hooks: list[EntryHook] = []
        self._depth = 0
        self.redirects: list[RedirectRecord] = []

    @property
    def current(self) -> str | None:
        return self._stack[-1] if self._stack else None

    @property
    def stack(self) -> list[str]:
        return list(self._stack)

    def add_entry_hook(self, hook: EntryHook) -> Callable[[], None]:
        """Register a hook run on every route entry.

        Returns:
            A callable that removes the hook
        """
        self._hooks.append(hook)

        def _remove() -> None:
            if hook in self._hooks:
                self._hooks.remove(hook)

        return _remove

    def push(self, path: str) -> None:
        """Open a route on top of the stack (deep link or in-app navigation)."""
        self._stack.append(path)
        logger.debug(f"Push {path}")
        self._entered(path)

    def replace(self, path: str, *, source: str = "app") -> None:
        """Swap the current route without growing the stack."""
        from_path = self.current
        if self._stack:
            self._stack[-1] = path
        else:
            self._stack.append(path)
        self.redirects.append(RedirectRecord(source=source, from_path=from_path, to_path=path))
        logger.info(f"Redirect by {source}: {from_path} -> {path}")
        self._entered(path)

    def back(self) -> str | None:
        """Pop the current route; the revealed route is entered again."""
        if len(self._stack) <= 1:
            return self.current
        self._stack.pop()
        revealed = self._stack[-1]
        logger.debug(f"Back to {revealed}")
        self._entered(revealed)
        return revealed

    def _entered(self, path: str) -> None:
        self._depth += 1
        try:
            if self._depth > MAX_REDIRECT_DEPTH:
                raise RuntimeError(f"Redirect loop detected entering {path}")
            for hook in list(self._hooks):
                hook(path)
                if self.current != path:
                    # A hook redirected; the new route ran its own hooks
                    break
        finally:
            self._depth -= 1
