"""Route tree and navigation decision models."""

from enum import Enum

from pydantic import BaseModel

from stayin.models.identity import UserRole


class RouteTree(str, Enum):
    """Top-level navigation subtrees."""

    AUTH = "auth"
    TENANT = "tenant"
    LANDLORD = "landlord"
    ADMIN = "admin"

    @property
    def entry(self) -> str:
        """Entry screen for this tree."""
        return _ENTRY_SCREENS[self]

    @property
    def prefix(self) -> str:
        return f"/({self.value})/"

    def contains(self, path: str | None) -> bool:
        """Whether a route path lives inside this tree."""
        return path is not None and path.startswith(self.prefix)

    @classmethod
    def for_role(cls, role: UserRole) -> "RouteTree":
        return cls(role.value)

    @classmethod
    def of(cls, path: str | None) -> "RouteTree | None":
        """The tree a route path belongs to, if any."""
        for tree in cls:
            if tree.contains(path):
                return tree
        return None


_ENTRY_SCREENS: dict[RouteTree, str] = {
    RouteTree.AUTH: "/(auth)/login",
    RouteTree.TENANT: "/(tenant)/dashboard",
    RouteTree.LANDLORD: "/(landlord)/dashboard",
    RouteTree.ADMIN: "/(admin)/dashboard",
}


class GuardDecision(str, Enum):
    """Outcome of a per-root guard check."""

    PENDING = "pending"  # Session still loading, render nothing
    ALLOW = "allow"
    REDIRECT = "redirect"  # Send to the unauthenticated entry surface


class RedirectRecord(BaseModel):
    """A navigation performed by the router or a guard."""

    source: str  # "router" or "guard:<tree>"
    from_path: str | None
    to_path: str
