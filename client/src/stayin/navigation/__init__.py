"""Role-gated navigation: router, per-root guards, navigator."""

from stayin.navigation.guards import RoleGuard, role_guards
from stayin.navigation.navigator import Navigator, StackNavigator
from stayin.navigation.router import RoleRouter, route_for

__all__ = [
    "Navigator",
    "RoleGuard",
    "RoleRouter",
    "StackNavigator",
    "role_guards",
    "route_for",
]
