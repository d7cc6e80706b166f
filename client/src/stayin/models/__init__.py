"""Pydantic models for StayIN - the contracts."""

from stayin.models.identity import (
    SELF_SERVICE_ROLES,
    AuthResult,
    Identity,
    Profile,
    SignUpData,
    UserRole,
)
from stayin.models.navigation import GuardDecision, RedirectRecord, RouteTree
from stayin.models.notice import Notice, NoticeLevel
from stayin.models.readiness import ReadinessGate, ReadinessTask
from stayin.models.session import SessionSnapshot, SessionState

__all__ = [
    "AuthResult",
    "GuardDecision",
    "Identity",
    "Notice",
    "NoticeLevel",
    "Profile",
    "ReadinessGate",
    "ReadinessTask",
    "RedirectRecord",
    "RouteTree",
    "SELF_SERVICE_ROLES",
    "SessionSnapshot",
    "SessionState",
    "SignUpData",
    "UserRole",
]
