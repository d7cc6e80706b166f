"""Identity and profile models."""

from datetime import datetime, UTC
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class UserRole(str, Enum):
    """Business roles. Each role owns one top-level route tree."""

    TENANT = "tenant"
    LANDLORD = "landlord"
    ADMIN = "admin"


# Roles a user may pick for themselves at sign-up
SELF_SERVICE_ROLES = frozenset({UserRole.TENANT, UserRole.LANDLORD})


class Identity(BaseModel):
    """Who is logged in, as reported by the credential service."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str | None = None
    display_name: str | None = None


class Profile(BaseModel):
    """The durable business record keyed by identity id."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    full_name: str
    phone_number: str | None = None
    role: str = UserRole.TENANT.value
    verified: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    # KYC
    nrc_number: str | None = None
    tpin: str | None = None
    kyc_documents: list[str] = Field(default_factory=list)

    @property
    def effective_role(self) -> UserRole:
        """The role used for routing.

        Unrecognized values fall back to tenant instead of failing.
        """
        try:
            return UserRole(self.role)
        except ValueError:
            return UserRole.TENANT


class SignUpData(BaseModel):
    """Fields collected by the registration form."""

    email: str
    password: str
    full_name: str
    phone_number: str
    role: UserRole = UserRole.TENANT

    def profile_fields(self) -> dict[str, Any]:
        """Profile document fields (never includes the password)."""
        now = datetime.now(UTC)
        return {
            "email": self.email.strip().lower(),
            "full_name": self.full_name.strip(),
            "phone_number": self.phone_number,
            "role": self.role.value,
            "verified": False,
            "kyc_documents": [],
            "created_at": now,
            "updated_at": now,
        }


class AuthResult(BaseModel):
    """Outcome of a credential service call.

    Provider failures are carried here rather than raised.
    """

    success: bool
    identity: Identity | None = None
    error: str | None = None

    @classmethod
    def ok(cls, identity: Identity | None = None) -> "AuthResult":
        return cls(success=True, identity=identity)

    @classmethod
    def fail(cls, error: str, identity: Identity | None = None) -> "AuthResult":
        return cls(success=False, identity=identity, error=error)
