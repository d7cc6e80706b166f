"""Session snapshot - the merged identity/profile view consumers read."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator

from stayin.models.identity import Identity, Profile, UserRole


class SessionState(str, Enum):
    """Lifecycle state of the session state machine."""

    UNINITIALIZED = "uninitialized"
    RESOLVING = "resolving"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


class SessionSnapshot(BaseModel):
    """Immutable view of (identity, profile, loading).

    Replaced as a whole value; fields are never mutated in place.
    """

    model_config = ConfigDict(frozen=True)

    identity: Identity | None = None
    profile: Profile | None = None
    loading: bool = True

    @model_validator(mode="after")
    def _profile_matches_identity(self) -> "SessionSnapshot":
        if self.profile is not None:
            if self.identity is None:
                raise ValueError("profile present without identity")
            if self.profile.id != self.identity.id:
                raise ValueError(
                    f"profile {self.profile.id} does not belong to identity {self.identity.id}"
                )
        return self

    @classmethod
    def initial(cls) -> "SessionSnapshot":
        return cls(loading=True)

    @classmethod
    def signed_out(cls) -> "SessionSnapshot":
        return cls(identity=None, profile=None, loading=False)

    @property
    def state(self) -> SessionState:
        if self.loading:
            return SessionState.RESOLVING
        if self.identity is not None and self.profile is not None:
            return SessionState.AUTHENTICATED
        return SessionState.UNAUTHENTICATED

    @property
    def role(self) -> UserRole | None:
        """Resolved role, or None when no profile is loaded."""
        if self.identity is None or self.profile is None:
            return None
        return self.profile.effective_role

    @property
    def is_authenticated(self) -> bool:
        return self.state == SessionState.AUTHENTICATED

    @property
    def is_tenant(self) -> bool:
        return self.role == UserRole.TENANT

    @property
    def is_landlord(self) -> bool:
        return self.role == UserRole.LANDLORD

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
