"""Credential service backed by Supabase Auth.

Provider failures are returned as AuthResult values; nothing raised by the
identity provider crosses this boundary.
"""

import logging
from typing import Any, Callable, Protocol

from supabase import AsyncClient

from stayin.models.identity import AuthResult, Identity, SignUpData
from stayin.services.profile_store import ProfileStore

logger = logging.getLogger(__name__)

IdentityListener = Callable[[Identity | None], None]
Unsubscribe = Callable[[], None]


class CredentialService(Protocol):
    """Remote identity provider contract."""

    async def sign_in(self, email: str, password: str) -> AuthResult: ...

    async def sign_up(self, data: SignUpData) -> AuthResult: ...

    async def sign_out(self) -> AuthResult: ...

    async def reset_password(self, email: str) -> AuthResult: ...

    async def subscribe(self, on_change: IdentityListener) -> Unsubscribe: ...


def identity_from_user(user: Any) -> Identity:
    """Build an Identity from a Supabase user object."""
    metadata = getattr(user, "user_metadata", None) or {}
    return Identity(
        id=str(user.id),
        email=getattr(user, "email", None),
        display_name=metadata.get("full_name") or metadata.get("name"),
    )


def identity_from_session(session: Any) -> Identity | None:
    if session is None or getattr(session, "user", None) is None:
        return None
    return identity_from_user(session.user)


class SupabaseCredentialService:
    """Supabase Auth implementation of the credential service contract."""

    def __init__(self, client: AsyncClient, profiles: ProfileStore) -> None:
        self.client = client
        self.profiles = profiles

    async def sign_in(self, email: str, password: str) -> AuthResult:
        """Sign in with email and password.

        A missing profile document is reported as a failed sign-in and the
        provider session is ended, so the identity stream does not keep a
        user who has no profile.
        """
        try:
            response = await self.client.auth.sign_in_with_password({
                "email": email.strip().lower(),
                "password": password,
            })
        except Exception as e:
            logger.warning(f"Sign in failed for {email}: {e}")
            return AuthResult.fail(str(e) or "Failed to sign in")

        if response.user is None:
            return AuthResult.fail("Failed to sign in")

        identity = identity_from_user(response.user)
        try:
            profile = await self.profiles.get(identity.id)
        except Exception as e:
            logger.error(f"Profile lookup failed after sign in for {identity.id}: {e}")
            await self._end_provider_session()
            return AuthResult.fail("User data not found", identity)

        if profile is None:
            logger.warning(f"Signed in identity {identity.id} has no profile")
            await self._end_provider_session()
            return AuthResult.fail("User data not found", identity)

        logger.info(f"Signed in {identity.id} as {profile.role}")
        return AuthResult.ok(identity)

    async def _end_provider_session(self) -> None:
        try:
            await self.client.auth.sign_out()
        except Exception as e:
            logger.warning(f"Could not end provider session: {e}")

    async def sign_up(self, data: SignUpData) -> AuthResult:
        """Create an identity and its profile document under the same id.

        If the identity is created but the profile write fails, the result
        is a failure carrying the created identity. No retry is attempted.
        """
        try:
            response = await self.client.auth.sign_up({
                "email": data.email.strip().lower(),
                "password": data.password,
                "options": {
                    "data": {
                        "full_name": data.full_name.strip(),
                        "role": data.role.value,
                    },
                },
            })
        except Exception as e:
            logger.warning(f"Sign up failed for {data.email}: {e}")
            return AuthResult.fail(str(e) or "Failed to create account")

        if response.user is None:
            return AuthResult.fail("Sign up failed: no user created")

        identity = identity_from_user(response.user)
        try:
            await self.profiles.set(identity.id, data.profile_fields())
        except Exception as e:
            logger.warning(
                f"Identity {identity.id} created but profile write failed: {e}"
            )
            return AuthResult.fail("Account created but profile could not be saved", identity)

        logger.info(f"Signed up {identity.id} as {data.role.value}")
        return AuthResult.ok(identity)

    async def sign_out(self) -> AuthResult:
        try:
            await self.client.auth.sign_out()
        except Exception as e:
            logger.error(f"Sign out error: {e}")
            return AuthResult.fail(str(e) or "Failed to sign out")
        return AuthResult.ok()

    async def reset_password(self, email: str) -> AuthResult:
        try:
            await self.client.auth.reset_password_for_email(email.strip().lower())
        except Exception as e:
            logger.warning(f"Password reset error for {email}: {e}")
            return AuthResult.fail(str(e) or "Failed to send reset email")
        return AuthResult.ok()

    async def subscribe(self, on_change: IdentityListener) -> Unsubscribe:
        """Listen for identity changes.

        The current identity (restored from the provider's persisted session,
        or None) is delivered once right after registration.

        Args:
            on_change: Called with the new identity, or None when signed out

        Returns:
            A callable that removes the listener
        """

        def _on_auth_event(event: Any, session: Any) -> None:
            logger.debug(f"Auth event: {event}")
            on_change(identity_from_session(session))

        subscription = self.client.auth.on_auth_state_change(_on_auth_event)

        try:
            session = await self.client.auth.get_session()
        except Exception as e:
            logger.warning(f"Could not restore persisted session: {e}")
            session = None
        on_change(identity_from_session(session))

        return subscription.unsubscribe
