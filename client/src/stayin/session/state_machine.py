"""Session state machine.

Owns the (identity, profile, loading) snapshot. A single coordinating task
consumes the identity-change stream; profile fetches run as superseding
tasks and their results are applied only if no newer identity event has
arrived in the meantime. Every change goes through `_replace`, which swaps
the whole snapshot value and notifies listeners.

States:
    UNINITIALIZED -> RESOLVING -> AUTHENTICATED | UNAUTHENTICATED
"""

import asyncio
import contextlib
import logging
from typing import Any, Callable

from pydantic import ValidationError

from stayin.exceptions import NotSignedInError, ProfileFetchError
from stayin.models.identity import AuthResult, Identity, Profile, SignUpData
from stayin.models.session import SessionSnapshot, SessionState
from stayin.services.credentials import CredentialService
from stayin.services.profile_store import ProfileStore
from stayin.session.identity_stream import IdentityEvent, IdentityStream
from stayin.validators import validate_email, validate_sign_up

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[SessionSnapshot], None]

# Profile fields screens may not change through update_profile
PROTECTED_FIELDS = frozenset({"id", "role", "verified", "created_at", "updated_at"})


class SessionStateMachine:
    """The only writer of the session snapshot.

    Consumers read `snapshot`, register listeners with `subscribe`, and act
    through `sign_out`, `refresh` and the credential pass-throughs.
    """

    def __init__(
        self,
        credentials: CredentialService,
        profiles: ProfileStore,
        *,
        fetch_timeout: float = 10.0,
        fetch_retries: int = 3,
        fetch_backoff: float = 0.5,
    ) -> None:
        self._credentials = credentials
        self._profiles = profiles
        self.fetch_timeout = fetch_timeout
        self.fetch_retries = max(1, fetch_retries)
        self.fetch_backoff = fetch_backoff

        self._snapshot = SessionSnapshot.initial()
        self._listeners: list[SnapshotListener] = []
        self._resolved = asyncio.Event()
        self._started = False

        self._stream: IdentityStream | None = None
        self._consumer: asyncio.Task | None = None
        self._fetch_task: asyncio.Task | None = None
        # Bumped whenever the identity changes; stale fetch results carry an old value
        self._generation = 0
        # Identity events pushed at or before this seq predate the last sign_out
        self._signed_out_seq = 0

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    @property
    def state(self) -> SessionState:
        if not self._started:
            return SessionState.UNINITIALIZED
        return self._snapshot.state

    @property
    def resolved(self) -> bool:
        """Whether the first resolution attempt has completed."""
        return self._resolved.is_set()

    async def wait_resolved(self) -> SessionSnapshot:
        """Wait for the first settle (success or profile absent)."""
        await self._resolved.wait()
        return self._snapshot

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a listener called with every new snapshot.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return _unsubscribe

    # -------------------------------------------------------------------------
    # Single mutation entry point
    # -------------------------------------------------------------------------

    def _replace(self, snapshot: SessionSnapshot) -> None:
        if snapshot == self._snapshot:
            return
        previous, self._snapshot = self._snapshot, snapshot
        if previous.state != snapshot.state:
            logger.info(f"Session {previous.state.value} -> {snapshot.state.value}")
        if not snapshot.loading:
            self._resolved.set()

        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Session listener failed")

    def _supersede(self) -> int:
        """Invalidate any in-flight profile fetch and return the new generation."""
        self._generation += 1
        if self._fetch_task is not None and not self._fetch_task.done():
            self._fetch_task.cancel()
        self._fetch_task = None
        return self._generation

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Enter RESOLVING and subscribe to identity changes. Idempotent."""
        if self._started:
            return
        self._started = True
        self._stream = IdentityStream(self._credentials)
        self._consumer = asyncio.create_task(
            self._consume(self._stream), name="session-identity-consumer"
        )

        try:
            await self._stream.open()
        except Exception as e:
            logger.error(f"Identity subscription failed, continuing signed out: {e}")
            self._stream.close()
            self._replace(SessionSnapshot.signed_out())

    async def stop(self) -> None:
        """Tear down the identity subscription and any in-flight fetch."""
        if self._stream is not None:
            self._stream.close()
        self._supersede()

        if self._consumer is not None:
            self._consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer
            self._consumer = None
        logger.debug("Session state machine stopped")

    async def _consume(self, stream: IdentityStream) -> None:
        async for event in stream:
            self._handle(event)

    def _handle(self, event: IdentityEvent) -> None:
        identity = event.identity
        current = self._snapshot
        logger.debug(f"Identity event #{event.seq}: {identity.id if identity else None}")

        if identity is not None and event.seq <= self._signed_out_seq:
            logger.debug(f"Dropping identity event #{event.seq} queued before sign out")
            return

        if identity is None:
            self._supersede()
            self._replace(SessionSnapshot.signed_out())
            return

        if current.identity is not None and current.identity.id == identity.id:
            # Same user (token refresh, metadata change); keep profile and any fetch in flight
            self._replace(
                SessionSnapshot(identity=identity, profile=current.profile, loading=current.loading)
            )
            if not current.loading or self._fetch_task is not None:
                return

        generation = self._supersede()
        self._replace(SessionSnapshot(identity=identity, profile=None, loading=True))
        self._fetch_task = asyncio.create_task(
            self._resolve(identity, generation), name=f"profile-fetch-{identity.id}"
        )

    # -------------------------------------------------------------------------
    # Profile resolution
    # -------------------------------------------------------------------------

    async def _fetch_profile(self, identity_id: str) -> Profile | None:
        """Fetch a profile with a per-attempt timeout and exponential backoff.

        A document that fails validation is reported as absent without retrying.

        Raises:
            ProfileFetchError: If every attempt timed out or failed
        """
        last_error: Exception | None = None

        for attempt in range(self.fetch_retries):
            try:
                return await asyncio.wait_for(
                    self._profiles.get(identity_id), timeout=self.fetch_timeout
                )
            except ValidationError as e:
                # A malformed document will not fix itself on retry
                logger.error(f"Profile for {identity_id} is malformed, treating as absent: {e}")
                return None
            except asyncio.TimeoutError as e:
                last_error = e
                logger.warning(
                    f"Profile fetch for {identity_id} timed out after {self.fetch_timeout}s "
                    f"(attempt {attempt + 1}/{self.fetch_retries})"
                )
            except Exception as e:
                last_error = e
                logger.warning(
                    f"Profile fetch for {identity_id} failed "
                    f"(attempt {attempt + 1}/{self.fetch_retries}): {e}"
                )

            if attempt < self.fetch_retries - 1:
                await asyncio.sleep(self.fetch_backoff * (2**attempt))

        raise ProfileFetchError(identity_id, self.fetch_retries, last_error)

    def _is_current(self, identity: Identity, generation: int) -> bool:
        current = self._snapshot.identity
        return (
            generation == self._generation
            and current is not None
            and current.id == identity.id
        )

    async def _resolve(self, identity: Identity, generation: int) -> None:
        try:
            profile = await self._fetch_profile(identity.id)
        except ProfileFetchError as e:
            logger.error(f"{e}; treating session as signed in without a profile")
            profile = None

        if not self._is_current(identity, generation):
            logger.warning(f"Discarding stale profile result for {identity.id}")
            return

        if profile is None:
            logger.warning(f"No profile for identity {identity.id}")
        self._replace(
            SessionSnapshot(identity=self._snapshot.identity, profile=profile, loading=False)
        )
        if self._fetch_task is asyncio.current_task():
            self._fetch_task = None

    async def refresh(self) -> SessionSnapshot:
        """Re-fetch the profile for the current identity.

        Authentication state is left alone. No-op when signed out. If the
        fetch fails, the current snapshot is kept.
        """
        identity = self._snapshot.identity
        if identity is None:
            return self._snapshot

        generation = self._generation
        try:
            profile = await self._fetch_profile(identity.id)
        except ProfileFetchError as e:
            logger.warning(f"Refresh failed, keeping current profile: {e}")
            return self._snapshot

        if not self._is_current(identity, generation):
            logger.warning(f"Discarding stale refresh result for {identity.id}")
            return self._snapshot

        self._replace(
            SessionSnapshot(identity=self._snapshot.identity, profile=profile, loading=False)
        )
        return self._snapshot

    # -------------------------------------------------------------------------
    # Consumer operations
    # -------------------------------------------------------------------------

    async def sign_out(self) -> AuthResult:
        """Sign out with the provider, then clear local state immediately.

        Local state is cleared even if the provider call fails. Identity
        events already queued when the call returns are ignored.
        """
        result = await self._credentials.sign_out()
        if not result.success:
            logger.warning(f"Provider sign out failed, clearing local session anyway: {result.error}")
        if self._stream is not None:
            self._signed_out_seq = self._stream.seq
        self._supersede()
        self._replace(SessionSnapshot.signed_out())
        return result

    async def sign_in(self, email: str, password: str) -> AuthResult:
        if not email or not password:
            return AuthResult.fail("Please enter both email and password")
        if not validate_email(email):
            return AuthResult.fail("Please enter a valid email address")
        return await self._credentials.sign_in(email, password)

    async def sign_up(self, data: SignUpData) -> AuthResult:
        error = validate_sign_up(data)
        if error:
            return AuthResult.fail(error)
        return await self._credentials.sign_up(data)

    async def reset_password(self, email: str) -> AuthResult:
        if not validate_email(email):
            return AuthResult.fail("Please enter a valid email address")
        return await self._credentials.reset_password(email)

    async def update_profile(self, fields: dict[str, Any]) -> SessionSnapshot:
        """Write profile edits through the store, then refresh the snapshot.

        Raises:
            NotSignedInError: If no identity is signed in
            ValueError: If no fields are given or a protected field is included
        """
        identity = self._snapshot.identity
        if identity is None:
            raise NotSignedInError("update profile")
        if not fields:
            raise ValueError("No fields to update")
        protected = PROTECTED_FIELDS.intersection(fields)
        if protected:
            raise ValueError(f"Fields cannot be edited: {sorted(protected)}")

        await self._profiles.update(identity.id, fields)
        return await self.refresh()
