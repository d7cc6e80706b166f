"""Global test configuration and in-memory service fakes for StayIN."""

import asyncio
import os
from datetime import datetime, UTC
from typing import Any, Callable

import pytest

from stayin.models.identity import AuthResult, Identity, Profile, SignUpData


@pytest.fixture(autouse=True, scope="session")
def _set_test_env_vars():
    """Set dummy environment variables for Settings validation.

    Only sets values that aren't already present, so real env vars take
    precedence (useful for integration tests).
    """
    defaults = {
        "SUPABASE_URL": "https://test.supabase.co",
        "SUPABASE_KEY": "test-supabase-key",
    }
    originals = {}
    for key, value in defaults.items():
        if key not in os.environ:
            os.environ[key] = value
            originals[key] = None
        else:
            originals[key] = os.environ[key]

    # Clear the lru_cache on get_settings so it picks up the new env vars
    from stayin.config import get_settings
    get_settings.cache_clear()

    yield

    for key, original in originals.items():
        if original is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = original
    get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeCredentialService:
    """Credential service that only emits identity changes when told to."""

    def __init__(self, initial: Identity | None = None) -> None:
        self.current = initial
        self.listeners: list[Callable[[Identity | None], None]] = []
        self.unsubscribed = 0
        self.sign_out_result = AuthResult.ok()
        self.sign_in_result = AuthResult.ok()
        self.sign_up_result = AuthResult.ok()
        self.calls: list[tuple[str, Any]] = []
        self.fail_subscribe: Exception | None = None

    async def subscribe(self, on_change):
        if self.fail_subscribe is not None:
            raise self.fail_subscribe
        self.listeners.append(on_change)
        on_change(self.current)

        def _unsubscribe() -> None:
            self.unsubscribed += 1
            if on_change in self.listeners:
                self.listeners.remove(on_change)

        return _unsubscribe

    def emit(self, identity: Identity | None) -> None:
        self.current = identity
        for listener in list(self.listeners):
            listener(identity)

    async def sign_in(self, email: str, password: str) -> AuthResult:
        self.calls.append(("sign_in", email))
        return self.sign_in_result

    async def sign_up(self, data: SignUpData) -> AuthResult:
        self.calls.append(("sign_up", data.email))
        return self.sign_up_result

    async def sign_out(self) -> AuthResult:
        # The provider's own callback is delivered later, via emit()
        self.calls.append(("sign_out", None))
        return self.sign_out_result

    async def reset_password(self, email: str) -> AuthResult:
        self.calls.append(("reset_password", email))
        return AuthResult.ok()


class FakeProfileStore:
    """Profile store with per-id gates to control when fetches complete."""

    def __init__(self) -> None:
        self.profiles: dict[str, Profile] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.errors: dict[str, Exception] = {}
        self.calls: list[str] = []
        self.updates: list[tuple[str, dict[str, Any]]] = []

    def gate(self, identity_id: str) -> asyncio.Event:
        self.gates[identity_id] = asyncio.Event()
        return self.gates[identity_id]

    async def get(self, identity_id: str) -> Profile | None:
        self.calls.append(identity_id)
        gate = self.gates.get(identity_id)
        if gate is not None:
            await gate.wait()
        error = self.errors.get(identity_id)
        if error is not None:
            raise error
        return self.profiles.get(identity_id)

    async def set(self, identity_id: str, fields: dict[str, Any]) -> Profile:
        profile = Profile(**{**fields, "id": identity_id})
        self.profiles[identity_id] = profile
        return profile

    async def update(self, identity_id: str, fields: dict[str, Any]) -> None:
        self.updates.append((identity_id, fields))
        current = self.profiles[identity_id]
        self.profiles[identity_id] = current.model_copy(
            update={**fields, "updated_at": datetime.now(UTC)}
        )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def credentials() -> FakeCredentialService:
    return FakeCredentialService()


@pytest.fixture
def profiles() -> FakeProfileStore:
    return FakeProfileStore()


@pytest.fixture
def make_identity() -> Callable[..., Identity]:
    def _make(identity_id: str = "u1", **kwargs: Any) -> Identity:
        return Identity(id=identity_id, email=f"{identity_id}@example.com", **kwargs)

    return _make


@pytest.fixture
def make_profile() -> Callable[..., Profile]:
    def _make(identity_id: str = "u1", role: str = "tenant", **kwargs: Any) -> Profile:
        return Profile(
            id=identity_id,
            email=f"{identity_id}@example.com",
            full_name="Test User",
            phone_number="0971234567",
            role=role,
            **kwargs,
        )

    return _make


@pytest.fixture
def wait_until():
    """Spin the event loop until a condition holds (or fail after a timeout)."""

    async def _wait(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("Condition not met before timeout")
            await asyncio.sleep(0)

    return _wait
