"""Tests for the Supabase services, local store, asset preloader and notice board."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from stayin.models.identity import SignUpData, UserRole
from stayin.models.notice import Notice, NoticeLevel
from stayin.services.assets import AssetPreloader
from stayin.services.credentials import (
    SupabaseCredentialService,
    identity_from_session,
    identity_from_user,
)
from stayin.services.local_store import LocalStore
from stayin.services.notices import NoticeBoard
from stayin.services.profile_store import SupabaseProfileStore


def _user(user_id="u1", email="u1@example.com", **metadata):
    return SimpleNamespace(id=user_id, email=email, user_metadata=metadata)


def _profile_row(user_id="u1", role="tenant"):
    return {
        "id": user_id,
        "email": f"{user_id}@example.com",
        "full_name": "Mary Banda",
        "phone_number": "0971234567",
        "role": role,
        "verified": False,
        "created_at": "2025-01-01T00:00:00+00:00",
        "updated_at": "2025-01-01T00:00:00+00:00",
    }


@pytest.fixture
def supabase_client():
    """A MagicMock shaped like supabase.AsyncClient."""
    client = MagicMock()
    table = client.table.return_value
    table.select.return_value.eq.return_value.execute = AsyncMock(
        return_value=MagicMock(data=[])
    )
    table.upsert.return_value.execute = AsyncMock(return_value=MagicMock(data=[]))
    table.update.return_value.eq.return_value.execute = AsyncMock(
        return_value=MagicMock(data=[])
    )
    client.auth.sign_in_with_password = AsyncMock()
    client.auth.sign_up = AsyncMock()
    client.auth.sign_out = AsyncMock()
    client.auth.reset_password_for_email = AsyncMock()
    client.auth.get_session = AsyncMock(return_value=None)
    return client


# =============================================================================
# Profile store
# =============================================================================


class TestSupabaseProfileStore:
    """Tests for the Supabase profile table wrapper."""

    @pytest.mark.asyncio
    async def test_get_existing(self, supabase_client):
        execute = supabase_client.table.return_value.select.return_value.eq.return_value.execute
        execute.return_value = MagicMock(data=[_profile_row("u1", "landlord")])
        store = SupabaseProfileStore(supabase_client)

        profile = await store.get("u1")

        supabase_client.table.assert_called_with("profiles")
        supabase_client.table.return_value.select.return_value.eq.assert_called_with("id", "u1")
        assert profile.id == "u1"
        assert profile.role == "landlord"

    @pytest.mark.asyncio
    async def test_get_row_with_null_phone_number(self, supabase_client):
        row = {**_profile_row("u1", "landlord"), "phone_number": None}
        execute = supabase_client.table.return_value.select.return_value.eq.return_value.execute
        execute.return_value = MagicMock(data=[row])
        store = SupabaseProfileStore(supabase_client)

        profile = await store.get("u1")

        assert profile.phone_number is None
        assert profile.effective_role == UserRole.LANDLORD

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, supabase_client):
        store = SupabaseProfileStore(supabase_client, table="people")

        assert await store.get("ghost") is None
        supabase_client.table.assert_called_with("people")

    @pytest.mark.asyncio
    async def test_set_serializes_fields(self, supabase_client):
        store = SupabaseProfileStore(supabase_client)
        data = SignUpData(
            email="Mary@Example.com",
            password="secret1",
            full_name="Mary Banda",
            phone_number="0971234567",
            role=UserRole.LANDLORD,
        )

        profile = await store.set("u1", data.profile_fields())

        row = supabase_client.table.return_value.upsert.call_args[0][0]
        assert row["id"] == "u1"
        assert row["role"] == "landlord"
        assert isinstance(row["created_at"], str)
        assert "password" not in row
        assert profile.email == "mary@example.com"

    @pytest.mark.asyncio
    async def test_update_stamps_updated_at_and_keeps_id(self, supabase_client):
        store = SupabaseProfileStore(supabase_client)

        await store.update("u1", {"full_name": "Mary C. Banda", "id": "other"})

        table = supabase_client.table.return_value
        data = table.update.call_args[0][0]
        assert data["full_name"] == "Mary C. Banda"
        assert "updated_at" in data
        assert "id" not in data
        table.update.return_value.eq.assert_called_with("id", "u1")


# =============================================================================
# Credential service
# =============================================================================


class TestIdentityMapping:

    def test_identity_from_user_uses_metadata_name(self):
        identity = identity_from_user(_user(full_name="Mary Banda"))
        assert identity.id == "u1"
        assert identity.display_name == "Mary Banda"

    def test_identity_from_session_none(self):
        assert identity_from_session(None) is None
        assert identity_from_session(SimpleNamespace(user=None)) is None


class TestSupabaseCredentialService:
    """Provider errors come back as AuthResult failures."""

    @pytest.mark.asyncio
    async def test_sign_in_success(self, supabase_client):
        supabase_client.auth.sign_in_with_password.return_value = SimpleNamespace(user=_user())
        execute = supabase_client.table.return_value.select.return_value.eq.return_value.execute
        execute.return_value = MagicMock(data=[_profile_row()])
        service = SupabaseCredentialService(supabase_client, SupabaseProfileStore(supabase_client))

        result = await service.sign_in(" U1@Example.com ", "secret1")

        assert result.success
        assert result.identity.id == "u1"
        supabase_client.auth.sign_in_with_password.assert_awaited_once_with(
            {"email": "u1@example.com", "password": "secret1"}
        )

    @pytest.mark.asyncio
    async def test_sign_in_without_profile_fails(self, supabase_client):
        supabase_client.auth.sign_in_with_password.return_value = SimpleNamespace(user=_user())
        service = SupabaseCredentialService(supabase_client, SupabaseProfileStore(supabase_client))

        result = await service.sign_in("u1@example.com", "secret1")

        assert result.success is False
        assert result.error == "User data not found"
        assert result.identity.id == "u1"
        supabase_client.auth.sign_out.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sign_in_provider_error(self, supabase_client):
        supabase_client.auth.sign_in_with_password.side_effect = RuntimeError("Invalid login")
        service = SupabaseCredentialService(supabase_client, SupabaseProfileStore(supabase_client))

        result = await service.sign_in("u1@example.com", "wrong")

        assert result.success is False
        assert result.error == "Invalid login"

    @pytest.mark.asyncio
    async def test_sign_up_writes_profile(self, supabase_client, profiles):
        supabase_client.auth.sign_up.return_value = SimpleNamespace(user=_user("u7"))
        service = SupabaseCredentialService(supabase_client, profiles)
        data = SignUpData(
            email="u7@example.com",
            password="secret1",
            full_name="Mary Banda",
            phone_number="0971234567",
            role=UserRole.LANDLORD,
        )

        result = await service.sign_up(data)

        assert result.success
        assert profiles.profiles["u7"].role == "landlord"
        payload = supabase_client.auth.sign_up.call_args[0][0]
        assert payload["options"]["data"]["role"] == "landlord"

    @pytest.mark.asyncio
    async def test_sign_up_profile_write_failure_is_partial(self, supabase_client):
        supabase_client.auth.sign_up.return_value = SimpleNamespace(user=_user("u7"))
        failing = MagicMock()
        failing.set = AsyncMock(side_effect=ConnectionError("write refused"))
        service = SupabaseCredentialService(supabase_client, failing)
        data = SignUpData(
            email="u7@example.com",
            password="secret1",
            full_name="Mary Banda",
            phone_number="0971234567",
        )

        result = await service.sign_up(data)

        assert result.success is False
        assert result.identity.id == "u7"
        assert "profile could not be saved" in result.error

    @pytest.mark.asyncio
    async def test_sign_out_error_is_reported(self, supabase_client, profiles):
        supabase_client.auth.sign_out.side_effect = RuntimeError("offline")
        service = SupabaseCredentialService(supabase_client, profiles)

        result = await service.sign_out()

        assert result.success is False
        assert result.error == "offline"

    @pytest.mark.asyncio
    async def test_reset_password(self, supabase_client, profiles):
        service = SupabaseCredentialService(supabase_client, profiles)

        result = await service.reset_password("Mary@Example.com")

        assert result.success
        supabase_client.auth.reset_password_for_email.assert_awaited_once_with("mary@example.com")

    @pytest.mark.asyncio
    async def test_subscribe_emits_persisted_session_then_events(self, supabase_client, profiles):
        subscription = MagicMock()
        supabase_client.auth.on_auth_state_change = MagicMock(return_value=subscription)
        supabase_client.auth.get_session.return_value = SimpleNamespace(user=_user("u1"))
        service = SupabaseCredentialService(supabase_client, profiles)
        seen = []

        unsubscribe = await service.subscribe(seen.append)
        callback = supabase_client.auth.on_auth_state_change.call_args[0][0]
        callback("SIGNED_OUT", None)
        callback("SIGNED_IN", SimpleNamespace(user=_user("u2")))

        assert [i.id if i else None for i in seen] == ["u1", None, "u2"]
        assert unsubscribe is subscription.unsubscribe

    @pytest.mark.asyncio
    async def test_subscribe_session_restore_failure(self, supabase_client, profiles):
        supabase_client.auth.on_auth_state_change = MagicMock(return_value=MagicMock())
        supabase_client.auth.get_session.side_effect = RuntimeError("corrupt storage")
        service = SupabaseCredentialService(supabase_client, profiles)
        seen = []

        await service.subscribe(seen.append)

        assert seen == [None]


# =============================================================================
# Local store
# =============================================================================


class TestLocalStore:
    """Tests for the SQLite cache."""

    @pytest.mark.asyncio
    async def test_open_put_get_close(self, tmp_path):
        store = LocalStore(str(tmp_path / "cache" / "stayin.db"))
        await store.open()
        assert store.is_open

        await store.put("listings", [{"id": 1, "rent": 2500}])
        await store.put("listings", [{"id": 2, "rent": 3000}])

        assert await store.get("listings") == [{"id": 2, "rent": 3000}]
        assert await store.get("missing") is None

        await store.close()
        assert not store.is_open

    @pytest.mark.asyncio
    async def test_reopen_keeps_data(self, tmp_path):
        path = str(tmp_path / "stayin.db")
        store = LocalStore(path)
        await store.open()
        await store.put("k", {"v": 1})
        await store.close()

        reopened = LocalStore(path)
        await reopened.open()
        assert await reopened.get("k") == {"v": 1}
        await reopened.close()

    @pytest.mark.asyncio
    async def test_closed_store_raises(self):
        store = LocalStore(":memory:")
        with pytest.raises(RuntimeError, match="not open"):
            await store.get("k")


# =============================================================================
# Asset preloader
# =============================================================================


class TestAssetPreloader:
    """Tests for the asset preloader using an httpx mock transport."""

    @pytest.mark.asyncio
    async def test_preload_downloads_assets(self, tmp_path):
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(200, content=b"font-bytes")

        preloader = AssetPreloader(
            ["https://cdn.example.com/fonts/Inter.ttf", "https://cdn.example.com/img/logo.png"],
            str(tmp_path / "assets"),
            transport=httpx.MockTransport(handler),
        )

        paths = await preloader.preload()

        assert [p.suffix for p in paths] == [".ttf", ".png"]
        assert paths[0] == preloader.cache_path("https://cdn.example.com/fonts/Inter.ttf")
        assert paths[0].read_bytes() == b"font-bytes"
        assert len(requested) == 2

    @pytest.mark.asyncio
    async def test_same_basename_different_urls(self, tmp_path):
        """Assets sharing a file name under different paths are cached separately."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=request.url.path.encode())

        urls = ["https://cdn.example.com/a/icon.png", "https://cdn.example.com/b/icon.png"]
        preloader = AssetPreloader(
            urls, str(tmp_path), transport=httpx.MockTransport(handler)
        )

        paths = await preloader.preload()

        assert paths[0] != paths[1]
        assert [p.read_bytes() for p in paths] == [b"/a/icon.png", b"/b/icon.png"]
        assert list(tmp_path.glob("*.part")) == []

    @pytest.mark.asyncio
    async def test_cached_assets_not_refetched(self, tmp_path):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url)
            return httpx.Response(200, content=b"x")

        preloader = AssetPreloader(
            ["https://cdn.example.com/fonts/Inter.ttf"],
            str(tmp_path),
            transport=httpx.MockTransport(handler),
        )
        await preloader.preload()
        await preloader.preload()

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_http_error_propagates(self, tmp_path):
        preloader = AssetPreloader(
            ["https://cdn.example.com/missing.ttf"],
            str(tmp_path),
            transport=httpx.MockTransport(lambda request: httpx.Response(404)),
        )

        with pytest.raises(httpx.HTTPStatusError):
            await preloader.preload()

    @pytest.mark.asyncio
    async def test_no_urls(self, tmp_path):
        preloader = AssetPreloader([], str(tmp_path / "never"))
        assert await preloader.preload() == []
        assert not (tmp_path / "never").exists()


# =============================================================================
# Notice board
# =============================================================================


class TestNoticeBoard:
    """Tests for the in-memory notice board."""

    @pytest.mark.asyncio
    async def test_late_subscriber_gets_history(self):
        board = NoticeBoard()
        first = board.warn("assets", "Fonts failed")

        queue = board.subscribe()
        board.post(Notice(level=NoticeLevel.INFO, source="session", message="hi"))

        assert await asyncio.wait_for(queue.get(), 1.0) == first
        assert (await asyncio.wait_for(queue.get(), 1.0)).source == "session"
        assert len(board.history) == 2

    def test_full_queue_drops_notices(self):
        board = NoticeBoard(max_queue=1)
        queue = board.subscribe()

        board.warn("a", "one")
        board.warn("b", "two")

        assert queue.qsize() == 1
        assert len(board.history) == 2

    def test_unsubscribe_idempotent(self):
        board = NoticeBoard()
        queue = board.subscribe()
        board.unsubscribe(queue)
        board.unsubscribe(queue)

        board.warn("a", "one")
        assert queue.empty()
