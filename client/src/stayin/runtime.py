"""Application runtime: builds service handles and owns their lifecycle.

Nothing here is a module-level singleton. Construct an AppRuntime (directly,
or from Settings), then use it as an async context manager:

    runtime = await AppRuntime.from_settings(get_settings())
    async with runtime:
        await runtime.readiness.wait_ready()
        ...
"""

import logging
from typing import Any

from supabase import AsyncClient, acreate_client

from stayin.config import Settings
from stayin.models.readiness import ReadinessTask
from stayin.navigation.guards import role_guards
from stayin.navigation.navigator import StackNavigator
from stayin.navigation.router import RoleRouter
from stayin.services.assets import AssetPreloader
from stayin.services.credentials import CredentialService, SupabaseCredentialService
from stayin.services.local_store import LocalStore
from stayin.services.notices import NoticeBoard
from stayin.services.profile_store import ProfileStore, SupabaseProfileStore
from stayin.session.readiness import HeadlessSplash, ReadinessAggregator, SplashScreen
from stayin.session.state_machine import SessionStateMachine

logger = logging.getLogger(__name__)


class AppRuntime:
    """Wires session, readiness, router and guards over injected services."""

    def __init__(
        self,
        credentials: CredentialService,
        profiles: ProfileStore,
        local_store: LocalStore,
        assets: AssetPreloader,
        *,
        splash: SplashScreen | None = None,
        navigator: StackNavigator | None = None,
        notices: NoticeBoard | None = None,
        fetch_timeout: float = 10.0,
        fetch_retries: int = 3,
        fetch_backoff: float = 0.5,
        client: AsyncClient | None = None,
    ) -> None:
        self.client = client
        self.credentials = credentials
        self.profiles = profiles
        self.local_store = local_store
        self.assets = assets
        self.splash = splash or HeadlessSplash()
        self.navigator = navigator or StackNavigator()
        self.notices = notices or NoticeBoard()

        self.session = SessionStateMachine(
            credentials,
            profiles,
            fetch_timeout=fetch_timeout,
            fetch_retries=fetch_retries,
            fetch_backoff=fetch_backoff,
        )
        self.readiness = ReadinessAggregator(splash=self.splash, notices=self.notices)
        self.router = RoleRouter(self.session, self.navigator, self.readiness)
        self.guards = role_guards()
        self._running = False

    @classmethod
    async def from_settings(cls, settings: Settings, **kwargs: Any) -> "AppRuntime":
        """Build the runtime with Supabase-backed services.

        The runtime owns the Supabase client and closes it in stop().

        Args:
            settings: Application settings
            **kwargs: Passed through to the constructor (splash, navigator, notices)

        Returns:
            An AppRuntime that has not been started yet
        """
        client = await acreate_client(settings.supabase_url, settings.supabase_key)
        profiles = SupabaseProfileStore(client, settings.profiles_table)
        return cls(
            credentials=SupabaseCredentialService(client, profiles),
            profiles=profiles,
            local_store=LocalStore(settings.local_store_path),
            assets=AssetPreloader(
                settings.asset_urls,
                settings.asset_cache_dir,
                timeout=settings.asset_timeout,
            ),
            fetch_timeout=settings.profile_fetch_timeout,
            fetch_retries=settings.profile_fetch_retries,
            fetch_backoff=settings.profile_fetch_backoff,
            client=client,
            **kwargs,
        )

    async def _resolve_session(self) -> None:
        await self.session.start()
        await self.session.wait_resolved()

    async def start(self) -> None:
        """Attach navigation and launch the three startup tasks concurrently."""
        if self._running:
            return
        self._running = True

        for guard in self.guards.values():
            guard.attach(self.navigator, self.session)
        self.router.start()

        self.readiness.track(ReadinessTask.SESSION, self._resolve_session())
        self.readiness.track(ReadinessTask.LOCAL_STORE, self.local_store.open())
        self.readiness.track(ReadinessTask.ASSETS, self.assets.preload())
        logger.info("Runtime started")

    async def stop(self) -> None:
        """Tear down in reverse order of start."""
        if not self._running:
            return
        self._running = False

        await self.readiness.cancel()
        self.router.stop()
        for guard in self.guards.values():
            guard.detach()
        await self.session.stop()
        await self.local_store.close()
        if self.client is not None:
            await self._close_client(self.client)
        logger.info("Runtime stopped")

    async def _close_client(self, client: AsyncClient) -> None:
        """Release realtime channels and the REST connection pool."""
        try:
            await client.remove_all_channels()
        except Exception as e:
            logger.warning(f"Realtime teardown failed: {e}")
        try:
            await client.postgrest.aclose()
        except Exception as e:
            logger.warning(f"REST client teardown failed: {e}")

    async def __aenter__(self) -> "AppRuntime":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()
