"""Asset preloader - downloads fonts/images into a local cache before the splash lifts."""

import asyncio
import hashlib
import logging
from pathlib import Path
from urllib.parse import urlparse
from uuid import uuid4

import httpx

logger = logging.getLogger(__name__)

# Default timeout for HTTP requests
DEFAULT_TIMEOUT = 30.0


class AssetPreloader:
    """Fetches a fixed list of asset URLs into a cache directory.

    Assets already present in the cache are not downloaded again.
    """

    def __init__(
        self,
        urls: list[str],
        cache_dir: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.urls = list(urls)
        self.cache_dir = Path(cache_dir)
        self.timeout = timeout
        self._transport = transport

    def cache_path(self, url: str) -> Path:
        """Cache file for a URL, keyed on the full URL and keeping its suffix."""
        digest = hashlib.sha256(url.encode("utf-8")).hexdigest()[:32]
        return self.cache_dir / f"{digest}{Path(urlparse(url).path).suffix}"

    @staticmethod
    def _write(target: Path, content: bytes) -> None:
        # Only complete downloads ever appear under the cache name
        partial = target.with_name(f"{target.name}.{uuid4().hex}.part")
        try:
            partial.write_bytes(content)
            partial.replace(target)
        finally:
            partial.unlink(missing_ok=True)

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> Path:
        target = self.cache_path(url)
        if target.exists():
            logger.debug(f"Asset cached: {target.name}")
            return target

        response = await client.get(url)
        response.raise_for_status()
        await asyncio.to_thread(self._write, target, response.content)
        logger.debug(f"Asset downloaded: {url} -> {target}")
        return target

    async def preload(self) -> list[Path]:
        """Download every configured asset concurrently.

        Returns:
            Paths of the cached assets

        Raises:
            httpx.HTTPError: If any asset could not be fetched
        """
        if not self.urls:
            return []

        await asyncio.to_thread(self.cache_dir.mkdir, parents=True, exist_ok=True)

        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            paths = await asyncio.gather(*(self._fetch(client, url) for url in self.urls))

        logger.info(f"Preloaded {len(paths)} asset(s)")
        return list(paths)
