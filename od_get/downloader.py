"""Async HTTP transport: listing fetches and streaming file downloads."""

import logging
import os
from typing import Callable, Optional

import httpx

from .config import AppConfig
from .errors import FetchError, FilesystemError

logger = logging.getLogger("od_get")

CHUNK_SIZE = 65536


class Downloader:
    """Thin wrapper around httpx.AsyncClient.

    Every transport failure surfaces as FetchError and every local write
    failure as FilesystemError. Nothing is retried here.
    """

    def __init__(self, config: AppConfig,
                 client_factory: Optional[Callable[[], httpx.AsyncClient]] = None):
        self.config = config
        self._client_factory = client_factory
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            if self._client_factory is not None:
                self._client = self._client_factory()
            else:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.config.download.timeout, connect=30),
                    follow_redirects=True,
                    headers={"User-Agent": self.config.download.user_agent},
                )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def fetch_page(self, url: str) -> bytes:
        """GET a listing page and return the raw body."""
        try:
            resp = await self.client.get(url)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise FetchError(url, str(e)) from e
        return resp.content

    async def download_file(self, url: str, local_path: str) -> int:
        """Stream url to local_path, creating parent dirs. Returns bytes written."""
        size = 0
        try:
            parent = os.path.dirname(local_path)
            if parent:
                os.makedirs(parent, exist_ok=True)

            async with self.client.stream("GET", url) as resp:
                resp.raise_for_status()
                with open(local_path, "wb") as f:
                    async for chunk in resp.aiter_bytes(chunk_size=CHUNK_SIZE):
                        f.write(chunk)
                        size += len(chunk)
        except httpx.HTTPError as e:
            raise FetchError(url, str(e)) from e
        except OSError as e:
            raise FilesystemError(local_path, str(e)) from e

        logger.debug(f"Wrote {size:,} bytes to {local_path}")
        return size
