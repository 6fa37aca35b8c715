"""
Handles the low-level downloading of offline files over HTTP.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Optional

import aiofiles
import aiohttp
from pathvalidate import sanitize_filename

from treesync.api.client import ContentAPIClient
from treesync.core.interfaces import UserProvider
from treesync.exceptions import DownloadError
from treesync.models import ContentNode
from treesync.storage.object_store import ObjectStore

log = logging.getLogger(__name__)

_connection_pool: Optional[aiohttp.ClientSession] = None
_pool_lock = asyncio.Lock()


async def get_connection_pool(token: str, max_workers: int = 4) -> aiohttp.ClientSession:
    """
    Gets or creates a shared aiohttp ClientSession for downloads.

    Only one connection pool is created for the lifetime of the application run.
    """
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            return _connection_pool

        connector = aiohttp.TCPConnector(
            limit=max_workers * 2,
            limit_per_host=max_workers,
            ttl_dns_cache=600,
            keepalive_timeout=30,
            enable_cleanup_closed=True,
        )
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=15, sock_read=90)
        _connection_pool = aiohttp.ClientSession(
            connector=connector,
            timeout=timeout,
            headers={"Authorization": f"Bearer {token}"},
        )
        log.debug(f"Created download pool with limit_per_host={max_workers}")

    return _connection_pool


async def close_connection_pool() -> None:
    """Closes the shared global connection pool."""
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            await _connection_pool.close()
            _connection_pool = None
            log.debug("Shared downloader connection pool closed.")


def offline_path(offline_dir: Path, user_id: int, node: ContentNode) -> Path:
    """Where the offline copy of a node lives."""
    name = sanitize_filename(node.file_name or node.title) or node.obj_id
    return offline_dir / str(user_id) / node.obj_id / name


class Downloader:
    """Stores files and special content of nodes below the offline directory."""

    CHUNK_SIZE = 262144  # 256 KB

    def __init__(
        self,
        offline_dir: Path,
        api_client: ContentAPIClient,
        store: ObjectStore,
        users: UserProvider,
        max_workers: int = 4,
        max_attempts: int = 3,
        base_delay: float = 1.5,
    ):
        self.offline_dir = offline_dir
        self.api_client = api_client
        self.store = store
        self.users = users
        self.max_workers = max_workers
        self.max_attempts = max_attempts
        self.base_delay = base_delay

    async def _fetch(self, url: str, destination: Path) -> int:
        session = await get_connection_pool(self.api_client.token, self.max_workers)
        partial = destination.with_name(destination.name + ".part")
        written = 0
        async with session.get(url, allow_redirects=True) as response:
            response.raise_for_status()
            async with aiofiles.open(partial, "wb") as f:
                async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                    await f.write(chunk)
                    written += len(chunk)
        await asyncio.to_thread(os.replace, partial, destination)
        return written

    async def download_file(self, node: ContentNode) -> None:
        """
        Downloads one file, retrying with exponential backoff.

        Raises:
            DownloadError: If every attempt failed.
        """
        if not node.download_url:
            raise DownloadError(f"'{node.title}' has no download URL.")

        user = await self.users.current_user()
        destination = offline_path(self.offline_dir, user.user_id, node)
        await asyncio.to_thread(destination.parent.mkdir, parents=True, exist_ok=True)

        last_exception: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                size = await self._fetch(node.download_url, destination)
                await self.store.mark_downloaded(node, user)
                log.debug(f"Downloaded '{destination.name}' ({size} bytes).")
                return
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                last_exception = e
                log.debug(
                    f"Download attempt {attempt}/{self.max_attempts} for "
                    f"'{destination.name}' failed: {e}. Retrying..."
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.base_delay * (2 ** (attempt - 1)))

        raise DownloadError(
            f"Download of '{node.title}' failed after {self.max_attempts} attempts: "
            f"{last_exception}"
        ) from last_exception

    async def load_special_content(self, node: ContentNode) -> None:
        """Fetches the JSON bundle of a special node and stores it beside the files."""
        user = await self.users.current_user()
        try:
            payload = await self.api_client.fetch_special_content(node)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise DownloadError(f"Could not load '{node.title}': {e}") from e

        destination = self.offline_dir / str(user.user_id) / node.obj_id / "content.json"
        await asyncio.to_thread(destination.parent.mkdir, parents=True, exist_ok=True)
        async with aiofiles.open(destination, "w", encoding="utf-8") as f:
            await f.write(json.dumps(payload))
        await self.store.mark_downloaded(node, user)
