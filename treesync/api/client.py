"""
Async client for the JSON API of the remote content service.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from treesync.exceptions import ListingError
from treesync.models import ContentNode, User
from treesync.storage.object_store import ObjectStore
from treesync.utils.circuit_breaker import CircuitBreaker, CircuitOpenError

log = logging.getLogger(__name__)


class ContentAPIClient:
    """
    Lists the content tree of the remote service.

    Every listing is merged into the local object store, which decides
    which files still need a download.
    """

    def __init__(
        self, base_url: str, token: str, store: ObjectStore, max_workers: int = 4
    ):
        """
        Initializes the API client.

        Args:
            base_url: Root URL of the API, ending with a slash.
            token: Bearer token of the user.
            store: Local catalog the listings are merged into.
            max_workers: The number of concurrent workers, used to tune the connection pool.
        """
        self.base_url = base_url
        self.token = token
        self.store = store
        self.max_workers = max_workers
        self._session: Optional[aiohttp.ClientSession] = None
        self._circuit_breaker = CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=60,
            success_threshold=2,
        )

    async def _initialize_session(self) -> None:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.max_workers * 2,
                limit_per_host=self.max_workers,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Accept": "application/json",
                    "Accept-Encoding": "gzip, deflate",
                },
                timeout=aiohttp.ClientTimeout(total=60, connect=15, sock_read=30),
            )

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def api_call(self, endpoint: str, **params: Any) -> Dict[str, Any]:
        """Makes an authenticated GET call guarded by the circuit breaker."""
        await self._initialize_session()
        try:
            async with self._circuit_breaker:
                async with self._session.get(
                    self.base_url + endpoint, params=params
                ) as r:
                    r.raise_for_status()
                    return await r.json()
        except CircuitOpenError as e:
            log.error(f"[red]Circuit breaker is open for API calls: {e}[/red]")
            raise
        except Exception as e:
            log.debug(f"API call to {endpoint} failed: {e}")
            raise

    async def fetch_user(self) -> Dict[str, Any]:
        return await self.api_call("user")

    async def _list(
        self, endpoint: str, user: User, **params: Any
    ) -> List[ContentNode]:
        try:
            response = await self.api_call(endpoint, **params)
        except (aiohttp.ClientError, asyncio.TimeoutError, CircuitOpenError) as e:
            raise ListingError(f"Listing '{endpoint}' failed: {e}") from e

        try:
            nodes = [ContentNode.from_payload(item) for item in response.get("items", [])]
        except (KeyError, TypeError, ValueError) as e:
            raise ListingError(f"Malformed listing from '{endpoint}': {e}") from e
        return await self.store.merge(user, nodes)

    async def desktop(self, user: User) -> List[ContentNode]:
        return await self._list("desktop", user)

    async def list_children(
        self, node: ContentNode, user: User, recursive: bool
    ) -> List[ContentNode]:
        return await self._list(
            f"objects/{node.ref_id}/children", user, recursive=int(recursive)
        )

    async def fetch_special_content(self, node: ContentNode) -> Dict[str, Any]:
        return await self.api_call(f"objects/{node.ref_id}/content")
