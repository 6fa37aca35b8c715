"""
Serializes recursive subtree synchronizations.

Only one subtree sync runs at a time. Requests arriving while a chain is
busy wait on a stack and are served newest first once the running sync
completes; each waiter receives the summary of its own subtree.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from rich.markup import escape

from treesync.models import ContentNode, SyncResults, SyncState, SyncTracker, User
from treesync.storage.session_ledger import SyncSessionLedger

from .dispatcher import DownloadDispatcher
from .interfaces import (
    ContentCatalog,
    DiskUsage,
    FavoritesRepository,
    Transport,
    UserProvider,
)
from .partitioner import QuotaPartitioner

log = logging.getLogger(__name__)


@dataclass
class SyncRequest:
    """
    A recursive sync waiting for the running chain to finish.

    `was_favorite` is the favorite flag at request time. Only a node that
    was a favorite is removed when the user unmarks it before it is done.
    """

    node: ContentNode
    future: asyncio.Future
    was_favorite: bool = False


class RecursiveSyncCoordinator:
    """Runs subtree downloads one after another through a single chain."""

    def __init__(
        self,
        catalog: ContentCatalog,
        users: UserProvider,
        transport: Transport,
        disk_usage: DiskUsage,
        favorites: FavoritesRepository,
        ledger: SyncSessionLedger,
        state: SyncState,
        tracker: SyncTracker,
        dispatcher: DownloadDispatcher,
        partitioner: Optional[QuotaPartitioner] = None,
    ):
        self.catalog = catalog
        self.users = users
        self.transport = transport
        self.disk_usage = disk_usage
        self.favorites = favorites
        self.ledger = ledger
        self.state = state
        self.tracker = tracker
        self.dispatcher = dispatcher
        self.partitioner = partitioner or QuotaPartitioner()
        self._pending: list[SyncRequest] = []

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def sync_tree(self, node: ContentNode) -> SyncResults:
        """
        Downloads the node and its whole subtree.

        If another chain is running, the request is parked and the returned
        summary arrives once the request has been served.

        Raises:
            ListingError: If the subtree of this node could not be listed.
            SessionStorageError: If the sync session could not be recorded.
        """
        self.tracker.mark_syncing(node)
        was_favorite = node.is_favorite
        if self.state.recursive_sync_running:
            future = asyncio.get_running_loop().create_future()
            self._pending.append(SyncRequest(node, future, was_favorite))
            log.debug(
                f"Sync of '{escape(node.title)}' queued behind the running chain "
                f"({len(self._pending)} waiting)."
            )
            return await future

        self.state.recursive_sync_running = True
        try:
            user = await self.users.current_user()
            session_id = await self.ledger.begin(user.user_id)
        except Exception as e:
            self.state.recursive_sync_running = False
            self.tracker.mark_done(node)
            self._reject_pending(e)
            raise

        try:
            return await self._run_chain(node, user, was_favorite)
        finally:
            await self.ledger.end(user.user_id, session_id)

    async def _run_chain(
        self, node: ContentNode, user: User, was_favorite: bool
    ) -> SyncResults:
        try:
            return await self._sync_one(node, user, was_favorite)
        finally:
            await self._serve_pending(user)

    async def _serve_pending(self, user: User) -> None:
        """
        Serves waiting requests, newest first, until none are left.

        If the chain is cancelled, the request in progress and every request
        still waiting are cancelled too.
        """
        request: Optional[SyncRequest] = None
        try:
            while self._pending:
                request = self._pending.pop()
                try:
                    result = await self._sync_one(
                        request.node, user, request.was_favorite
                    )
                except Exception as e:
                    log.error(
                        f"[red]✗ Sync of '{escape(request.node.title)}' failed: "
                        f"{e}[/red]"
                    )
                    if not request.future.done():
                        request.future.set_exception(e)
                else:
                    if not request.future.done():
                        request.future.set_result(result)
        finally:
            if request and not request.future.done():
                request.future.cancel()
            self._reject_pending()

    def _reject_pending(self, error: Optional[Exception] = None) -> None:
        """Fails every waiting request with `error`, or cancels them without one."""
        while self._pending:
            request = self._pending.pop()
            self.tracker.mark_done(request.node)
            if request.future.done():
                continue
            if error is None:
                request.future.cancel()
            else:
                request.future.set_exception(error)

    async def _sync_one(
        self, node: ContentNode, user: User, was_favorite: bool
    ) -> SyncResults:
        self.tracker.mark_syncing(node)
        try:
            result = await self._download_container_content(node, user)
        except (Exception, asyncio.CancelledError):
            self.tracker.mark_done(node)
            raise
        await self.finalize_favorite(node, user, was_favorite)
        return result

    async def finalize_favorite(
        self, node: ContentNode, user: User, was_favorite: bool = True
    ) -> None:
        """
        Settles the favorite status after a sync. A favorite the user
        unmarked while it was downloading is removed from the favorites.
        A node that never was a favorite is left alone.
        """
        self.tracker.mark_done(node)
        if node.is_favorite:
            await self.favorites.save_favorite(node, user)
        elif was_favorite:
            await self.favorites.remove_from_favorites(node, user)

    async def _download_container_content(
        self, container: ContentNode, user: User
    ) -> SyncResults:
        nodes = await self.catalog.list_children(container, user, recursive=True)
        nodes = [*nodes, container]

        settings = await self.users.settings(user)
        used_bytes = await self.disk_usage.total_used_bytes()
        partition = self.partitioner.partition(
            nodes, settings.quota_bytes, settings.download_limit_bytes, used_bytes
        )
        results = SyncResults(container=container, partition=partition)

        tasks = self.dispatcher.dispatch(partition.scheduled)
        results.downloaded, results.failed = await self.dispatcher.wait_all(
            partition.scheduled, tasks
        )
        if results.failed:
            log.warning(
                f"[yellow]Encountered {len(results.failed)} failed downloads in "
                f"'{escape(container.title)}'.[/yellow]"
            )

        await self._load_special_content(nodes)
        log.info(
            f"[green]✓ Synced '{escape(container.title)}':[/green] {results.summary()}"
        )
        return results

    async def _load_special_content(self, nodes: list[ContentNode]) -> None:
        special = [n for n in nodes if n.is_special]
        outcomes = await asyncio.gather(
            *(self.transport.load_special_content(n) for n in special),
            return_exceptions=True,
        )
        for node, outcome in zip(special, outcomes):
            if isinstance(outcome, BaseException):
                log.warning(
                    f"[yellow]Could not load '{escape(node.title)}': {outcome}[/yellow]"
                )
            else:
                node.needs_download = False
