"""
Works through the offline queue, one top-level favorite at a time.
"""

import logging
from typing import Iterable, Optional

from rich.markup import escape

from treesync.exceptions import ListingError
from treesync.models import ContentNode, SyncResults, SyncState, SyncTracker, User
from treesync.models.config import get_messages

from .coordinator import RecursiveSyncCoordinator
from .interfaces import FavoritesRepository, Job, StatusReporter, UserProvider

log = logging.getLogger(__name__)


class OfflineQueueDrainer:
    """
    Keeps a list of favorites waiting for offline sync and a cursor into it.

    Nodes added while a drain is running are picked up by that drain. When
    the cursor reaches the end of the list, list and cursor are reset and
    the drain flag is lowered.
    """

    def __init__(
        self,
        coordinator: RecursiveSyncCoordinator,
        favorites: FavoritesRepository,
        users: UserProvider,
        status: StatusReporter,
        state: SyncState,
        tracker: SyncTracker,
        labels: Optional[dict[str, str]] = None,
    ):
        self.coordinator = coordinator
        self.favorites = favorites
        self.users = users
        self.status = status
        self.state = state
        self.tracker = tracker
        self.labels = labels or get_messages("en")
        self._queue: list[ContentNode] = []
        self._cursor = 0
        self.results: list[SyncResults] = []

    @property
    def queue(self) -> list[ContentNode]:
        return list(self._queue)

    @property
    def cursor(self) -> int:
        return self._cursor

    async def enqueue(self, nodes: Iterable[ContentNode]) -> None:
        """Adds nodes to the queue and starts draining unless already running."""
        nodes = list(nodes)
        if not nodes:
            return
        self._queue.extend(nodes)
        self._update_status_message()
        if not self.state.loading_offline_content:
            await self.drain()

    async def drain(self) -> None:
        """
        Processes queued nodes in order until the cursor reaches the end.

        Calling this while a drain is already running returns immediately.

        Raises:
            SessionStorageError: If a sync session cannot be recorded. The
            queue is reset before the error propagates.
        """
        if self.state.loading_offline_content:
            return
        self.state.loading_offline_content = True
        self.results = []
        try:
            user = await self.users.current_user() if self._queue else None
            while self._cursor < len(self._queue):
                self._update_status_message()
                node = self._queue[self._cursor]
                # The user may have unmarked the node since it was queued
                if node.is_favorite:
                    await self._sync_favorite(node, user)
                else:
                    log.debug(f"Skipping '{escape(node.title)}', no longer a favorite.")
                self._cursor += 1
                self.status.clear_status(Job.FILE_DOWNLOAD)
        finally:
            self._queue = []
            self._cursor = 0
            self.state.loading_offline_content = False
            self.status.clear_status(Job.FILE_DOWNLOAD)

    async def _sync_favorite(self, node: ContentNode, user: User) -> None:
        self.tracker.mark_syncing(node)
        try:
            result = await self.coordinator.sync_tree(node)
        except ListingError as e:
            log.error(
                f"[red]✗ Could not list '{escape(node.title)}', skipping: {e}[/red]"
            )
            return
        self.results.append(result)
        await self.favorites.set_offline_available_recursive(node, user, True)
        # The user may have unmarked the node during the download
        await self.coordinator.finalize_favorite(node, user)

    def _update_status_message(self) -> None:
        if self._cursor >= len(self._queue):
            return
        position = self._cursor + 1
        title = self._queue[self._cursor].title
        message = (
            f'{self.labels["downloading"]} {position}/{len(self._queue)} "{title}"'
        )
        self.status.clear_status(Job.FILE_DOWNLOAD)
        self.status.set_status(Job.FILE_DOWNLOAD, message)
