"""
The entry point that wires the synchronization components together.
"""

import logging
from typing import Iterable, Optional

from rich.markup import escape

from treesync.models import ContentNode, FavoriteState, SyncResults, SyncState, SyncTracker
from treesync.models.config import get_messages
from treesync.storage.database import Database
from treesync.storage.session_ledger import SyncSessionLedger

from .coordinator import RecursiveSyncCoordinator
from .dispatcher import DownloadDispatcher
from .drainer import OfflineQueueDrainer
from .interfaces import (
    ContentCatalog,
    DiskUsage,
    EventPublisher,
    FavoritesRepository,
    StatusReporter,
    Transport,
    UserProvider,
)
from .shallow import ShallowLoadController

log = logging.getLogger(__name__)


class SynchronizationService:
    """
    Owns the shared sync state and exposes the browsing and offline
    operations to the user interface.
    """

    def __init__(
        self,
        catalog: ContentCatalog,
        users: UserProvider,
        transport: Transport,
        disk_usage: DiskUsage,
        favorites: FavoritesRepository,
        db: Database,
        status: StatusReporter,
        events: EventPublisher,
        max_workers: int = 4,
        language: str = "en",
    ):
        labels = get_messages(language)
        self.users = users
        self.favorites = favorites
        self.state = SyncState()
        self.tracker = SyncTracker()
        self.ledger = SyncSessionLedger(db, self.state, labels)
        self.coordinator = RecursiveSyncCoordinator(
            catalog=catalog,
            users=users,
            transport=transport,
            disk_usage=disk_usage,
            favorites=favorites,
            ledger=self.ledger,
            state=self.state,
            tracker=self.tracker,
            dispatcher=DownloadDispatcher(transport, max_workers),
        )
        self.drainer = OfflineQueueDrainer(
            self.coordinator, favorites, users, status, self.state, self.tracker, labels
        )
        self.shallow = ShallowLoadController(
            catalog, users, self.ledger, events, self.state
        )

    @property
    def last_sync_label(self) -> Optional[str]:
        return self.ledger.last_sync_label

    async def live_load(self, node: Optional[ContentNode] = None) -> list[ContentNode]:
        """Loads one level of the tree for browsing."""
        return await self.shallow.load_shallow(node)

    async def sync_tree(self, node: ContentNode) -> SyncResults:
        return await self.coordinator.sync_tree(node)

    async def add_to_offline_queue(self, nodes: Iterable[ContentNode]) -> None:
        await self.drainer.enqueue(nodes)

    async def load_all_offline_content(self) -> None:
        """Queues every favorite of the current user for offline sync."""
        user = await self.users.current_user()
        favorites = await self.favorites.find_favorites(user)
        if not favorites:
            log.info("No favorites to synchronize.")
            return
        await self.drainer.enqueue(favorites)

    async def favorite(self, node: ContentNode) -> None:
        """Marks the node as favorite and queues it for offline sync."""
        user = await self.users.current_user()
        await self.favorites.save_favorite(node, user)
        await self.drainer.enqueue([node])

    async def unfavorite(self, node: ContentNode) -> None:
        """
        Unmarks the node. A node that is still syncing keeps downloading and
        is removed once its sync step finishes.
        """
        node.is_favorite = False
        if self.tracker.is_syncing(node):
            log.info(
                f"'{escape(node.title)}' is syncing, it will be removed afterwards."
            )
            return
        user = await self.users.current_user()
        await self.favorites.remove_from_favorites(node, user)

    def favorite_state(self, node: ContentNode) -> FavoriteState:
        return self.tracker.favorite_state(node)

    async def has_unfinished_sync(self) -> bool:
        user = await self.users.current_user()
        return await self.ledger.has_unfinished_sync(user.user_id)

    async def update_last_sync(self) -> Optional[str]:
        user = await self.users.current_user()
        await self.ledger.update_last_sync(user.user_id)
        return self.ledger.last_sync_label
