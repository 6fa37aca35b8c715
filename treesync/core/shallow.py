"""
Single-level loading of the content tree for interactive browsing.
"""

import logging
from typing import Optional

from treesync.exceptions import SessionStorageError
from treesync.models import ContentNode, SyncState
from treesync.storage.session_ledger import SyncSessionLedger

from .interfaces import ContentCatalog, EventPublisher, UserProvider

log = logging.getLogger(__name__)

SYNC_COMPLETE = "sync:complete"


class ShallowLoadController:
    """Fetches the desktop or the direct children of one node."""

    def __init__(
        self,
        catalog: ContentCatalog,
        users: UserProvider,
        ledger: SyncSessionLedger,
        events: EventPublisher,
        state: SyncState,
    ):
        self.catalog = catalog
        self.users = users
        self.ledger = ledger
        self.events = events
        self.state = state

    async def load_shallow(
        self, node: Optional[ContentNode] = None
    ) -> list[ContentNode]:
        """
        Loads the user's desktop when no node is given, otherwise the node's
        immediate children. The session is closed before any error is re-raised.
        """
        self.state.live_loading = True
        success = False
        try:
            user = await self.users.current_user()
            session_id = None
            try:
                session_id = await self.ledger.begin(user.user_id, chain=False)
                if node is None:
                    nodes = await self.catalog.desktop(user)
                else:
                    nodes = await self.catalog.list_children(node, user, recursive=False)
            except Exception:
                await self._close_after_failure(user.user_id, session_id)
                raise
            await self.ledger.end(user.user_id, session_id, chain=False)
            success = True
            log.debug(f"Loaded {len(nodes)} nodes.")
            return nodes
        finally:
            self.state.live_loading = False
            self.events.publish(
                SYNC_COMPLETE,
                {"ref_id": node.ref_id if node else None, "success": success},
            )

    async def _close_after_failure(
        self, user_id: int, session_id: Optional[int]
    ) -> None:
        # The load error is what the caller sees; a failing close is only logged
        try:
            await self.ledger.end(user_id, session_id, chain=False)
        except SessionStorageError as e:
            log.error(f"[red]Could not close session after a failed load: {e}[/red]")
