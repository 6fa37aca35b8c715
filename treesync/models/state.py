"""
Shared runtime state of the synchronizer.
"""

from dataclasses import dataclass, field

from .node import ContentNode, FavoriteState


@dataclass
class SyncState:
    """
    The three phase flags. Each flag is written only by the component that
    owns its phase and read by callers to avoid re-entrant triggering.
    """

    live_loading: bool = False
    loading_offline_content: bool = False
    recursive_sync_running: bool = False


@dataclass
class SyncTracker:
    """Ids of nodes whose subtree sync is currently in flight."""

    _syncing: set[str] = field(default_factory=set)

    def mark_syncing(self, node: ContentNode) -> None:
        self._syncing.add(node.obj_id)

    def mark_done(self, node: ContentNode) -> None:
        self._syncing.discard(node.obj_id)

    def is_syncing(self, node: ContentNode) -> bool:
        return node.obj_id in self._syncing

    def favorite_state(self, node: ContentNode) -> FavoriteState:
        if self.is_syncing(node):
            return FavoriteState.SYNCING
        return FavoriteState.FAVORITE if node.is_favorite else FavoriteState.NONE
