"""
Data Models Layer.

This package contains the dataclasses and Pydantic models that define the core
data structures used throughout the application, such as content nodes,
sync results and configuration.
"""

from .config import SyncConfig, SyncSettings
from .node import ContentNode, FavoriteState, NodeType, User
from .results import LeftOutReason, PartitionResult, SyncResults
from .state import SyncState, SyncTracker

__all__ = [
    "ContentNode",
    "FavoriteState",
    "LeftOutReason",
    "NodeType",
    "PartitionResult",
    "SyncConfig",
    "SyncResults",
    "SyncSettings",
    "SyncState",
    "SyncTracker",
    "User",
]
