"""
Storage Layer.

This package handles all data persistence, including the configuration file,
the sqlite database with sync sessions and the local object catalog, and disk
usage of the offline files.
"""

from .config_manager import ConfigManager
from .database import Database
from .disk_usage import OfflineDiskUsage
from .object_store import ObjectStore
from .session_ledger import SyncSessionLedger, format_last_sync

__all__ = [
    "ConfigManager",
    "Database",
    "ObjectStore",
    "OfflineDiskUsage",
    "SyncSessionLedger",
    "format_last_sync",
]
