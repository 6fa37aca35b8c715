"""
Interfaces of the collaborators the synchronization core depends on.

The core only orchestrates; listing, transfer, persistence and display are
provided by the objects passed into `SynchronizationService`.
"""

from enum import Enum
from typing import Any, Optional, Protocol

from treesync.models import ContentNode, SyncSettings, User


class Job(Enum):
    """Kinds of background work shown in the status bar."""

    FILE_DOWNLOAD = "file_download"
    SYNC = "sync"


class ContentCatalog(Protocol):
    async def desktop(self, user: User) -> list[ContentNode]: ...

    async def list_children(
        self, node: ContentNode, user: User, recursive: bool
    ) -> list[ContentNode]: ...


class UserProvider(Protocol):
    async def current_user(self) -> User: ...

    async def settings(self, user: User) -> SyncSettings: ...


class Transport(Protocol):
    async def download_file(self, node: ContentNode) -> None: ...

    async def load_special_content(self, node: ContentNode) -> None: ...


class DiskUsage(Protocol):
    async def total_used_bytes(self) -> int: ...


class StatusReporter(Protocol):
    def set_status(self, job: Job, message: str) -> None: ...

    def clear_status(self, job: Job) -> None: ...


class EventPublisher(Protocol):
    def publish(self, topic: str, event: Optional[dict[str, Any]] = None) -> None: ...


class FavoritesRepository(Protocol):
    async def find_favorites(self, user: User) -> list[ContentNode]: ...

    async def save_favorite(self, node: ContentNode, user: User) -> None: ...

    async def remove_from_favorites(self, node: ContentNode, user: User) -> None: ...

    async def set_offline_available_recursive(
        self, node: ContentNode, user: User, available: bool
    ) -> None: ...
