"""Shared fakes for the synchronization tests."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from pathlib import Path

import pytest

from treesync.core import SynchronizationService
from treesync.core.interfaces import Job
from treesync.exceptions import DownloadError, ListingError
from treesync.models import ContentNode, NodeType, SyncSettings, User
from treesync.storage import Database
from treesync.utils.events import EventBus

USER = User(user_id=7, name="alice")


def container(ref: str, title: str | None = None, favorite: bool = True) -> ContentNode:
    return ContentNode(
        obj_id=f"o{ref}", ref_id=ref, title=title or ref, is_favorite=favorite
    )


def file_node(
    ref: str, size: int, parent: str | None = None, needs_download: bool = True
) -> ContentNode:
    return ContentNode(
        obj_id=f"o{ref}",
        ref_id=ref,
        title=f"{ref}.pdf",
        type=NodeType.FILE,
        parent_ref_id=parent,
        file_size=size,
        needs_download=needs_download,
        download_url=f"https://files.example/{ref}",
    )


class FakeCatalog:
    """Serves a fixed tree; listings can be made to fail or to block."""

    def __init__(self, tree: dict[str, list[ContentNode]] | None = None):
        self.tree = tree or {}
        self.desktop_items: list[ContentNode] = []
        self.calls: list[tuple[str, bool]] = []
        self.fail_on: set[str] = set()
        self.gates: dict[str, asyncio.Event] = {}
        self.entered: dict[str, asyncio.Event] = defaultdict(asyncio.Event)

    def hold(self, ref_id: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[ref_id] = gate
        return gate

    async def desktop(self, user: User) -> list[ContentNode]:
        self.calls.append(("desktop", False))
        if "desktop" in self.fail_on:
            raise ListingError("desktop unavailable")
        return list(self.desktop_items)

    async def list_children(
        self, node: ContentNode, user: User, recursive: bool
    ) -> list[ContentNode]:
        self.calls.append((node.ref_id, recursive))
        self.entered[node.ref_id].set()
        if node.ref_id in self.gates:
            await self.gates[node.ref_id].wait()
        if node.ref_id in self.fail_on:
            raise ListingError(f"cannot list {node.ref_id}")
        children = list(self.tree.get(node.ref_id, []))
        if not recursive:
            return children
        result = []
        stack = children[::-1]
        while stack:
            child = stack.pop()
            result.append(child)
            stack.extend(self.tree.get(child.ref_id, [])[::-1])
        return result

    @property
    def listed(self) -> list[str]:
        return [ref for ref, recursive in self.calls if recursive]


class FakeUsers:
    def __init__(self, settings: SyncSettings | None = None):
        self.user = USER
        self._settings = settings or SyncSettings(quota_size_mb=100, download_size_mb=10)

    async def current_user(self) -> User:
        return self.user

    async def settings(self, user: User) -> SyncSettings:
        return self._settings


class FakeTransport:
    def __init__(self):
        self.downloaded: list[str] = []
        self.special: list[str] = []
        self.fail_on: set[str] = set()

    async def download_file(self, node: ContentNode) -> None:
        await asyncio.sleep(0)
        if node.ref_id in self.fail_on:
            raise DownloadError(f"{node.ref_id} broke")
        self.downloaded.append(node.ref_id)
        node.needs_download = False

    async def load_special_content(self, node: ContentNode) -> None:
        self.special.append(node.ref_id)


class FakeDiskUsage:
    def __init__(self, used: int = 0):
        self.used = used

    async def total_used_bytes(self) -> int:
        return self.used


class FakeFavorites:
    def __init__(self, favorites: list[ContentNode] | None = None):
        self.favorites = favorites or []
        self.saved: list[str] = []
        self.removed: list[str] = []
        self.offline: list[str] = []

    async def find_favorites(self, user: User) -> list[ContentNode]:
        return [n for n in self.favorites if n.is_favorite]

    async def save_favorite(self, node: ContentNode, user: User) -> None:
        node.is_favorite = True
        self.saved.append(node.ref_id)

    async def remove_from_favorites(self, node: ContentNode, user: User) -> None:
        node.is_favorite = False
        self.removed.append(node.ref_id)

    async def set_offline_available_recursive(
        self, node: ContentNode, user: User, available: bool
    ) -> None:
        node.is_offline_available = available
        self.offline.append(node.ref_id)


class FakeStatus:
    def __init__(self):
        self.current: dict[Job, str] = {}
        self.history: list[str] = []

    def set_status(self, job: Job, message: str) -> None:
        self.current[job] = message
        self.history.append(message)

    def clear_status(self, job: Job) -> None:
        self.current.pop(job, None)


@pytest.fixture
def db(tmp_path: Path) -> Database:
    return Database(tmp_path / "treesync.sqlite")


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def favorites() -> FakeFavorites:
    return FakeFavorites()


@pytest.fixture
def status() -> FakeStatus:
    return FakeStatus()


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def service(catalog, transport, favorites, status, events, db) -> SynchronizationService:
    return SynchronizationService(
        catalog=catalog,
        users=FakeUsers(),
        transport=transport,
        disk_usage=FakeDiskUsage(),
        favorites=favorites,
        db=db,
        status=status,
        events=events,
        max_workers=4,
    )
