"""Tests for the offline queue drainer."""

from __future__ import annotations

import asyncio

import pytest

from treesync.core.interfaces import Job
from treesync.exceptions import SessionStorageError, StorageError
from treesync.models import FavoriteState
from treesync.storage import Database

from tests.conftest import container, file_node


class TestDrainOrder:
    """Queued favorites are synced in order, one after another."""

    async def test_visits_queue_in_order(self, service, catalog) -> None:
        nodes = [container("A"), container("B"), container("C")]

        await service.add_to_offline_queue(nodes)

        assert catalog.listed == ["A", "B", "C"]
        assert [r.container.ref_id for r in service.drainer.results] == ["A", "B", "C"]

    async def test_skips_nodes_no_longer_favorite(self, service, catalog) -> None:
        nodes = [container("A"), container("B", favorite=False), container("C")]

        await service.add_to_offline_queue(nodes)

        assert catalog.listed == ["A", "C"]

    async def test_enqueue_during_drain_extends_running_drain(
        self, service, catalog
    ) -> None:
        gate = catalog.hold("A")

        task = asyncio.create_task(service.add_to_offline_queue([container("A")]))
        await catalog.entered["A"].wait()
        assert service.state.loading_offline_content

        await service.add_to_offline_queue([container("B")])
        assert [n.ref_id for n in service.drainer.queue] == ["A", "B"]
        assert catalog.listed == ["A"]

        gate.set()
        await task

        assert catalog.listed == ["A", "B"]

    async def test_enqueue_nothing_is_a_no_op(self, service, catalog, status) -> None:
        await service.add_to_offline_queue([])

        assert catalog.calls == []
        assert status.history == []
        assert not service.state.loading_offline_content

    async def test_load_all_offline_content_uses_stored_favorites(
        self, service, catalog, favorites
    ) -> None:
        favorites.favorites = [container("A"), container("B", favorite=False)]

        await service.load_all_offline_content()

        assert catalog.listed == ["A"]

    async def test_favorite_starts_offline_sync(
        self, service, catalog, favorites
    ) -> None:
        node = container("A", favorite=False)

        await service.favorite(node)

        assert node.is_favorite
        assert catalog.listed == ["A"]
        assert favorites.offline == ["A"]


class TestDrainState:
    """Status texts and resets around a drain."""

    async def test_status_message_shows_position(
        self, service, catalog, status
    ) -> None:
        await service.add_to_offline_queue([container("A"), container("B")])

        assert status.history[0] == 'Downloading 1/2 "A"'
        assert 'Downloading 2/2 "B"' in status.history
        assert Job.FILE_DOWNLOAD not in status.current

    async def test_queue_and_cursor_reset_after_drain(self, service) -> None:
        await service.add_to_offline_queue([container("A"), container("B")])

        assert service.drainer.queue == []
        assert service.drainer.cursor == 0
        assert not service.state.loading_offline_content

    async def test_marks_subtree_offline_available(
        self, service, catalog, favorites, transport
    ) -> None:
        node = container("A")
        catalog.tree = {"A": [file_node("f1", 10, "A")]}

        await service.add_to_offline_queue([node])

        assert transport.downloaded == ["f1"]
        assert favorites.offline == ["A"]
        assert node.is_offline_available

    async def test_listing_failure_moves_on(
        self, service, catalog, favorites
    ) -> None:
        catalog.fail_on = {"A"}

        await service.add_to_offline_queue([container("A"), container("B")])

        assert catalog.listed == ["A", "B"]
        assert favorites.offline == ["B"]
        assert not service.state.loading_offline_content

    async def test_session_storage_failure_resets_queue(
        self, service, catalog, tmp_path
    ) -> None:
        class BrokenDatabase(Database):
            async def query(self, sql, params=()):
                raise StorageError("read-only file system")

        service.ledger.db = BrokenDatabase(tmp_path / "broken.sqlite")

        with pytest.raises(SessionStorageError):
            await service.add_to_offline_queue([container("A"), container("B")])

        assert catalog.calls == []
        assert service.drainer.queue == []
        assert service.drainer.cursor == 0
        assert not service.state.loading_offline_content

    async def test_unfavorited_while_syncing_is_removed(
        self, service, catalog, favorites
    ) -> None:
        node = container("A")
        gate = catalog.hold("A")

        task = asyncio.create_task(service.add_to_offline_queue([node]))
        await catalog.entered["A"].wait()
        await service.unfavorite(node)
        gate.set()
        await task

        assert "A" in favorites.removed
        assert not node.is_favorite

    async def test_queued_favorite_shows_as_syncing(self, service, catalog) -> None:
        node = container("A")
        gate = catalog.hold("A")

        task = asyncio.create_task(service.add_to_offline_queue([node]))
        await catalog.entered["A"].wait()

        assert service.drainer.tracker is service.tracker
        assert service.favorite_state(node) == FavoriteState.SYNCING

        gate.set()
        await task

        assert service.favorite_state(node) == FavoriteState.FAVORITE
