"""Tests for single-level loading."""

from __future__ import annotations

import pytest

from treesync.core import SYNC_COMPLETE
from treesync.exceptions import ListingError, SessionStorageError, StorageError
from treesync.storage import Database

from tests.conftest import container, file_node


@pytest.fixture
def received(events) -> list[dict]:
    seen: list[dict] = []
    events.subscribe(SYNC_COMPLETE, seen.append)
    return seen


class TestShallowLoad:
    """Tests for loading one level of the tree."""

    async def test_loads_desktop_without_node(self, service, catalog, received) -> None:
        catalog.desktop_items = [container("A"), container("B")]

        nodes = await service.live_load()

        assert [n.ref_id for n in nodes] == ["A", "B"]
        assert catalog.calls == [("desktop", False)]
        assert received == [
            {"topic": SYNC_COMPLETE, "ref_id": None, "success": True}
        ]

    async def test_loads_direct_children_only(self, service, catalog, received) -> None:
        catalog.tree = {
            "A": [container("S"), file_node("f1", 1, "A")],
            "S": [file_node("f2", 1, "S")],
        }

        nodes = await service.live_load(container("A"))

        assert [n.ref_id for n in nodes] == ["S", "f1"]
        assert catalog.calls == [("A", False)]
        assert received[0]["ref_id"] == "A"

    async def test_flags_are_cleared(self, service) -> None:
        await service.live_load()

        assert not service.state.live_loading
        assert not service.state.recursive_sync_running

    async def test_session_is_closed(self, service) -> None:
        await service.live_load()

        assert not await service.has_unfinished_sync()
        assert service.last_sync_label == "today"

    async def test_failure_closes_session_and_notifies(
        self, service, catalog, received
    ) -> None:
        catalog.fail_on = {"desktop"}

        with pytest.raises(ListingError):
            await service.live_load()

        assert not service.state.live_loading
        assert not await service.has_unfinished_sync()
        assert received == [
            {"topic": SYNC_COMPLETE, "ref_id": None, "success": False}
        ]


class RecordingDatabase(Database):
    """Records statement verbs and refuses the ones listed in `refuse`."""

    def __init__(self, db_path, refuse=("INSERT",)):
        super().__init__(db_path)
        self.refuse = refuse
        self.statements: list[str] = []

    async def query(self, sql, params=()):
        verb = sql.split()[0]
        self.statements.append(verb)
        if verb in self.refuse:
            raise StorageError(f"{verb.lower()} refused")
        return await super().query(sql, params)


class TestSessionFailures:
    """A failing session record during a shallow load."""

    async def test_failed_begin_still_closes_session(
        self, service, catalog, received, tmp_path
    ) -> None:
        db = RecordingDatabase(tmp_path / "recording.sqlite")
        service.ledger.db = db

        with pytest.raises(SessionStorageError):
            await service.live_load()

        assert db.statements[0] == "INSERT"
        assert "SELECT" in db.statements[1:]
        assert catalog.calls == []
        assert not service.state.live_loading
        assert received == [
            {"topic": SYNC_COMPLETE, "ref_id": None, "success": False}
        ]

    async def test_begin_error_wins_over_failing_close(
        self, service, tmp_path
    ) -> None:
        service.ledger.db = RecordingDatabase(
            tmp_path / "recording.sqlite", refuse=("INSERT", "UPDATE", "SELECT")
        )

        with pytest.raises(SessionStorageError, match="insert refused"):
            await service.live_load()

        assert not service.state.live_loading

    async def test_failed_listing_closes_its_own_session(
        self, service, catalog, tmp_path
    ) -> None:
        db = RecordingDatabase(tmp_path / "recording.sqlite", refuse=())
        service.ledger.db = db
        catalog.fail_on = {"desktop"}

        with pytest.raises(ListingError):
            await service.live_load()

        assert db.statements[:2] == ["INSERT", "UPDATE"]
        assert not await service.has_unfinished_sync()
