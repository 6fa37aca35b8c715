"""
Local catalog of content nodes per user, including favorite and offline state.
"""

import asyncio
import logging
import shutil
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

from treesync.models import ContentNode, NodeType, User

from .database import Database

log = logging.getLogger(__name__)

_COLUMNS = (
    "obj_id, ref_id, parent_ref_id, title, type, needs_download, is_favorite, "
    "is_offline_available, file_size, file_name, download_url, last_modified"
)

_SUBTREE = """
    WITH RECURSIVE subtree(ref_id) AS (
        SELECT ? UNION
        SELECT o.ref_id FROM objects o JOIN subtree s ON o.parent_ref_id = s.ref_id
        WHERE o.user_id = ?
    )
"""


def _row_to_node(row: sqlite3.Row) -> ContentNode:
    return ContentNode(
        obj_id=row["obj_id"],
        ref_id=row["ref_id"],
        parent_ref_id=row["parent_ref_id"],
        title=row["title"] or "",
        type=NodeType(row["type"]),
        needs_download=bool(row["needs_download"]),
        is_favorite=bool(row["is_favorite"]),
        is_offline_available=bool(row["is_offline_available"]),
        file_size=row["file_size"],
        file_name=row["file_name"] or "",
        download_url=row["download_url"] or "",
        last_modified=(
            datetime.fromisoformat(row["last_modified"])
            if row["last_modified"]
            else None
        ),
    )


class ObjectStore:
    """
    Stores the nodes seen on the remote and the user's favorites.

    Removing a favorite also deletes its downloaded files when an offline
    directory is configured.
    """

    def __init__(self, db: Database, offline_dir: Optional[Path] = None):
        self.db = db
        self.offline_dir = offline_dir

    async def find(self, user: User, ref_id: str) -> Optional[ContentNode]:
        rows = await self.db.query(
            f"SELECT {_COLUMNS} FROM objects WHERE user_id = ? AND ref_id = ?",
            (user.user_id, ref_id),
        )
        return _row_to_node(rows[0]) if rows else None

    async def children(self, user: User, parent_ref_id: str) -> list[ContentNode]:
        rows = await self.db.query(
            f"SELECT {_COLUMNS} FROM objects WHERE user_id = ? AND parent_ref_id = ? "
            "ORDER BY title",
            (user.user_id, parent_ref_id),
        )
        return [_row_to_node(row) for row in rows]

    async def merge(self, user: User, nodes: list[ContentNode]) -> list[ContentNode]:
        """
        Stores remote nodes, keeping local favorite and offline state.

        A node needs a download when it is new, when it still needed one,
        when the remote copy is newer than the stored one, or when the
        offline copy of a file has gone missing.
        """
        merged = []
        for node in nodes:
            stored = await self.find(user, node.ref_id)
            if stored:
                node.is_favorite = stored.is_favorite
                node.is_offline_available = stored.is_offline_available
                newer = bool(
                    node.last_modified
                    and stored.last_modified
                    and node.last_modified > stored.last_modified
                )
                missing = await self._missing_locally(user, node)
                node.needs_download = stored.needs_download or newer or missing
            merged.append(node)

        await self.db.execute_many(
            f"INSERT OR REPLACE INTO objects (user_id, {_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [self._to_row(user, node) for node in merged],
        )
        return merged

    async def _missing_locally(self, user: User, node: ContentNode) -> bool:
        if not self.offline_dir or not node.is_file:
            return False
        copy_dir = self.offline_dir / str(user.user_id) / node.obj_id
        return not await asyncio.to_thread(copy_dir.is_dir)

    @staticmethod
    def _to_row(user: User, node: ContentNode) -> tuple:
        return (
            user.user_id,
            node.obj_id,
            node.ref_id,
            node.parent_ref_id,
            node.title,
            node.type.value,
            int(node.needs_download),
            int(node.is_favorite),
            int(node.is_offline_available),
            node.file_size,
            node.file_name,
            node.download_url,
            node.last_modified.isoformat() if node.last_modified else None,
        )

    async def mark_downloaded(self, node: ContentNode, user: User) -> None:
        node.needs_download = False
        await self.db.query(
            "UPDATE objects SET needs_download = 0 WHERE user_id = ? AND ref_id = ?",
            (user.user_id, node.ref_id),
        )

    async def find_favorites(self, user: User) -> list[ContentNode]:
        rows = await self.db.query(
            f"SELECT {_COLUMNS} FROM objects WHERE user_id = ? AND is_favorite = 1 "
            "ORDER BY title",
            (user.user_id,),
        )
        return [_row_to_node(row) for row in rows]

    async def find_offline_available(self, user: User) -> list[ContentNode]:
        """Returns every stored node of the user that is available offline."""
        rows = await self.db.query(
            f"SELECT {_COLUMNS} FROM objects WHERE user_id = ? "
            "AND is_offline_available = 1 ORDER BY title",
            (user.user_id,),
        )
        return [_row_to_node(row) for row in rows]

    async def save_favorite(self, node: ContentNode, user: User) -> None:
        node.is_favorite = True
        await self.db.execute_many(
            f"INSERT OR REPLACE INTO objects (user_id, {_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [self._to_row(user, node)],
        )

    async def remove_from_favorites(self, node: ContentNode, user: User) -> None:
        """Unmarks the node and drops the offline copies of its whole subtree."""
        node.is_favorite = False
        node.is_offline_available = False
        await self.db.query(
            "UPDATE objects SET is_favorite = 0 WHERE user_id = ? AND ref_id = ?",
            (user.user_id, node.ref_id),
        )
        subtree = await self.db.query(
            _SUBTREE + "SELECT o.obj_id FROM objects o JOIN subtree s "
            "ON o.ref_id = s.ref_id WHERE o.user_id = ? AND o.type = ?",
            (node.ref_id, user.user_id, user.user_id, NodeType.FILE.value),
        )
        await self.db.query(
            _SUBTREE + "UPDATE objects SET is_offline_available = 0, needs_download = 1 "
            "WHERE user_id = ? AND ref_id IN (SELECT ref_id FROM subtree)",
            (node.ref_id, user.user_id, user.user_id),
        )
        if self.offline_dir:
            user_dir = self.offline_dir / str(user.user_id)
            for row in subtree:
                await asyncio.to_thread(
                    shutil.rmtree, user_dir / row["obj_id"], ignore_errors=True
                )
        log.info(f"Removed '{node.title}' from favorites ({len(subtree)} files).")

    async def set_offline_available_recursive(
        self, node: ContentNode, user: User, available: bool
    ) -> None:
        node.is_offline_available = available
        await self.db.query(
            _SUBTREE + "UPDATE objects SET is_offline_available = ? "
            "WHERE user_id = ? AND ref_id IN (SELECT ref_id FROM subtree)",
            (node.ref_id, user.user_id, int(available), user.user_id),
        )
