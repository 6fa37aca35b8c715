"""
Manages the SQLite database that keeps sync sessions and the local object catalog.
"""

import asyncio
import logging
import sqlite3
from pathlib import Path
from typing import Any, Sequence

from treesync.exceptions import StorageError

log = logging.getLogger(__name__)

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS synchronization (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        start_date TEXT NOT NULL,
        end_date TEXT,
        recursive_sync_running INTEGER NOT NULL DEFAULT 0
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_sync_user ON synchronization(user_id);",
    """
    CREATE TABLE IF NOT EXISTS objects (
        user_id INTEGER NOT NULL,
        obj_id TEXT NOT NULL,
        ref_id TEXT NOT NULL,
        parent_ref_id TEXT,
        title TEXT,
        type TEXT NOT NULL,
        needs_download INTEGER NOT NULL DEFAULT 1,
        is_favorite INTEGER NOT NULL DEFAULT 0,
        is_offline_available INTEGER NOT NULL DEFAULT 0,
        file_size INTEGER NOT NULL DEFAULT 0,
        file_name TEXT,
        download_url TEXT,
        last_modified TEXT,
        PRIMARY KEY (user_id, ref_id)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_objects_parent ON objects(user_id, parent_ref_id);",
)


class Database:
    """
    A thread-safe SQLite wrapper. Every statement runs in a worker thread,
    bounded by a connection semaphore.
    """

    def __init__(self, db_path: Path, pool_size: int = 5):
        self.db_path = db_path
        self._connection_semaphore = asyncio.Semaphore(pool_size)
        self._initialize_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Gets a new database connection with optimized PRAGMA settings."""
        try:
            conn = sqlite3.connect(self.db_path, timeout=30, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            return conn
        except sqlite3.Error as e:
            log.error(f"Failed to connect to database: {e}")
            raise StorageError(f"Cannot open database '{self.db_path}': {e}") from e

    def _initialize_db(self) -> None:
        """Creates the tables and indexes if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._get_connection()
        try:
            with conn:
                for statement in SCHEMA:
                    conn.execute(statement)
        except sqlite3.Error as e:
            raise StorageError(
                f"Failed to initialize database at '{self.db_path}': {e}"
            ) from e
        finally:
            conn.close()

    def _query_sync(self, sql: str, params: Sequence[Any]) -> list[sqlite3.Row]:
        conn = self._get_connection()
        try:
            with conn:
                return conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            log.debug(f"Query failed: {sql.strip()} {params!r}")
            raise StorageError(f"Database query failed: {e}") from e
        finally:
            conn.close()

    def _execute_many_sync(self, sql: str, rows: list[Sequence[Any]]) -> None:
        conn = self._get_connection()
        try:
            with conn:
                conn.executemany(sql, rows)
        except sqlite3.Error as e:
            raise StorageError(f"Batch statement failed for {len(rows)} rows: {e}") from e
        finally:
            conn.close()

    async def _run_in_executor(self, func, *args):
        """Runs a synchronous database function within the connection pool semaphore."""
        async with self._connection_semaphore:
            return await asyncio.to_thread(func, *args)

    async def query(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        """Executes one statement and returns all resulting rows."""
        return await self._run_in_executor(self._query_sync, sql, tuple(params))

    async def execute_many(self, sql: str, rows: list[Sequence[Any]]) -> None:
        """Executes one statement for a batch of parameter rows."""
        if rows:
            await self._run_in_executor(self._execute_many_sync, sql, rows)

    def _vacuum_sync(self) -> None:
        conn = self._get_connection()
        try:
            conn.execute("VACUUM;")
            conn.execute("ANALYZE;")
            conn.commit()
            log.info("Database optimized successfully.")
        except sqlite3.Error as e:
            raise StorageError(f"Database vacuum failed: {e}") from e
        finally:
            conn.close()

    async def vacuum(self) -> None:
        """Optimizes the database file by rebuilding it."""
        await self._run_in_executor(self._vacuum_sync)
