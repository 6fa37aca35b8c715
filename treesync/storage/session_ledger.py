"""
Records the start and end of every sync session per user.

The ledger is what detects a previous run that never finished and what
provides the "last synced" label.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from treesync.exceptions import SessionStorageError, StorageError
from treesync.models import SyncState
from treesync.models.config import get_messages

from .database import Database

log = logging.getLogger(__name__)


def format_last_sync(
    last_sync: datetime, now: datetime, labels: Optional[dict[str, str]] = None
) -> str:
    """
    Returns "today", "yesterday" or the date as day.month.year without padding.

    Args:
        last_sync: End of the most recent finished session.
        now: The current time.
        labels: Translations for "today" and "yesterday".
    """
    labels = labels or get_messages("en")
    last_day: date = last_sync.date()
    today = now.date()
    if last_day == today:
        return labels["today"]
    if last_day == today - timedelta(days=1):
        return labels["yesterday"]
    return f"{last_day.day}.{last_day.month}.{last_day.year}"


class SyncSessionLedger:
    """Persists sync session records in the `synchronization` table."""

    def __init__(
        self,
        db: Database,
        state: SyncState,
        labels: Optional[dict[str, str]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.db = db
        self.state = state
        self.labels = labels or get_messages("en")
        self._clock = clock
        self.last_sync: Optional[datetime] = None
        self.last_sync_label: Optional[str] = None

    async def begin(self, user_id: int, *, chain: bool = True) -> int:
        """
        Opens a session record for the user and returns its id.

        With `chain` set, the recursive-chain flag is raised as well and
        lowered again if the record cannot be written.

        Raises:
            SessionStorageError: If the record cannot be inserted.
        """
        if chain:
            self.state.recursive_sync_running = True
        try:
            rows = await self.db.query(
                "INSERT INTO synchronization "
                "(user_id, start_date, end_date, recursive_sync_running) "
                "VALUES (?, ?, NULL, 1) RETURNING id",
                (user_id, self._clock().isoformat()),
            )
        except StorageError as e:
            if chain:
                self.state.recursive_sync_running = False
            log.error(f"[red]Could not open sync session for user {user_id}: {e}[/red]")
            raise SessionStorageError(str(e)) from e
        session_id = rows[0]["id"]
        log.debug(f"Sync session {session_id} started for user {user_id}.")
        return session_id

    async def end(
        self, user_id: int, session_id: Optional[int] = None, *, chain: bool = True
    ) -> None:
        """
        Closes the session opened by `begin` and refreshes the label.

        Ending a chain also clears the running flag of older sessions that
        were left open by an interrupted run. Without a `session_id`, as
        after a failed `begin`, only the flag and the label are updated.

        Raises:
            SessionStorageError: If the record cannot be updated.
        """
        if chain:
            self.state.recursive_sync_running = False
        log.info("Ending sync.")
        try:
            if session_id is not None:
                await self.db.query(
                    "UPDATE synchronization "
                    "SET end_date = ?, recursive_sync_running = 0 "
                    "WHERE id = ? AND user_id = ?",
                    (self._clock().isoformat(), session_id, user_id),
                )
                if chain:
                    await self.db.query(
                        "UPDATE synchronization SET recursive_sync_running = 0 "
                        "WHERE user_id = ? AND id < ? AND recursive_sync_running = 1",
                        (user_id, session_id),
                    )
            await self.update_last_sync(user_id)
        except StorageError as e:
            log.error(f"[red]Could not close sync session for user {user_id}: {e}[/red]")
            raise SessionStorageError(str(e)) from e

    async def update_last_sync(self, user_id: int) -> Optional[datetime]:
        """Reloads the end of the latest finished session and recomputes the label."""
        rows = await self.db.query(
            "SELECT end_date FROM synchronization WHERE user_id = ? "
            "AND end_date IS NOT NULL ORDER BY end_date DESC LIMIT 1",
            (user_id,),
        )
        if not rows:
            return None

        self.last_sync = datetime.fromisoformat(rows[0]["end_date"])
        self.last_sync_label = format_last_sync(
            self.last_sync, self._clock(), self.labels
        )
        log.debug(f"Last sync: {self.last_sync} ({self.last_sync_label})")
        return self.last_sync

    async def has_unfinished_sync(self, user_id: Optional[int]) -> bool:
        """Checks whether the user still has a session flagged as running."""
        if not user_id:
            raise ValueError("No user given.")
        rows = await self.db.query(
            "SELECT 1 FROM synchronization "
            "WHERE recursive_sync_running = 1 AND user_id = ? LIMIT 1",
            (user_id,),
        )
        return len(rows) > 0
