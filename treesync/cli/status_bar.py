"""
Shows the currently running background jobs in a Rich Live footer.
"""

import logging
from typing import Optional

from rich.console import Console, Group
from rich.live import Live
from rich.spinner import Spinner
from rich.text import Text

from treesync.core.interfaces import Job

log = logging.getLogger("treesync")


class StatusBar:
    """A footer with one spinner line per active job."""

    def __init__(self, console: Console, enabled: bool = True):
        self.console = console
        self.enabled = enabled
        self._jobs: dict[Job, str] = {}
        self._live: Optional[Live] = None

    @property
    def jobs(self) -> dict[Job, str]:
        return dict(self._jobs)

    def set_status(self, job: Job, message: str) -> None:
        self._jobs[job] = message
        if not self.enabled:
            log.info(message)
        self._refresh()

    def clear_status(self, job: Job) -> None:
        if self._jobs.pop(job, None) is not None:
            self._refresh()

    def _render(self) -> Group:
        if not self._jobs:
            return Group(Text(""))
        return Group(
            *(
                Spinner("dots", text=Text(message, style="cyan"))
                for message in self._jobs.values()
            )
        )

    def _refresh(self) -> None:
        if self._live:
            self._live.update(self._render())

    async def __aenter__(self):
        if self.enabled:
            self._live = Live(
                self._render(),
                console=self.console,
                refresh_per_second=8,
                transient=True,
            )
            self._live.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._live:
            self._live.stop()
            self._live = None
