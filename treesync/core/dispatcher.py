"""
Starts the file downloads of one container and collects their outcome.
"""

import asyncio
import logging

from rich.markup import escape

from treesync.models import ContentNode

from .interfaces import Transport

log = logging.getLogger(__name__)


class DownloadDispatcher:
    """Runs one download task per file, at most `max_workers` at a time."""

    def __init__(self, transport: Transport, max_workers: int = 4):
        self.transport = transport
        self.semaphore = asyncio.Semaphore(max_workers)

    async def _download(self, node: ContentNode) -> None:
        async with self.semaphore:
            await self.transport.download_file(node)

    def dispatch(self, nodes: list[ContentNode]) -> list[asyncio.Task]:
        """Starts all downloads concurrently and returns their pending tasks."""
        return [
            asyncio.create_task(self._download(node), name=f"download-{node.obj_id}")
            for node in nodes
        ]

    async def wait_all(
        self, nodes: list[ContentNode], tasks: list[asyncio.Task]
    ) -> tuple[list[ContentNode], list[ContentNode]]:
        """
        Waits for every task. A failing download never cancels its siblings.

        Returns:
            The (downloaded, failed) node lists.
        """
        results = await asyncio.gather(*tasks, return_exceptions=True)
        downloaded, failed = [], []
        for node, outcome in zip(nodes, results):
            if isinstance(outcome, BaseException):
                failed.append(node)
                log.warning(
                    f"[yellow]✗ Download of '{escape(node.title)}' failed: {outcome}[/yellow]"
                )
            else:
                downloaded.append(node)
        return downloaded, failed
