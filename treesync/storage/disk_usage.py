"""
Measures how much space the downloaded offline files take up.
"""

import asyncio
import logging
import os
from pathlib import Path

log = logging.getLogger(__name__)


class OfflineDiskUsage:
    """Sums the sizes of all files below the offline directory."""

    def __init__(self, offline_dir: Path):
        self.offline_dir = offline_dir

    def _walk_sync(self) -> int:
        total = 0
        for root, _dirs, files in os.walk(self.offline_dir):
            for name in files:
                try:
                    total += os.path.getsize(os.path.join(root, name))
                except OSError as e:
                    log.debug(f"Could not stat '{name}': {e}")
        return total

    async def total_used_bytes(self) -> int:
        if not self.offline_dir.is_dir():
            return 0
        return await asyncio.to_thread(self._walk_sync)
