"""
Splits the files of a subtree into download groups based on the user's limits.
"""

import logging
from typing import Iterable

from treesync.models import ContentNode, PartitionResult

log = logging.getLogger(__name__)


class QuotaPartitioner:
    """
    First-fit allocation of file nodes against a disk quota.

    Files are visited in the order given. A file is checked against the
    per-file limit before the quota, and only accepted downloads count
    towards the used bytes. All comparisons are inclusive.
    """

    def partition(
        self,
        nodes: Iterable[ContentNode],
        quota_bytes: int,
        per_file_limit_bytes: int,
        current_used_bytes: int,
    ) -> PartitionResult:
        result = PartitionResult(all_files=[n for n in nodes if n.is_file])
        used = current_used_bytes

        for node in result.all_files:
            if not node.needs_download:
                result.already_synced.append(node)
            elif node.file_size > per_file_limit_bytes:
                result.too_large.append(node)
            elif used + node.file_size <= quota_bytes:
                result.scheduled.append(node)
                used += node.file_size
            else:
                result.quota_exceeded.append(node)

        log.debug(
            f"Partitioned {len(result.all_files)} files: "
            f"{len(result.scheduled)} scheduled, "
            f"{len(result.already_synced)} synced, "
            f"{len(result.too_large)} too large, "
            f"{len(result.quota_exceeded)} over quota "
            f"(used {used}/{quota_bytes} bytes)."
        )
        return result
