"""
Result containers produced by a recursive synchronization.
"""

from dataclasses import dataclass, field
from enum import Enum

from .node import ContentNode


class LeftOutReason(Enum):
    """Why a file was not scheduled for download."""

    NO_WLAN = 1  # Reserved, never produced
    FILE_TOO_BIG = 2
    QUOTA_EXCEEDED = 3


@dataclass
class PartitionResult:
    """
    Four disjoint groups over the file nodes handed to the partitioner.
    `all_files` keeps the full file list, in input order, for reporting.
    """

    all_files: list[ContentNode] = field(default_factory=list)
    scheduled: list[ContentNode] = field(default_factory=list)
    already_synced: list[ContentNode] = field(default_factory=list)
    too_large: list[ContentNode] = field(default_factory=list)
    quota_exceeded: list[ContentNode] = field(default_factory=list)

    @property
    def left_out(self) -> list[tuple[ContentNode, LeftOutReason]]:
        return [(n, LeftOutReason.FILE_TOO_BIG) for n in self.too_large] + [
            (n, LeftOutReason.QUOTA_EXCEEDED) for n in self.quota_exceeded
        ]

    @property
    def scheduled_bytes(self) -> int:
        return sum(n.file_size for n in self.scheduled)


@dataclass
class SyncResults:
    """Summary of one subtree synchronization."""

    container: ContentNode
    partition: PartitionResult = field(default_factory=PartitionResult)
    downloaded: list[ContentNode] = field(default_factory=list)
    failed: list[ContentNode] = field(default_factory=list)

    def summary(self) -> dict[str, int]:
        return {
            "total": len(self.partition.all_files),
            "downloaded": len(self.downloaded),
            "failed": len(self.failed),
            "already_synced": len(self.partition.already_synced),
            "too_large": len(self.partition.too_large),
            "quota_exceeded": len(self.partition.quota_exceeded),
        }
