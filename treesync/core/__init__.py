"""
Core synchronization engine.

`SynchronizationService` is the facade. Offline requests flow from the
`OfflineQueueDrainer` through the `RecursiveSyncCoordinator`, which
partitions each subtree with the `QuotaPartitioner` and hands the accepted
files to the `DownloadDispatcher`. Browsing goes through the
`ShallowLoadController`.
"""

from .coordinator import RecursiveSyncCoordinator, SyncRequest
from .dispatcher import DownloadDispatcher
from .drainer import OfflineQueueDrainer
from .interfaces import Job
from .partitioner import QuotaPartitioner
from .service import SynchronizationService
from .shallow import SYNC_COMPLETE, ShallowLoadController

__all__ = [
    "DownloadDispatcher",
    "Job",
    "OfflineQueueDrainer",
    "QuotaPartitioner",
    "RecursiveSyncCoordinator",
    "SYNC_COMPLETE",
    "ShallowLoadController",
    "SyncRequest",
    "SynchronizationService",
]
