from .api_client import ApiResult, OfflineAwareClient
from .config import ClientConfig
from .network_status import NetworkMonitor
from .offline_storage import OfflineQueue, QueuedOperation
from .sync_service import SyncResult, SyncService

__all__ = [
    "ApiResult",
    "ClientConfig",
    "NetworkMonitor",
    "OfflineAwareClient",
    "OfflineQueue",
    "QueuedOperation",
    "SyncResult",
    "SyncService",
]
