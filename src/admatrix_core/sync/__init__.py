"""Per-storefront sync orchestration, scheduling and registry."""
from .locks import StorefrontSyncLock, SyncLockedError
from .orchestrator import SyncOperation, SyncOrchestrator, SyncRunResult
from .registry import (
    JsonStorefrontRegistry,
    StorefrontNotFoundError,
    StorefrontRegistry,
)
from .service import MetricsSyncService

__all__ = [
    "JsonStorefrontRegistry",
    "MetricsSyncService",
    "StorefrontNotFoundError",
    "StorefrontRegistry",
    "StorefrontSyncLock",
    "SyncLockedError",
    "SyncOperation",
    "SyncOrchestrator",
    "SyncRunResult",
]
