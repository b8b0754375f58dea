"""Pipeline orchestration."""

from .coordinator import (
    IngestionCoordinator,
    PendingNotice,
    ScrapeCycleResult,
    SyncStatus,
    build_coordinator,
)

__all__ = [
    "IngestionCoordinator",
    "PendingNotice",
    "ScrapeCycleResult",
    "SyncStatus",
    "build_coordinator",
]
