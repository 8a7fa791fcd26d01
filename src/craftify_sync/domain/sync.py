"""Sync status models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from craftify_sync.domain.errors import SyncError


class SyncStatus(Enum):
    """Lifecycle of the background sync."""

    IDLE = "idle"
    SYNCING = "syncing"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncState:
    """Current sync status with the last error and success time."""

    status: SyncStatus = SyncStatus.IDLE
    error: SyncError | None = None
    last_synced_at: datetime | None = None

    def syncing(self) -> "SyncState":
        return SyncState(SyncStatus.SYNCING, None, self.last_synced_at)

    def failed(self, error: SyncError) -> "SyncState":
        return SyncState(SyncStatus.FAILED, error, self.last_synced_at)

    def describe(self) -> str:
        """Render a short status line for a sync indicator."""
        if self.status is SyncStatus.SYNCING:
            return "Syncing recipes..."
        if self.status is SyncStatus.FAILED and self.error is not None:
            return f"Sync failed: {self.error.user_message}"
        if self.last_synced_at is not None:
            return f"Last synced: {self.last_synced_at:%Y-%m-%d %H:%M}"
        return "Not synced"
