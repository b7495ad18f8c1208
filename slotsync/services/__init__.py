"""
Service layer that orchestrates adapters and domain logic.
"""

from .delta_sync import DeltaSyncService
from .full_sync import FullSyncService
from .results import SyncResult, SyncStatus

__all__ = ["DeltaSyncService", "FullSyncService", "SyncResult", "SyncStatus"]
