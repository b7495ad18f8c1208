"""
Adapters layer - External integrations (Microsoft Graph, slot store, local state).
"""

from .graph_authenticator import GraphAuthenticator
from .graph_client import GraphCalendarClient
from .recruiter_sheet import RecruiterSheet
from .slot_store_client import SlotStoreClient
from .snapshot_cache import FileSnapshotCache
from .state_store import JsonStateStore
from .sync_lock import FileSyncLock

__all__ = [
    "FileSnapshotCache",
    "FileSyncLock",
    "GraphAuthenticator",
    "GraphCalendarClient",
    "JsonStateStore",
    "RecruiterSheet",
    "SlotStoreClient",
]
