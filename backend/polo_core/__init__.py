"""Local store, REST client and sync layer for the polo management client."""

from .client import ApiClient, ListShape
from .errors import ApiError, DecodingError, InvalidURLError, NetworkError, PoloClientError, UnsyncedReferenceError
from .push import PushSynchronizer
from .reconcile import EntityReconciler, ReconcileResult
from .session import FileSecretStore, MemorySecretStore, Session, UserProfile
from .store import LocalStore, RecordNotFound
from .sync import SyncService

__all__ = [
    "ApiClient",
    "ListShape",
    "ApiError",
    "DecodingError",
    "InvalidURLError",
    "NetworkError",
    "PoloClientError",
    "UnsyncedReferenceError",
    "PushSynchronizer",
    "EntityReconciler",
    "ReconcileResult",
    "FileSecretStore",
    "MemorySecretStore",
    "Session",
    "UserProfile",
    "LocalStore",
    "RecordNotFound",
    "SyncService",
]
