"""
Persistence layer: storage port, typed workspace, ownership cascades,
user directory and backups.
"""

from .store import StoragePort, InMemoryStorage, JsonFileStorage, PersistentStore
from .cascade import DeletePolicy, OwnershipEdge, OwnershipGraph, DEFAULT_OWNERSHIP
from .workspace import Workspace, CollectionSpec, COLLECTIONS, COLLECTION_SPECS, new_record_id
from .migrations import attribute_untagged_records
from .backup import BackupManager, BackupFile, ExportMode, EXPORT_KEYS, APP_KEYS, HISTORY_KEY
from .users import UserDirectory

__all__ = [
    "StoragePort",
    "InMemoryStorage",
    "JsonFileStorage",
    "PersistentStore",
    "DeletePolicy",
    "OwnershipEdge",
    "OwnershipGraph",
    "DEFAULT_OWNERSHIP",
    "Workspace",
    "CollectionSpec",
    "COLLECTIONS",
    "COLLECTION_SPECS",
    "new_record_id",
    "attribute_untagged_records",
    "BackupManager",
    "BackupFile",
    "ExportMode",
    "EXPORT_KEYS",
    "APP_KEYS",
    "HISTORY_KEY",
    "UserDirectory",
]
