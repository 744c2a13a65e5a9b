# MIT License
# Copyright (c) 2025 Hashborn

"""
Snapshot Store

Versioned, gzip-compressed, atomically written snapshot files.
"""

from .snapshot_store import SnapshotStore
from .schema import SchemaRegistry, schema, get_global_registry
from .types import Snapshot, SnapshotInfo, SaveResult, LoadResult
from .worker import SnapshotWorker

__all__ = [
    "SnapshotStore",
    "SchemaRegistry",
    "schema",
    "get_global_registry",
    "Snapshot",
    "SnapshotInfo",
    "SaveResult",
    "LoadResult",
    "SnapshotWorker",
]
