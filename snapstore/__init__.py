# MIT License
# Copyright (c) 2025 Hashborn

"""
snapstore: versioned, compressed snapshot persistence.
"""

from .store import (
    SnapshotStore,
    SnapshotWorker,
    SchemaRegistry,
    schema,
    Snapshot,
    SnapshotInfo,
    SaveResult,
    LoadResult,
)
from .protocol.types.common import (
    ErrorKind,
    SnapshotError,
    IOFailure,
    SnapshotNotFound,
    CompressionFailure,
    SchemaMismatch,
    VersionMismatch,
    SerializationFailure,
)
from .protocol.types.world import BlockPosition, WorldSnapshot

__version__ = "0.1.0"

__all__ = [
    "SnapshotStore",
    "SnapshotWorker",
    "SchemaRegistry",
    "schema",
    "Snapshot",
    "SnapshotInfo",
    "SaveResult",
    "LoadResult",
    "ErrorKind",
    "SnapshotError",
    "IOFailure",
    "SnapshotNotFound",
    "CompressionFailure",
    "SchemaMismatch",
    "VersionMismatch",
    "SerializationFailure",
    "BlockPosition",
    "WorldSnapshot",
]
