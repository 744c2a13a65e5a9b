# MIT License
# Copyright (c) 2025 Hashborn

from enum import Enum
from typing import Iterable, Optional


class ErrorKind(str, Enum):
    IO_FAILURE = "IO_FAILURE"
    COMPRESSION_FAILURE = "COMPRESSION_FAILURE"
    SCHEMA_MISMATCH = "SCHEMA_MISMATCH"
    SERIALIZATION_FAILURE = "SERIALIZATION_FAILURE"


class SnapshotError(Exception):
    """Base class for every failure surfaced by the snapshot store."""
    kind: ErrorKind = None

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path


class IOFailure(SnapshotError):
    """Open, read, write or rename failed."""
    kind = ErrorKind.IO_FAILURE


class SnapshotNotFound(IOFailure):
    pass


class CompressionFailure(SnapshotError):
    """The file is not a valid gzip stream (corrupt or truncated)."""
    kind = ErrorKind.COMPRESSION_FAILURE


class SchemaMismatch(SnapshotError):
    """Version unknown, or payload shape disagrees with the declared version."""
    kind = ErrorKind.SCHEMA_MISMATCH


class VersionMismatch(SchemaMismatch):
    def __init__(self, version: int, supported: Iterable[int], path: Optional[str] = None):
        self.version = version
        self.supported = sorted(supported)
        super().__init__(
            f"Unsupported snapshot version {version} (supported: {self.supported})",
            path=path,
        )


class SerializationFailure(SnapshotError):
    """Payload could not be encoded, or payload bytes could not be decoded."""
    kind = ErrorKind.SERIALIZATION_FAILURE
