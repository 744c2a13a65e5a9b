# MIT License
# Copyright (c) 2025 Hashborn

"""
Snapshot Data Structures
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..protocol.types.common import ErrorKind, SnapshotError


class Snapshot(BaseModel):
    """
    Loaded snapshot: version tag plus a fully validated payload.
    """
    version: int = Field(..., description="Snapshot format version")
    payload: Any = Field(..., description="Payload decoded with the schema of this version")


class SnapshotInfo(BaseModel):
    """
    Snapshot file facts (returned by save and inspect).
    """
    path: str = Field(..., description="Snapshot file path")
    version: int = Field(..., description="Snapshot format version")
    known: bool = Field(default=True, description="Whether this build understands the version")
    compressed_size: int = Field(..., description="File size (bytes)")
    uncompressed_size: int = Field(..., description="Envelope size before compression (bytes)")
    payload_hash: str = Field(..., description="SHA256 of the payload bytes")
    elapsed_sec: float = Field(default=0.0, description="Wall time of the operation")

    @property
    def compression_ratio(self) -> float:
        """Percent reduction from uncompressed to compressed size."""
        if not self.uncompressed_size:
            return 0.0
        return (1 - self.compressed_size / self.uncompressed_size) * 100


class SaveResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    info: Optional[SnapshotInfo] = None
    error: Optional[SnapshotError] = None

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None


class LoadResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    snapshot: Optional[Snapshot] = None
    error: Optional[SnapshotError] = None

    @property
    def version(self) -> Optional[int]:
        return self.snapshot.version if self.snapshot else None

    @property
    def payload(self) -> Any:
        return self.snapshot.payload if self.snapshot else None

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None
