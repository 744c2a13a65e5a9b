# MIT License
# Copyright (c) 2025 Hashborn

"""
Snapshot Store

Saves a versioned payload to a single gzip-compressed file and loads it back,
classifying every failure instead of returning partial data.
"""

import math
import os
import stat
import tempfile
import time
import logging
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from . import envelope
from .schema import SchemaRegistry, get_global_registry
from .types import Snapshot, SnapshotInfo, SaveResult, LoadResult
from ..observability import metrics
from ..protocol.config.params import StoreConfig, DEFAULT_CONFIG
from ..protocol.crypto.hash import sha256_hex
from ..protocol.types.common import (
    SnapshotError,
    IOFailure,
    SnapshotNotFound,
    SchemaMismatch,
    VersionMismatch,
    SerializationFailure,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]

# Process umask, read once at import
_UMASK = os.umask(0)
os.umask(_UMASK)


class SnapshotStore:
    """
    Stateless save/load of snapshots.

    The store keeps no data between calls. Concurrent saves to the same path
    are not coordinated here (see SnapshotWorker).
    """

    def __init__(self, registry: Optional[SchemaRegistry] = None, config: Optional[StoreConfig] = None):
        """
        Initialize snapshot store.

        Args:
            registry: Versions this store understands (default: global registry)
            config: Compression/fsync settings (default: DEFAULT_CONFIG)
        """
        self.registry = registry if registry is not None else get_global_registry()
        self.config = config if config is not None else DEFAULT_CONFIG

    def save(self, path: PathLike, version: int, payload: Any) -> SnapshotInfo:
        """
        Serialize, compress and atomically write a snapshot.

        Args:
            path: Target file (parent directory must exist)
            version: Version tag, must be registered
            payload: Value matching the schema registered for version

        Returns:
            SnapshotInfo for the written file

        Raises:
            SchemaMismatch: If version is not registered
            SerializationFailure: If the payload cannot be encoded
            IOFailure: If the file cannot be written (target left untouched)
        """
        path = Path(path)
        start = time.monotonic()
        try:
            payload_bytes = self._encode(path, version, payload)
            raw = envelope.pack(version, payload_bytes)
            data = envelope.compress(raw, level=self.config.compress_level)
            self._atomic_write(path, data)
        except SnapshotError as e:
            e.path = e.path or str(path)
            metrics.record_failure("save", e.kind)
            logger.error(f"Failed to save snapshot {path}: {e}")
            raise

        elapsed = time.monotonic() - start
        info = SnapshotInfo(
            path=str(path),
            version=version,
            compressed_size=len(data),
            uncompressed_size=len(raw),
            payload_hash=sha256_hex(payload_bytes),
            elapsed_sec=elapsed,
        )
        metrics.record_save(info)

        logger.info(
            f"Snapshot saved to {path}: v{version}, "
            f"{info.compressed_size / 1024:.2f} KB compressed "
            f"({info.compression_ratio:.1f}% reduction) in {elapsed:.3f}s"
        )
        return info

    def load(self, path: PathLike) -> Snapshot:
        """
        Read, decompress and decode a snapshot.

        The version header is checked before the payload is decoded.

        Args:
            path: Snapshot file written by save()

        Returns:
            Snapshot with a fully validated payload

        Raises:
            SnapshotNotFound: If the file doesn't exist
            IOFailure: If the file can't be read
            CompressionFailure: If the gzip stream is corrupt or truncated
            VersionMismatch: If the version is not registered
            SchemaMismatch: If the payload shape doesn't match its version
            SerializationFailure: If the payload bytes are not decodable
        """
        path = Path(path)
        start = time.monotonic()
        try:
            data = self._read(path)
            version, payload_bytes = envelope.read_version(data)
            if not self.registry.is_known(version):
                raise VersionMismatch(version, self.registry.versions(), path=str(path))
            payload = self._decode(path, version, payload_bytes)
        except SnapshotError as e:
            e.path = e.path or str(path)
            metrics.record_failure("load", e.kind)
            logger.error(f"Failed to load snapshot {path}: {e}")
            raise

        elapsed = time.monotonic() - start
        metrics.record_load(version, elapsed)
        logger.info(f"Snapshot loaded from {path}: v{version} in {elapsed:.3f}s")

        return Snapshot(version=version, payload=payload)

    def inspect(self, path: PathLike) -> SnapshotInfo:
        """
        Describe a snapshot file without decoding its payload.

        Unknown versions are reported with known=False rather than rejected.
        """
        path = Path(path)
        data = self._read(path)
        raw = envelope.decompress(data)
        version, payload_bytes = envelope.unpack(raw)

        return SnapshotInfo(
            path=str(path),
            version=version,
            known=self.registry.is_known(version),
            compressed_size=len(data),
            uncompressed_size=len(raw),
            payload_hash=sha256_hex(payload_bytes),
        )

    def try_save(self, path: PathLike, version: int, payload: Any) -> SaveResult:
        """Like save(), but returns a SaveResult instead of raising."""
        try:
            return SaveResult(success=True, info=self.save(path, version, payload))
        except SnapshotError as e:
            return SaveResult(success=False, error=e)

    def try_load(self, path: PathLike) -> LoadResult:
        """Like load(), but returns a LoadResult instead of raising."""
        try:
            return LoadResult(success=True, snapshot=self.load(path))
        except SnapshotError as e:
            return LoadResult(success=False, error=e)

    def _encode(self, path: Path, version: int, payload: Any) -> bytes:
        try:
            adapter = self.registry.get(version)
        except KeyError:
            raise SchemaMismatch(
                f"Cannot save version {version}: no schema registered "
                f"(known: {self.registry.versions()})",
                path=str(path),
            )

        try:
            _check_finite(adapter.dump_python(payload, warnings="error"))
            return adapter.dump_json(payload, warnings="error")
        except (PydanticSerializationError, ValueError, TypeError) as e:
            raise SerializationFailure(f"Payload cannot be serialized as v{version}: {e}", path=str(path)) from e

    def _decode(self, path: Path, version: int, payload_bytes: bytes) -> Any:
        adapter = self.registry.get(version)
        try:
            return adapter.validate_json(payload_bytes)
        except ValidationError as e:
            if any(err["type"] == "json_invalid" for err in e.errors()):
                raise SerializationFailure(
                    f"Payload bytes are not valid JSON for v{version}: {e}", path=str(path)
                ) from e
            raise SchemaMismatch(
                f"Payload does not match schema v{version}: {e.error_count()} error(s)", path=str(path)
            ) from e

    def _read(self, path: Path) -> bytes:
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise SnapshotNotFound(f"Snapshot {path} not found", path=str(path)) from e
        except OSError as e:
            raise IOFailure(f"Cannot read snapshot {path}: {e}", path=str(path)) from e

    def _atomic_write(self, path: Path, data: bytes):
        """Write to a temp file beside path, then rename over it."""
        directory = path.parent
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=directory,
                prefix=self.config.temp_prefix + path.name + ".",
                suffix=self.config.temp_suffix,
            )
            with os.fdopen(fd, "wb") as f:
                os.fchmod(f.fileno(), _target_mode(path))
                f.write(data)
                f.flush()
                if self.config.fsync:
                    os.fsync(f.fileno())
            os.replace(tmp_path, path)
            tmp_path = None
        except OSError as e:
            raise IOFailure(f"Cannot write snapshot {path}: {e}", path=str(path)) from e
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError as e:
                    logger.warning(f"Failed to remove temp file {tmp_path}: {e}")

        if self.config.fsync:
            self._fsync_directory(directory)

    def _fsync_directory(self, directory: Path):
        """Persist the rename; the new file is already in place if this fails."""
        try:
            fd = os.open(directory, os.O_RDONLY)
        except OSError as e:
            logger.warning(f"Cannot open {directory} to fsync: {e}")
            return
        try:
            os.fsync(fd)
        except OSError as e:
            logger.warning(f"Failed to fsync directory {directory}: {e}")
        finally:
            os.close(fd)


def _target_mode(path: Path) -> int:
    """Keep the mode of the file being replaced, else honour the umask."""
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except OSError:
        return 0o666 & ~_UMASK


def _check_finite(value: Any):
    # JSON has no NaN/Infinity; pydantic would write null
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"non-finite float {value!r} cannot be stored")
    elif isinstance(value, dict):
        for item in value.values():
            _check_finite(item)
    elif isinstance(value, (list, tuple, set, frozenset)):
        for item in value:
            _check_finite(item)
