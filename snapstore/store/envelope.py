# MIT License
# Copyright (c) 2025 Hashborn

"""
Snapshot envelope codec.

On disk a snapshot is one gzip stream. Decompressed it is:

    [4 bytes]  version, unsigned big-endian
    [N bytes]  payload, JSON encoded by the schema registered for that version
"""

import gzip
import struct
import zlib
from typing import Tuple

from ..protocol.config.params import VERSION_STRUCT, VERSION_HEADER_SIZE, MAX_VERSION
from ..protocol.types.common import CompressionFailure, SerializationFailure


def pack(version: int, payload: bytes) -> bytes:
    """Prefix payload bytes with the fixed-width version header."""
    if not 0 <= version <= MAX_VERSION:
        raise SerializationFailure(f"Version {version} does not fit in the envelope header")
    return struct.pack(VERSION_STRUCT, version) + payload


def unpack(envelope: bytes) -> Tuple[int, bytes]:
    """
    Split a decompressed envelope into (version, payload bytes).

    Raises:
        SerializationFailure: If the envelope is shorter than its header
    """
    if len(envelope) < VERSION_HEADER_SIZE:
        raise SerializationFailure(
            f"Truncated envelope: {len(envelope)} bytes, header needs {VERSION_HEADER_SIZE}"
        )
    (version,) = struct.unpack_from(VERSION_STRUCT, envelope)
    return version, envelope[VERSION_HEADER_SIZE:]


def compress(data: bytes, level: int = 6) -> bytes:
    # mtime=0 keeps output deterministic for identical input
    return gzip.compress(data, compresslevel=level, mtime=0)


def decompress(data: bytes) -> bytes:
    """
    Inflate a gzip stream, checking its CRC.

    Raises:
        CompressionFailure: On a corrupt, truncated or non-gzip stream
    """
    try:
        return gzip.decompress(data)
    except (gzip.BadGzipFile, zlib.error, EOFError) as e:
        raise CompressionFailure(f"Corrupt snapshot stream: {e}") from e


def read_version(data: bytes) -> Tuple[int, bytes]:
    """Decompress file bytes and return (version, payload bytes)."""
    return unpack(decompress(data))
