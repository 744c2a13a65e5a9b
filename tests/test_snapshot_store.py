import os
import gzip
import stat
import shutil
import tempfile
from typing import Any, Dict, List, Optional, Set
from uuid import UUID

import pytest

from snapstore.store import envelope
from snapstore.store.schema import SchemaRegistry
from snapstore.store.snapshot_store import SnapshotStore
from snapstore.protocol.config.params import StoreConfig
from snapstore.protocol.types.common import (
    ErrorKind,
    IOFailure,
    SnapshotNotFound,
    CompressionFailure,
    SchemaMismatch,
    VersionMismatch,
    SerializationFailure,
)
from snapstore.protocol.types.world import BlockPosition, WorldSnapshot, capture_cube

PLAYER_1 = UUID("11111111-1111-1111-1111-111111111111")


@pytest.fixture
def snap_dir():
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir)


@pytest.fixture
def store():
    registry = SchemaRegistry()
    registry.register(1, WorldSnapshot)
    return SnapshotStore(registry=registry, config=StoreConfig(fsync=False))


def make_world(radius=2) -> WorldSnapshot:
    origin = BlockPosition(world="world", x=0, y=0, z=0)
    blocks = capture_cube("world", origin, radius, lambda x, y, z: "stone" if y < 0 else "air")
    players = {PLAYER_1, UUID("22222222-2222-2222-2222-222222222222")}
    return WorldSnapshot(blocks=blocks, players=players)


def test_example_scenario(store, snap_dir):
    path = os.path.join(snap_dir, "snap.bin")
    payload = WorldSnapshot(
        blocks={BlockPosition(world="world", x=0, y=0, z=0): "stone"},
        players={PLAYER_1},
    )

    store.save(path, 1, payload)
    snapshot = store.load(path)

    assert snapshot.version == 1
    assert snapshot.payload.blocks == {BlockPosition(world="world", x=0, y=0, z=0): "stone"}
    assert snapshot.payload.players == {PLAYER_1}


def test_round_trip_world(store, snap_dir):
    path = os.path.join(snap_dir, "world.snap.gz")
    payload = make_world(radius=3)

    info = store.save(path, 1, payload)
    snapshot = store.load(path)

    assert snapshot.payload == payload
    assert len(snapshot.payload.blocks) == 7 ** 3
    assert info.version == 1
    assert info.compressed_size == os.path.getsize(path)
    assert info.compressed_size < info.uncompressed_size


def test_round_trip_plain_containers(snap_dir):
    registry = SchemaRegistry()
    registry.register(7, Dict[str, List[int]])
    registry.register(8, Set[UUID])
    store = SnapshotStore(registry=registry, config=StoreConfig(fsync=False))

    mapping = {"a": [1, 2, 3], "b": [], "c": [-5]}
    store.save(os.path.join(snap_dir, "map.bin"), 7, mapping)
    assert store.load(os.path.join(snap_dir, "map.bin")).payload == mapping

    members = {PLAYER_1, UUID(int=0), UUID(int=2**128 - 1)}
    store.save(os.path.join(snap_dir, "set.bin"), 8, members)
    loaded = store.load(os.path.join(snap_dir, "set.bin"))
    assert loaded.version == 8
    assert loaded.payload == members


def test_empty_payload(store, snap_dir):
    path = os.path.join(snap_dir, "empty.bin")
    store.save(path, 1, WorldSnapshot())

    payload = store.load(path).payload
    assert payload.blocks == {}
    assert payload.players == set()
    assert isinstance(payload.blocks, dict)
    assert isinstance(payload.players, set)


def test_save_is_idempotent(store, snap_dir):
    path = os.path.join(snap_dir, "snap.bin")
    payload = make_world()

    store.save(path, 1, payload)
    with open(path, "rb") as f:
        first = f.read()
    assert store.load(path).payload == payload

    store.save(path, 1, payload)
    with open(path, "rb") as f:
        second = f.read()
    assert store.load(path).payload == payload

    assert first == second


def test_save_replaces_existing(store, snap_dir):
    path = os.path.join(snap_dir, "snap.bin")
    store.save(path, 1, make_world(radius=1))
    store.save(path, 1, WorldSnapshot(players={PLAYER_1}))

    payload = store.load(path).payload
    assert payload.blocks == {}
    assert payload.players == {PLAYER_1}
    assert os.listdir(snap_dir) == ["snap.bin"]


def test_file_is_gzip_with_version_header(store, snap_dir):
    path = os.path.join(snap_dir, "snap.bin")
    store.save(path, 1, WorldSnapshot())

    with gzip.open(path, "rb") as f:
        raw = f.read()

    assert raw[:4] == b"\x00\x00\x00\x01"
    assert raw[4:].startswith(b"{")


# --- Atomicity ---

def test_failed_rename_leaves_previous_file(store, snap_dir, monkeypatch):
    path = os.path.join(snap_dir, "snap.bin")
    original = make_world(radius=1)
    store.save(path, 1, original)

    def broken_replace(src, dst):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(os, "replace", broken_replace)

    with pytest.raises(IOFailure, match="No space left"):
        store.save(path, 1, WorldSnapshot(players={PLAYER_1}))

    monkeypatch.undo()
    assert store.load(path).payload == original
    assert os.listdir(snap_dir) == ["snap.bin"]


def test_failed_write_leaves_no_file(snap_dir, monkeypatch):
    registry = SchemaRegistry()
    registry.register(1, WorldSnapshot)
    store = SnapshotStore(registry=registry, config=StoreConfig(fsync=True))
    path = os.path.join(snap_dir, "snap.bin")

    def broken_fsync(fd):
        raise OSError(5, "Input/output error")

    monkeypatch.setattr(os, "fsync", broken_fsync)

    result = store.try_save(path, 1, make_world())

    assert result.success is False
    assert result.error_kind == ErrorKind.IO_FAILURE
    assert os.listdir(snap_dir) == []


def test_new_file_honours_umask(store, snap_dir):
    path = os.path.join(snap_dir, "snap.bin")
    umask = os.umask(0)
    os.umask(umask)

    store.save(path, 1, WorldSnapshot())

    assert stat.S_IMODE(os.stat(path).st_mode) == 0o666 & ~umask


def test_replace_keeps_target_mode(store, snap_dir):
    path = os.path.join(snap_dir, "snap.bin")
    store.save(path, 1, WorldSnapshot())
    os.chmod(path, 0o640)

    store.save(path, 1, make_world(radius=1))

    assert stat.S_IMODE(os.stat(path).st_mode) == 0o640


def test_fsync_covers_file_and_directory(snap_dir, monkeypatch):
    registry = SchemaRegistry()
    registry.register(1, WorldSnapshot)
    store = SnapshotStore(registry=registry, config=StoreConfig(fsync=True))
    path = os.path.join(snap_dir, "snap.bin")

    real_fsync = os.fsync
    synced = []

    def tracking_fsync(fd):
        synced.append(stat.S_ISDIR(os.fstat(fd).st_mode))
        real_fsync(fd)

    monkeypatch.setattr(os, "fsync", tracking_fsync)

    store.save(path, 1, WorldSnapshot())

    assert synced == [False, True]


def test_save_into_missing_directory(store, snap_dir):
    path = os.path.join(snap_dir, "missing", "snap.bin")
    with pytest.raises(IOFailure):
        store.save(path, 1, WorldSnapshot())


# --- Save failures ---

def test_save_unknown_version(store, snap_dir):
    path = os.path.join(snap_dir, "snap.bin")
    with pytest.raises(SchemaMismatch, match="no schema registered"):
        store.save(path, 99, WorldSnapshot())
    assert not os.path.exists(path)


def test_save_unserializable_payload(snap_dir):
    registry = SchemaRegistry()
    registry.register(5, Dict[str, Any])
    store = SnapshotStore(registry=registry, config=StoreConfig(fsync=False))
    path = os.path.join(snap_dir, "snap.bin")

    with pytest.raises(SerializationFailure):
        store.save(path, 5, {"handle": object()})
    assert os.listdir(snap_dir) == []


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_save_rejects_non_finite_floats(snap_dir, value):
    registry = SchemaRegistry()
    registry.register(1, Dict[str, Optional[float]])
    registry.register(2, Dict[str, List[float]])
    store = SnapshotStore(registry=registry, config=StoreConfig(fsync=False))

    optional = store.try_save(os.path.join(snap_dir, "optional.bin"), 1, {"x": value, "y": 1.5})
    nested = store.try_save(os.path.join(snap_dir, "nested.bin"), 2, {"x": [0.0, value]})

    assert optional.error_kind == ErrorKind.SERIALIZATION_FAILURE
    assert nested.error_kind == ErrorKind.SERIALIZATION_FAILURE
    assert os.listdir(snap_dir) == []


def test_finite_floats_round_trip(snap_dir):
    registry = SchemaRegistry()
    registry.register(1, Dict[str, Optional[float]])
    store = SnapshotStore(registry=registry, config=StoreConfig(fsync=False))
    path = os.path.join(snap_dir, "floats.bin")
    payload = {"x": 0.1, "y": -1e308, "z": None}

    store.save(path, 1, payload)

    assert store.load(path).payload == payload


# --- Load failures ---

def test_load_missing_file(store, snap_dir):
    with pytest.raises(SnapshotNotFound) as exc_info:
        store.load(os.path.join(snap_dir, "nope.bin"))
    assert exc_info.value.kind == ErrorKind.IO_FAILURE


def test_version_gating_skips_payload_decode(store, snap_dir, monkeypatch):
    path = os.path.join(snap_dir, "snap.bin")
    store.save(path, 1, make_world())

    newer = SchemaRegistry()
    newer.register(2, WorldSnapshot)
    newer.register(3, WorldSnapshot)
    newer_store = SnapshotStore(registry=newer)

    def fail_decode(*args):
        raise AssertionError("payload must not be decoded")

    monkeypatch.setattr(newer_store, "_decode", fail_decode)

    with pytest.raises(VersionMismatch) as exc_info:
        newer_store.load(path)

    assert exc_info.value.version == 1
    assert exc_info.value.supported == [2, 3]
    assert exc_info.value.kind == ErrorKind.SCHEMA_MISMATCH


def test_payload_shape_mismatch(store, snap_dir):
    path = os.path.join(snap_dir, "snap.bin")
    store.save(path, 1, make_world())

    other = SchemaRegistry()
    other.register(1, Dict[str, int])

    with pytest.raises(SchemaMismatch, match="does not match schema v1"):
        SnapshotStore(registry=other).load(path)


def test_invalid_payload_json(store, snap_dir):
    path = os.path.join(snap_dir, "snap.bin")
    with open(path, "wb") as f:
        f.write(envelope.compress(envelope.pack(1, b'{"blocks": [')))

    with pytest.raises(SerializationFailure):
        store.load(path)


def test_truncated_file(store, snap_dir):
    path = os.path.join(snap_dir, "snap.bin")
    store.save(path, 1, make_world())
    with open(path, "rb") as f:
        data = f.read()
    with open(path, "wb") as f:
        f.write(data[: len(data) // 2])

    with pytest.raises(CompressionFailure):
        store.load(path)


def test_empty_file(store, snap_dir):
    path = os.path.join(snap_dir, "snap.bin")
    open(path, "wb").close()

    with pytest.raises(SerializationFailure, match="Truncated envelope"):
        store.load(path)


def test_not_gzip(store, snap_dir):
    path = os.path.join(snap_dir, "snap.bin")
    with open(path, "wb") as f:
        f.write(b"this is not a snapshot")

    with pytest.raises(CompressionFailure):
        store.load(path)


def test_flipped_bytes_never_yield_wrong_payload(store, snap_dir):
    path = os.path.join(snap_dir, "snap.bin")
    payload = make_world(radius=2)
    store.save(path, 1, payload)
    with open(path, "rb") as f:
        good = f.read()

    for idx in range(len(good)):
        corrupt = bytearray(good)
        corrupt[idx] ^= 0xFF
        with open(path, "wb") as f:
            f.write(bytes(corrupt))

        result = store.try_load(path)
        if result.success:
            assert result.payload == payload
        else:
            assert result.error_kind in (ErrorKind.COMPRESSION_FAILURE, ErrorKind.SERIALIZATION_FAILURE)
            assert result.snapshot is None


def test_try_load_error_kinds_are_distinct(store, snap_dir):
    missing = store.try_load(os.path.join(snap_dir, "missing.bin"))

    garbage_path = os.path.join(snap_dir, "garbage.bin")
    with open(garbage_path, "wb") as f:
        f.write(b"\x00" * 32)
    garbage = store.try_load(garbage_path)

    future_path = os.path.join(snap_dir, "future.bin")
    with open(future_path, "wb") as f:
        f.write(envelope.compress(envelope.pack(42, b"{}")))
    future = store.try_load(future_path)

    assert missing.error_kind == ErrorKind.IO_FAILURE
    assert garbage.error_kind == ErrorKind.COMPRESSION_FAILURE
    assert future.error_kind == ErrorKind.SCHEMA_MISMATCH
    assert future.version is None
    assert future.payload is None


def test_try_load_success(store, snap_dir):
    path = os.path.join(snap_dir, "snap.bin")
    saved = store.try_save(path, 1, WorldSnapshot(players={PLAYER_1}))
    loaded = store.try_load(path)

    assert saved.success and saved.error is None
    assert loaded.success
    assert loaded.version == 1
    assert loaded.payload.players == {PLAYER_1}
    assert loaded.error_kind is None


# --- Inspect ---

def test_inspect(store, snap_dir):
    path = os.path.join(snap_dir, "snap.bin")
    saved = store.save(path, 1, make_world())
    info = store.inspect(path)

    assert info.version == 1
    assert info.known is True
    assert info.compressed_size == saved.compressed_size
    assert info.uncompressed_size == saved.uncompressed_size
    assert info.payload_hash == saved.payload_hash


def test_inspect_unknown_version(store, snap_dir):
    path = os.path.join(snap_dir, "future.bin")
    with open(path, "wb") as f:
        f.write(envelope.compress(envelope.pack(42, b"[1, 2, 3]")))

    info = store.inspect(path)
    assert info.version == 42
    assert info.known is False
