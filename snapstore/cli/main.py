# MIT License
# Copyright (c) 2025 Hashborn

import argparse
import json
import logging
import sys
import uuid

from ..protocol.config.params import StoreConfig, WORLD_SNAPSHOT_VERSION
from ..protocol.types.common import SnapshotError
from ..protocol.types.world import BlockPosition, WorldSnapshot, capture_cube
from ..store.snapshot_store import SnapshotStore

BEDROCK_Y = -64


def get_store(args) -> SnapshotStore:
    try:
        config = StoreConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid SNAPSTORE_* setting: {e}")
        sys.exit(1)
    if args.compress_level is not None:
        config.compress_level = args.compress_level
    return SnapshotStore(config=config)


def demo_block(x: int, y: int, z: int) -> str:
    """Deterministic terrain: bedrock floor, stone, then air."""
    if y <= BEDROCK_Y:
        return "minecraft:bedrock"
    if y < 0:
        return "minecraft:stone"
    return "minecraft:air"


# --- Commands ---
def cmd_save_demo(args):
    store = get_store(args)
    origin = BlockPosition(world=args.world, x=args.x, y=args.y, z=args.z)
    blocks = capture_cube(args.world, origin, args.radius, demo_block)
    players = {uuid.uuid4() for _ in range(args.players)}
    payload = WorldSnapshot(blocks=blocks, players=players)

    try:
        info = store.save(args.path, WORLD_SNAPSHOT_VERSION, payload)
    except SnapshotError as e:
        print(f"Error [{e.kind.value}]: {e}")
        sys.exit(1)

    print(f"Saved {len(blocks)} blocks and {len(players)} players to {info.path}")
    print(f"Size: {info.compressed_size} bytes ({info.compression_ratio:.1f}% reduction)")


def cmd_load(args):
    store = get_store(args)
    result = store.try_load(args.path)
    if not result.success:
        print(f"Error [{result.error_kind.value}]: {result.error}")
        sys.exit(1)

    payload = result.payload
    if args.json:
        adapter = store.registry.get(result.version)
        print(json.dumps(json.loads(adapter.dump_json(payload)), indent=2))
        return

    print(f"Version: {result.version}")
    if isinstance(payload, WorldSnapshot):
        print(f"Blocks:  {len(payload.blocks)}")
        print(f"Players: {len(payload.players)}")
    else:
        print(f"Payload: {type(payload).__name__}")


def cmd_inspect(args):
    store = get_store(args)
    try:
        info = store.inspect(args.path)
    except SnapshotError as e:
        print(f"Error [{e.kind.value}]: {e}")
        sys.exit(1)
    print(info.model_dump_json(indent=2))


def cmd_versions(args):
    store = get_store(args)
    versions = store.registry.versions()
    if not versions:
        print("No schemas registered.")
        return

    print(f"{'Version':<10} {'Payload type'}")
    print("-" * 40)
    for v in versions:
        payload_type = store.registry.payload_type(v)
        print(f"{v:<10} {getattr(payload_type, '__name__', repr(payload_type))}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Snapshot store CLI")
    parser.add_argument("--compress-level", type=int, choices=range(10), default=None, help="gzip level 0-9 (default: SNAPSTORE_COMPRESSLEVEL or 6)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # save-demo
    save_parser = subparsers.add_parser("save-demo", help="Capture a demo block cube and save it")
    save_parser.add_argument("path", help="Snapshot file")
    save_parser.add_argument("--world", default="world", help="World name")
    save_parser.add_argument("--x", type=int, default=0)
    save_parser.add_argument("--y", type=int, default=0)
    save_parser.add_argument("--z", type=int, default=0)
    save_parser.add_argument("--radius", type=int, default=8, help="Half-width of the captured cube")
    save_parser.add_argument("--players", type=int, default=3, help="Number of random player UUIDs")
    save_parser.set_defaults(func=cmd_save_demo)

    # load
    load_parser = subparsers.add_parser("load", help="Load a snapshot and summarize it")
    load_parser.add_argument("path", help="Snapshot file")
    load_parser.add_argument("--json", action="store_true", help="Print the full payload as JSON")
    load_parser.set_defaults(func=cmd_load)

    # inspect
    inspect_parser = subparsers.add_parser("inspect", help="Show version and sizes without decoding")
    inspect_parser.add_argument("path", help="Snapshot file")
    inspect_parser.set_defaults(func=cmd_inspect)

    # versions
    versions_parser = subparsers.add_parser("versions", help="List known payload versions")
    versions_parser.set_defaults(func=cmd_versions)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s: %(message)s',
    )

    args.func(args)


if __name__ == "__main__":
    main()
