# MIT License
# Copyright (c) 2025 Hashborn

import os
from typing import Optional

# Envelope layout: big-endian unsigned 32-bit version, then payload bytes
VERSION_STRUCT = ">I"
VERSION_HEADER_SIZE = 4
MAX_VERSION = 2**32 - 1

# Version tag of the built-in WorldSnapshot payload
WORLD_SNAPSHOT_VERSION = 1


class StoreConfig:
    def __init__(self,
                 compress_level: int = 6,
                 fsync: bool = True,
                 temp_prefix: str = ".snapstore-",
                 temp_suffix: str = ".tmp",
                 worker_threads: int = 2):
        if not 0 <= compress_level <= 9:
            raise ValueError(f"compress_level must be 0-9, got {compress_level}")
        if worker_threads < 1:
            raise ValueError(f"worker_threads must be >= 1, got {worker_threads}")
        self.compress_level = compress_level
        self.fsync = fsync
        self.temp_prefix = temp_prefix
        self.temp_suffix = temp_suffix
        self.worker_threads = worker_threads

    def __repr__(self) -> str:
        return (
            f"StoreConfig(compress_level={self.compress_level}, fsync={self.fsync}, "
            f"worker_threads={self.worker_threads})"
        )

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "StoreConfig":
        """Build a config from SNAPSTORE_* environment variables."""
        env = os.environ if environ is None else environ
        kwargs = {}
        if env.get("SNAPSTORE_COMPRESSLEVEL"):
            kwargs["compress_level"] = int(env["SNAPSTORE_COMPRESSLEVEL"])
        if env.get("SNAPSTORE_FSYNC"):
            kwargs["fsync"] = env["SNAPSTORE_FSYNC"].strip().lower() not in ("0", "false", "no", "off")
        if env.get("SNAPSTORE_WORKERS"):
            kwargs["worker_threads"] = int(env["SNAPSTORE_WORKERS"])
        return cls(**kwargs)


DEFAULT_CONFIG = StoreConfig()
