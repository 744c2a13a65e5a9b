# MIT License
# Copyright (c) 2025 Hashborn

"""
Background snapshot worker.

Saves and loads can take seconds for large payloads, so callers on a
latency-sensitive loop hand them to this worker instead of running them inline.
"""

import logging
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, List, Optional

from .snapshot_store import SnapshotStore, PathLike
from .types import Snapshot, SnapshotInfo

logger = logging.getLogger(__name__)


class SnapshotWorker:
    """
    Runs SnapshotStore operations on a thread pool.

    Operations on the same path never overlap; different paths run in
    parallel. A submitted write cannot be cancelled once it has started.
    """

    def __init__(self, store: Optional[SnapshotStore] = None, max_workers: Optional[int] = None):
        self.store = store or SnapshotStore()
        workers = max_workers or self.store.config.worker_threads
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="snapstore")
        # path -> [lock, number of tasks holding or waiting on it]
        self._locks: Dict[str, List] = {}
        self._locks_guard = threading.Lock()

    def submit_save(self, path: PathLike, version: int, payload: Any) -> "Future[SnapshotInfo]":
        """Schedule save(); the future raises the store's SnapshotError on failure."""
        logger.debug(f"Queued snapshot save: {path}")
        return self._executor.submit(self._locked, path, self.store.save, path, version, payload)

    def submit_load(self, path: PathLike) -> "Future[Snapshot]":
        logger.debug(f"Queued snapshot load: {path}")
        return self._executor.submit(self._locked, path, self.store.load, path)

    def shutdown(self, wait: bool = True):
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "SnapshotWorker":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown(wait=True)

    def _locked(self, path: PathLike, func, *args):
        key = os.path.abspath(os.fspath(path))
        with self._locks_guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.Lock(), 0]
            entry[1] += 1

        try:
            with entry[0]:
                return func(*args)
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]
