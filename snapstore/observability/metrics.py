# MIT License
# Copyright (c) 2025 Hashborn

"""
Prometheus Metrics Exporter

Metrics:
- Saves/loads completed, by version
- Failures, by operation and error kind
- Save/load duration
- Last written snapshot size
"""

from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry

# Create registry for metrics
metrics_registry = CollectorRegistry()

# ═══════════════════════════════════════════════════════════════════
# SNAPSHOT METRICS
# ═══════════════════════════════════════════════════════════════════

snapshots_saved_total = Counter(
    'snapstore_snapshots_saved_total',
    'Total number of snapshots written',
    ['version'],
    registry=metrics_registry
)

snapshots_loaded_total = Counter(
    'snapstore_snapshots_loaded_total',
    'Total number of snapshots loaded',
    ['version'],
    registry=metrics_registry
)

snapshot_failures_total = Counter(
    'snapstore_failures_total',
    'Total number of failed snapshot operations',
    ['operation', 'kind'],
    registry=metrics_registry
)

save_duration_seconds = Histogram(
    'snapstore_save_duration_seconds',
    'Time to serialize, compress and write a snapshot',
    buckets=[0.01, 0.05, 0.1, 0.5, 1, 5, 10, 30],
    registry=metrics_registry
)

load_duration_seconds = Histogram(
    'snapstore_load_duration_seconds',
    'Time to read, decompress and decode a snapshot',
    buckets=[0.01, 0.05, 0.1, 0.5, 1, 5, 10, 30],
    registry=metrics_registry
)

last_snapshot_compressed_bytes = Gauge(
    'snapstore_last_snapshot_compressed_bytes',
    'Compressed size of the last snapshot written',
    registry=metrics_registry
)

last_snapshot_uncompressed_bytes = Gauge(
    'snapstore_last_snapshot_uncompressed_bytes',
    'Uncompressed envelope size of the last snapshot written',
    registry=metrics_registry
)


def record_save(info):
    """Update metrics after a successful save (info: SnapshotInfo)."""
    snapshots_saved_total.labels(version=str(info.version)).inc()
    save_duration_seconds.observe(info.elapsed_sec)
    last_snapshot_compressed_bytes.set(info.compressed_size)
    last_snapshot_uncompressed_bytes.set(info.uncompressed_size)


def record_load(version: int, elapsed_sec: float):
    snapshots_loaded_total.labels(version=str(version)).inc()
    load_duration_seconds.observe(elapsed_sec)


def record_failure(operation: str, kind):
    label = kind.value if kind is not None else "UNKNOWN"
    snapshot_failures_total.labels(operation=operation, kind=label).inc()
