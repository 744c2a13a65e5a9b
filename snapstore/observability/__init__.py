# MIT License
# Copyright (c) 2025 Hashborn

"""
Observability Module

Provides Prometheus metrics for snapshot operations.
"""

from .metrics import metrics_registry, record_save, record_load, record_failure

__all__ = ['metrics_registry', 'record_save', 'record_load', 'record_failure']
