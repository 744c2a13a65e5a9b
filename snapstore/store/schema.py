# MIT License
# Copyright (c) 2025 Hashborn

"""
Payload Schema Registry

Maps snapshot version tags to the payload type that version encodes.
Any change to a payload's shape must be registered under a new version.
"""

import logging
from typing import Any, Dict, List

from pydantic import TypeAdapter

from ..protocol.config.params import MAX_VERSION, WORLD_SNAPSHOT_VERSION
from ..protocol.types.world import WorldSnapshot

logger = logging.getLogger(__name__)


class SchemaRegistry:
    """
    Registry of payload types keyed by version.

    Each registered type is wrapped in a pydantic TypeAdapter, so any type
    pydantic can validate (models, dicts, sets, lists, ...) can be a payload.
    """

    def __init__(self):
        self._types: Dict[int, Any] = {}
        self._adapters: Dict[int, TypeAdapter] = {}

    def register(self, version: int, payload_type: Any):
        """
        Register a payload type for a version.

        Args:
            version: Version tag (0 .. 2**32-1)
            payload_type: Type the payload of this version validates against

        Raises:
            ValueError: If version is out of range
        """
        _check_version(version)

        if version in self._types and self._types[version] is not payload_type:
            logger.warning(f"Overwriting schema for version {version}")

        self._types[version] = payload_type
        self._adapters[version] = TypeAdapter(payload_type)
        logger.debug(f"Registered schema: v{version} -> {payload_type!r}")

    def get(self, version: int) -> TypeAdapter:
        """
        Get the adapter for a version.

        Raises:
            KeyError: If version is not registered
        """
        if version not in self._adapters:
            raise KeyError(f"No schema registered for version {version}")
        return self._adapters[version]

    def payload_type(self, version: int) -> Any:
        return self._types[version]

    def is_known(self, version: int) -> bool:
        return version in self._adapters

    def versions(self) -> List[int]:
        """List registered versions in ascending order."""
        return sorted(self._types)

    def unregister(self, version: int):
        self._types.pop(version, None)
        self._adapters.pop(version, None)


def _check_version(version: int):
    if isinstance(version, bool) or not isinstance(version, int):
        raise ValueError(f"Version must be an int, got {type(version).__name__}")
    if not 0 <= version <= MAX_VERSION:
        raise ValueError(f"Version {version} out of range 0..{MAX_VERSION}")


# Global schema registry
_global_registry = SchemaRegistry()


def schema(version: int):
    """
    Decorator to register a payload model for a version.

    Usage:
        @schema(2)
        class WorldSnapshotV2(BaseModel):
            ...
    """
    def decorator(payload_type):
        _global_registry.register(version, payload_type)
        return payload_type
    return decorator


def get_global_registry() -> SchemaRegistry:
    """Get the global schema registry."""
    return _global_registry


_global_registry.register(WORLD_SNAPSHOT_VERSION, WorldSnapshot)
