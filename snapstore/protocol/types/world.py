# MIT License
# Copyright (c) 2025 Hashborn

"""
World snapshot payload.

Block handles and live player objects are decomposed into primitives
(world name + coordinates, block descriptor string, player UUID) before
they reach the store.
"""

from typing import Any, Dict, List, Set
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class BlockPosition(BaseModel):
    """Positional key: world name plus integer X/Y/Z."""
    model_config = ConfigDict(frozen=True)

    world: str
    x: int
    y: int
    z: int

    def __str__(self) -> str:
        return f"{self.world}@{self.x},{self.y},{self.z}"


class WorldSnapshot(BaseModel):
    # Serialized as a list of {"pos": ..., "block": ...} entries,
    # JSON object keys can only be strings.
    blocks: Dict[BlockPosition, str] = Field(default_factory=dict, description="position -> block descriptor")
    players: Set[UUID] = Field(default_factory=set, description="Player UUIDs")

    @field_validator("blocks", mode="before")
    @classmethod
    def _blocks_from_entries(cls, value: Any) -> Any:
        if isinstance(value, list):
            blocks = {}
            for entry in value:
                if not isinstance(entry, dict) or "pos" not in entry or "block" not in entry:
                    raise ValueError("block entry must have 'pos' and 'block'")
                pos = entry["pos"]
                if not isinstance(pos, BlockPosition):
                    pos = BlockPosition.model_validate(pos)
                blocks[pos] = entry["block"]
            return blocks
        return value

    @field_serializer("blocks")
    def _blocks_to_entries(self, blocks: Dict[BlockPosition, str]) -> List[Dict[str, Any]]:
        return [
            {"pos": pos.model_dump(), "block": block}
            for pos, block in blocks.items()
        ]


def capture_cube(world: str, origin: BlockPosition, radius: int, block_at) -> Dict[BlockPosition, str]:
    """
    Collect block descriptors for the cube of side 2*radius+1 around origin.

    Args:
        world: World name recorded in each key
        origin: Centre of the cube
        radius: Half-width of the cube (0 captures just the origin)
        block_at: Callable (x, y, z) -> block descriptor string

    Returns:
        Mapping of BlockPosition -> descriptor
    """
    if radius < 0:
        raise ValueError(f"radius must be >= 0, got {radius}")

    blocks = {}
    for x in range(origin.x - radius, origin.x + radius + 1):
        for y in range(origin.y - radius, origin.y + radius + 1):
            for z in range(origin.z - radius, origin.z + radius + 1):
                blocks[BlockPosition(world=world, x=x, y=y, z=z)] = block_at(x, y, z)
    return blocks
