"""World files and the loader that turns them into WorldDescriptions."""

from karel.worlds.loader import (
    WorldLoader,
    parse_world,
    parse_world_text,
    parse_world_yaml,
)

__all__ = [
    "WorldLoader",
    "parse_world",
    "parse_world_text",
    "parse_world_yaml",
]
