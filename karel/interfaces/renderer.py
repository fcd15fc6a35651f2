"""Renderer and source provider collaborator contracts.

The core never blocks on either: renderers are handed a snapshot after a
step and must not keep a reference to the live WorldState, and the source
provider is asked for text only when a compile is requested.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from karel.core.world import WorldDescription


class WorldRenderer(Protocol):
    """Anything that can draw a world snapshot (structural subtyping)."""

    def render(self, snapshot: "WorldDescription") -> None:
        """Redraw the world.

        Args:
            snapshot: Immutable copy of the world after the latest step
        """
        ...


class SourceProvider(Protocol):
    """Supplies raw program text on demand (the editor)."""

    def get_source(self) -> str:
        ...


class StaticSource:
    """SourceProvider over a fixed string, for the CLI and tests."""

    def __init__(self, text: str):
        self.text = text

    def get_source(self) -> str:
        return self.text
