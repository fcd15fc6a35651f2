"""Interface abstractions for the karel core.

Defines the contracts the core shares with its collaborators:
- IClock / HeartbeatSubscriber / HeartbeatListener: heartbeat source and
  the two ways of receiving its beats
- WorldRenderer: draws world snapshots after each step
- SourceProvider: supplies program text (the editor)
"""

from karel.interfaces.clock import HeartbeatListener, HeartbeatSubscriber, IClock
from karel.interfaces.renderer import SourceProvider, StaticSource, WorldRenderer

__all__ = [
    "IClock",
    "HeartbeatSubscriber",
    "HeartbeatListener",
    "WorldRenderer",
    "SourceProvider",
    "StaticSource",
]
