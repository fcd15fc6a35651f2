"""Heartbeat contracts shared by the clock, the scheduler and the IDE.

A heartbeat is the smallest unit of animation time (8 ms by default). The
clock delivers heartbeats in batches: a subscriber receives one call per
batch when its ``tick`` takes a beat count, one call per heartbeat when
``tick`` takes no argument, and one ``on_heartbeat()`` call per heartbeat
when it has no ``tick`` at all. ``KarelIde`` and ``StepScheduler`` both
take the batched form.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol


class HeartbeatSubscriber(Protocol):
    """Receives a batch of heartbeats in one call."""

    def tick(self, beats: int = 1) -> None:
        ...


class HeartbeatListener(Protocol):
    """Receives heartbeats one at a time; may return a step result."""

    def on_heartbeat(self) -> object:
        ...


class IClock(ABC):
    """Heartbeat source driven from outside (QTimer, ``run_realtime``, tests).

    Implementations never read the wall clock; ``interval_ms`` only tells
    the driver how often to call ``tick``.
    """

    @property
    @abstractmethod
    def interval_ms(self) -> int:
        ...

    @property
    @abstractmethod
    def beat_count(self) -> int:
        """Heartbeats delivered since construction or the last ``reset``."""

    @abstractmethod
    def subscribe(self, subscriber: HeartbeatSubscriber | HeartbeatListener) -> None:
        """Add a subscriber; subscribing twice has no effect."""

    @abstractmethod
    def unsubscribe(self, subscriber: HeartbeatSubscriber | HeartbeatListener) -> None:
        ...

    @abstractmethod
    def tick(self, beats: int = 1) -> None:
        """Deliver ``beats`` heartbeats to every subscriber.

        Raises:
            ValueError: if beats is negative
        """

    @abstractmethod
    def reset(self) -> None:
        ...
