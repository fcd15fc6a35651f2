"""Heartbeat clock and its real-time driver."""

from __future__ import annotations

import inspect
import time
from typing import Callable, List

from karel.interfaces.clock import HeartbeatListener, HeartbeatSubscriber, IClock


class Clock(IClock):
    """Simple pub/sub clock that notifies subscribers on tick().

    The clock never looks at the wall clock itself; a driver (QTimer in the
    GUI, ``run_realtime`` on the command line, the test itself in tests)
    decides when a heartbeat happens.
    """

    def __init__(self, interval_ms: int = 8):
        if interval_ms <= 0:
            raise ValueError("Heartbeat interval must be positive")
        self._interval_ms = interval_ms
        self._beat_count = 0
        self._subscribers: List[HeartbeatSubscriber | HeartbeatListener] = []

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    @property
    def beat_count(self) -> int:
        return self._beat_count

    def subscribe(self, subscriber: HeartbeatSubscriber | HeartbeatListener) -> None:
        if subscriber not in self._subscribers:
            self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: HeartbeatSubscriber | HeartbeatListener) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    def _validate_beats(self, beats: int) -> None:
        if beats < 0:
            raise ValueError("beats must be >= 0")

    def _repeat_call(self, fn: Callable[[], object], beats: int) -> None:
        for _ in range(beats):
            fn()

    @staticmethod
    def _accepts_beats(tick_fn: Callable[..., None]) -> bool:
        try:
            inspect.signature(tick_fn).bind(1)
        except TypeError:
            return False
        except ValueError:
            # No introspectable signature (some builtins); assume tick(beats).
            return True
        return True

    def _notify_subscriber(
        self, subscriber: HeartbeatSubscriber | HeartbeatListener, beats: int
    ) -> None:
        tick_fn = getattr(subscriber, "tick", None)
        if callable(tick_fn):
            if self._accepts_beats(tick_fn):
                tick_fn(beats)
            else:
                self._repeat_call(tick_fn, beats)
            return

        heartbeat_fn = getattr(subscriber, "on_heartbeat", None)
        if callable(heartbeat_fn):
            self._repeat_call(heartbeat_fn, beats)

    def tick(self, beats: int = 1) -> None:
        self._validate_beats(beats)
        if beats == 0:
            return

        self._beat_count += beats

        # Notify subscribers once per tick batch
        for subscriber in list(self._subscribers):
            self._notify_subscriber(subscriber, beats)

    def reset(self) -> None:
        self._beat_count = 0


def run_realtime(
    clock: IClock,
    should_continue: Callable[[], bool],
    now: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Fire clock heartbeats on a fixed wall-clock schedule.

    Deadlines advance by a constant interval regardless of how long each
    tick took; when the loop falls behind, the missed heartbeats are
    delivered in one batch. Returns the number of heartbeats fired.
    """
    interval = clock.interval_ms / 1000.0
    fired = 0
    next_deadline = now() + interval

    while should_continue():
        delay = next_deadline - now()
        if delay > 0:
            sleep(delay)

        behind = now() - next_deadline
        beats = 1 + max(0, int(behind // interval))
        clock.tick(beats)
        fired += beats
        next_deadline += beats * interval

    return fired
