"""Step scheduler: paces the execution engine from a fixed heartbeat.

State machine::

    IDLE --start--> RUNNING --finished--> IDLE
                       |
                       +----fault----> FAULTED --start/stop/single step--> ...

Every ``action_heartbeats`` heartbeats while RUNNING, one step is
executed. Single steps bypass the countdown and leave the scheduler in
IDLE with the run suspended, so ``resume()`` or further single steps
continue from where it stopped. ``stop()`` always discards the run and
asks the owner to reload the world; a stopped run is never resumed.
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Callable, Optional, Protocol

from karel.core.engine import ExecutionEngine, ExecutionState, apply_action
from karel.core.exceptions import SchedulerError, WorldNotLoadedError
from karel.core.program import Action, Program
from karel.core.results import RuntimeFault, StepKind, StepResult
from karel.core.world import WorldState

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    IDLE = auto()
    RUNNING = auto()
    FAULTED = auto()


class SchedulerListener(Protocol):
    """Receives the outcome of every step the scheduler performs."""

    def on_step(self, result: StepResult) -> None:
        ...


class StepScheduler:
    def __init__(
        self,
        engine: Optional[ExecutionEngine] = None,
        action_heartbeats: int = 1,
        reload_world: Optional[Callable[[], None]] = None,
        listener: Optional[SchedulerListener] = None,
    ):
        if action_heartbeats <= 0:
            raise ValueError("action_heartbeats must be positive")
        self._engine = engine or ExecutionEngine()
        self._action_heartbeats = action_heartbeats
        self._countdown = action_heartbeats
        self._reload_world = reload_world
        self._listener = listener

        self._state = SchedulerState.IDLE
        self._run: Optional[ExecutionState] = None
        self._world: Optional[WorldState] = None
        self._last_fault: Optional[RuntimeFault] = None
        self._in_step = False

    # Properties -------------------------------------------------------------

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def engine(self) -> ExecutionEngine:
        return self._engine

    @property
    def execution_state(self) -> Optional[ExecutionState]:
        return self._run

    @property
    def has_suspended_run(self) -> bool:
        return self._run is not None and not self._run.terminated

    @property
    def last_fault(self) -> Optional[RuntimeFault]:
        return self._last_fault

    @property
    def action_heartbeats(self) -> int:
        return self._action_heartbeats

    # Control requests -------------------------------------------------------

    def start(self, program: Optional[Program], world: Optional[WorldState]) -> None:
        """Begin a fresh animated run of program on world.

        Raises:
            SchedulerError: if no compiled program is given
            WorldNotLoadedError: if the world has not finished loading
        """
        self._begin(program, world)
        self._state = SchedulerState.RUNNING
        logger.info("Run started")

    def resume(self) -> None:
        """Continue animating a run suspended by single stepping."""
        if self._state is SchedulerState.RUNNING:
            return
        if not self.has_suspended_run:
            raise SchedulerError("There is no suspended run to resume")
        self._countdown = self._action_heartbeats
        self._state = SchedulerState.RUNNING
        logger.info("Run resumed")

    def request_single_step(
        self,
        program: Optional[Program] = None,
        world: Optional[WorldState] = None,
    ) -> StepResult:
        """Execute one step now, independent of heartbeat cadence.

        Steps the suspended run when there is one, otherwise begins a run of
        program on world first. The scheduler is IDLE afterwards (FAULTED if
        the step faulted).
        """
        if self._in_step:
            raise SchedulerError("A step is already in progress")
        if not self.has_suspended_run:
            self._begin(program, world)
        self._state = SchedulerState.IDLE
        return self._step()

    def request_action(self, action: Action, world: Optional[WorldState]) -> StepResult:
        """Perform one primitive action directly, outside any program."""
        if self._state is SchedulerState.RUNNING or self._in_step:
            raise SchedulerError("Cannot perform a manual action while a program runs")
        if world is None:
            raise WorldNotLoadedError()
        result = apply_action(action, world)
        if result.is_fault:
            logger.warning(f"Manual {action.value} failed: {result.fault}")
        self._notify(result)
        return result

    def stop(self) -> None:
        """Stop any run, discard it and reload the initial world."""
        was = self._state
        self._state = SchedulerState.IDLE
        self._run = None
        self._world = None
        self._last_fault = None
        self._countdown = self._action_heartbeats
        logger.info(f"Stopped (was {was.name})")
        if self._reload_world is not None:
            self._reload_world()

    def reset(self) -> None:
        """Return to IDLE and forget any run, without reloading the world."""
        self._state = SchedulerState.IDLE
        self._run = None
        self._world = None
        self._last_fault = None
        self._countdown = self._action_heartbeats

    # Heartbeat --------------------------------------------------------------

    def on_heartbeat(self) -> Optional[StepResult]:
        """Handle one heartbeat; returns the step result if a step ran."""
        if self._in_step:
            logger.debug("Heartbeat ignored: step already in progress")
            return None
        if self._state is not SchedulerState.RUNNING:
            return None

        self._countdown -= 1
        if self._countdown > 0:
            return None
        self._countdown = self._action_heartbeats
        return self._step()

    def tick(self, beats: int = 1) -> None:
        """Clock subscriber hook: one ``on_heartbeat`` per beat."""
        for _ in range(beats):
            if self._state is not SchedulerState.RUNNING:
                return
            self.on_heartbeat()

    # Private helpers --------------------------------------------------------

    def _begin(self, program: Optional[Program], world: Optional[WorldState]) -> None:
        if program is None:
            raise SchedulerError("A successfully compiled program is required")
        if world is None:
            raise WorldNotLoadedError()
        self._run = self._engine.begin_run(program, world)
        self._world = world
        self._last_fault = None
        self._countdown = self._action_heartbeats

    def _step(self) -> StepResult:
        assert self._run is not None and self._world is not None
        self._in_step = True
        try:
            result = self._engine.execute_step(self._run, self._world)
        finally:
            self._in_step = False

        if result.kind is StepKind.FINISHED:
            logger.info(f"Run finished after {self._run.steps} step(s)")
            self._state = SchedulerState.IDLE
            self._run = None
        elif result.kind is StepKind.FAULT:
            self._state = SchedulerState.FAULTED
            self._last_fault = result.fault
            self._run = None

        self._notify(result)
        return result

    def _notify(self, result: StepResult) -> None:
        if self._listener is not None:
            self._listener.on_step(result)
