"""Execution engine: interprets a Program one primitive action at a time.

The interpreter keeps an explicit stack of frames instead of using
Python recursion, so a run can be suspended between any two actions and
deep Karel recursion is a reported fault rather than a RecursionError.

Only primitive actions consume a step. Predicate evaluation and frame
bookkeeping happen inside the same ``execute_step`` call, bounded by
``max_free_ops_per_step``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Optional

from karel.core.program import (
    Action,
    ActionStmt,
    AndCond,
    CallStmt,
    Condition,
    DoWhileStmt,
    IfStmt,
    NotCond,
    OrCond,
    Predicate,
    PredicateCond,
    Program,
    RepeatStmt,
    Statement,
    WhileStmt,
)
from karel.core.results import RuntimeFault, RuntimeFaultKind, StepResult
from karel.core.world import Direction, WorldState

logger = logging.getLogger(__name__)

DEFAULT_MAX_CALL_DEPTH = 1000
DEFAULT_MAX_FREE_OPS = 100_000


class FrameKind(Enum):
    PROCEDURE = auto()
    BLOCK = auto()
    WHILE = auto()
    DO_WHILE = auto()
    REPEAT = auto()


class RunStatus(Enum):
    RUNNING = auto()
    FINISHED = auto()
    FAULTED = auto()


@dataclass
class Frame:
    """One level of the call stack.

    ``node`` is the loop statement for loop frames (its condition is
    re-evaluated when the body runs out); ``remaining`` counts the
    iterations left for ``repeat``, including the current one.
    """

    kind: FrameKind
    body: tuple[Statement, ...]
    index: int = 0
    remaining: int = 0
    node: Optional[Statement] = None


@dataclass
class ExecutionState:
    program: Program
    stack: list[Frame] = field(default_factory=list)
    status: RunStatus = RunStatus.RUNNING
    steps: int = 0
    last_fault: Optional[RuntimeFault] = None

    @property
    def terminated(self) -> bool:
        return self.status is not RunStatus.RUNNING

    @property
    def call_depth(self) -> int:
        return sum(1 for frame in self.stack if frame.kind is FrameKind.PROCEDURE)

    @property
    def current_line(self) -> Optional[int]:
        """Source line of the next statement to run, if any."""
        for frame in reversed(self.stack):
            if frame.index < len(frame.body):
                return frame.body[frame.index].line
        return None


_ACTION_DISPATCH: dict[Action, Callable[[WorldState], Optional[RuntimeFaultKind]]] = {
    Action.MOVE: WorldState.move,
    Action.TURN_LEFT: WorldState.turn_left,
    Action.TURN_RIGHT: WorldState.turn_right,
    Action.PUT_BEEPER: WorldState.put_beeper,
    Action.PICK_BEEPER: WorldState.pick_beeper,
}

_PREDICATE_DISPATCH: dict[Predicate, Callable[[WorldState], bool]] = {
    Predicate.FRONT_IS_CLEAR: WorldState.front_is_clear,
    Predicate.FRONT_IS_BLOCKED: lambda w: not w.front_is_clear(),
    Predicate.LEFT_IS_CLEAR: WorldState.left_is_clear,
    Predicate.LEFT_IS_BLOCKED: lambda w: not w.left_is_clear(),
    Predicate.RIGHT_IS_CLEAR: WorldState.right_is_clear,
    Predicate.RIGHT_IS_BLOCKED: lambda w: not w.right_is_clear(),
    Predicate.BEEPERS_PRESENT: WorldState.beepers_present,
    Predicate.NO_BEEPERS_PRESENT: lambda w: not w.beepers_present(),
    Predicate.BEEPERS_IN_BAG: WorldState.beepers_in_bag,
    Predicate.NO_BEEPERS_IN_BAG: lambda w: not w.beepers_in_bag(),
    Predicate.FACING_NORTH: lambda w: w.facing_direction is Direction.NORTH,
    Predicate.FACING_EAST: lambda w: w.facing_direction is Direction.EAST,
    Predicate.FACING_SOUTH: lambda w: w.facing_direction is Direction.SOUTH,
    Predicate.FACING_WEST: lambda w: w.facing_direction is Direction.WEST,
    Predicate.NOT_FACING_NORTH: lambda w: w.facing_direction is not Direction.NORTH,
    Predicate.NOT_FACING_EAST: lambda w: w.facing_direction is not Direction.EAST,
    Predicate.NOT_FACING_SOUTH: lambda w: w.facing_direction is not Direction.SOUTH,
    Predicate.NOT_FACING_WEST: lambda w: w.facing_direction is not Direction.WEST,
}


def evaluate(condition: Condition, world: WorldState) -> bool:
    """Evaluate a condition against the world without mutating it."""
    if isinstance(condition, PredicateCond):
        return _PREDICATE_DISPATCH[condition.predicate](world)
    if isinstance(condition, NotCond):
        return not evaluate(condition.operand, world)
    if isinstance(condition, AndCond):
        return evaluate(condition.left, world) and evaluate(condition.right, world)
    if isinstance(condition, OrCond):
        return evaluate(condition.left, world) or evaluate(condition.right, world)
    raise TypeError(f"Unknown condition {condition!r}")


def apply_action(action: Action, world: WorldState, line: Optional[int] = None) -> StepResult:
    """Perform one primitive action outside of any program."""
    fault = _ACTION_DISPATCH[action](world)
    if fault is not None:
        return StepResult.faulted(fault, line)
    return StepResult.continued()


class ExecutionEngine:
    """Stateless interpreter; all run state lives in ExecutionState."""

    def __init__(
        self,
        max_call_depth: int = DEFAULT_MAX_CALL_DEPTH,
        max_free_ops_per_step: int = DEFAULT_MAX_FREE_OPS,
    ):
        if max_call_depth <= 0:
            raise ValueError("max_call_depth must be positive")
        if max_free_ops_per_step <= 0:
            raise ValueError("max_free_ops_per_step must be positive")
        self.max_call_depth = max_call_depth
        self.max_free_ops_per_step = max_free_ops_per_step

    def begin_run(self, program: Program, world: Optional[WorldState] = None) -> ExecutionState:
        """Create the ExecutionState for a fresh run of program.

        ``world`` is accepted for symmetry with execute_step; the world is
        not touched until the first step.
        """
        entry = program.entry_procedure
        state = ExecutionState(program=program)
        state.stack.append(Frame(FrameKind.PROCEDURE, entry.body))
        logger.debug(f"Run started at procedure '{entry.name}'")
        return state

    def execute_step(self, state: ExecutionState, world: WorldState) -> StepResult:
        """Advance the run by exactly one primitive action."""
        if state.terminated:
            return StepResult.faulted(RuntimeFaultKind.ALREADY_TERMINATED)

        free_ops = 0
        while state.stack:
            free_ops += 1
            if free_ops > self.max_free_ops_per_step:
                return self._fault(state, RuntimeFaultKind.NO_PROGRESS, state.current_line)

            frame = state.stack[-1]
            if frame.index >= len(frame.body):
                self._end_of_body(state, frame, world)
                continue

            stmt = frame.body[frame.index]
            frame.index += 1

            if isinstance(stmt, ActionStmt):
                result = apply_action(stmt.action, world, stmt.line)
                if result.is_fault:
                    return self._fault(state, result.fault.kind, stmt.line)
                state.steps += 1
                return result

            if isinstance(stmt, CallStmt):
                if state.call_depth >= self.max_call_depth:
                    return self._fault(state, RuntimeFaultKind.STACK_OVERFLOW, stmt.line)
                body = state.program.procedure(stmt.name).body
                state.stack.append(Frame(FrameKind.PROCEDURE, body))
            elif isinstance(stmt, IfStmt):
                branch = stmt.then_body if evaluate(stmt.condition, world) else stmt.else_body
                if branch:
                    state.stack.append(Frame(FrameKind.BLOCK, branch))
            elif isinstance(stmt, WhileStmt):
                if evaluate(stmt.condition, world):
                    state.stack.append(Frame(FrameKind.WHILE, stmt.body, node=stmt))
            elif isinstance(stmt, DoWhileStmt):
                state.stack.append(Frame(FrameKind.DO_WHILE, stmt.body, node=stmt))
            elif isinstance(stmt, RepeatStmt):
                if stmt.count > 0 and stmt.body:
                    state.stack.append(
                        Frame(FrameKind.REPEAT, stmt.body, remaining=stmt.count, node=stmt)
                    )
            else:
                raise TypeError(f"Unknown statement {stmt!r}")

        state.status = RunStatus.FINISHED
        logger.debug(f"Run finished after {state.steps} step(s)")
        return StepResult.finished()

    def _end_of_body(self, state: ExecutionState, frame: Frame, world: WorldState) -> None:
        """Loop back or pop a frame whose body has run out."""
        if frame.kind is FrameKind.REPEAT:
            frame.remaining -= 1
            if frame.remaining > 0:
                frame.index = 0
                return
        elif frame.kind in (FrameKind.WHILE, FrameKind.DO_WHILE):
            if evaluate(frame.node.condition, world):
                frame.index = 0
                return
        state.stack.pop()

    def _fault(
        self, state: ExecutionState, kind: RuntimeFaultKind, line: Optional[int]
    ) -> StepResult:
        result = StepResult.faulted(kind, line)
        state.status = RunStatus.FAULTED
        state.last_fault = result.fault
        state.stack.clear()
        logger.warning(f"Run faulted after {state.steps} step(s): {result.fault}")
        return result
