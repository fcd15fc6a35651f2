"""Core modules for the Karel simulator.

- world: grid world model (robot pose, beepers, walls)
- lexer / compiler / program: Karel source to an immutable Program
- engine: steps a Program one primitive action at a time
- clock / scheduler: heartbeat pacing and run control
- results / exceptions: result values and the error hierarchy
"""

from karel.core.clock import Clock, run_realtime
from karel.core.compiler import compile_source
from karel.core.engine import ExecutionEngine, ExecutionState, Frame, RunStatus, apply_action
from karel.core.exceptions import (
    CompileError,
    CompileErrorKind,
    ConfigurationError,
    KarelError,
    SchedulerError,
    WorldFormatError,
    WorldLoadError,
    WorldNotLoadedError,
)
from karel.core.program import Action, Predicate, Program
from karel.core.results import (
    CompileResult,
    RuntimeFault,
    RuntimeFaultKind,
    StepKind,
    StepResult,
)
from karel.core.scheduler import SchedulerState, StepScheduler
from karel.core.world import Direction, Robot, WorldDescription, WorldState

__all__ = [
    # World model
    "Direction",
    "Robot",
    "WorldDescription",
    "WorldState",
    # Compilation
    "Action",
    "Predicate",
    "Program",
    "compile_source",
    "CompileResult",
    # Execution
    "ExecutionEngine",
    "ExecutionState",
    "Frame",
    "RunStatus",
    "apply_action",
    "StepKind",
    "StepResult",
    "RuntimeFault",
    "RuntimeFaultKind",
    # Scheduling
    "Clock",
    "run_realtime",
    "SchedulerState",
    "StepScheduler",
    # Errors
    "KarelError",
    "ConfigurationError",
    "CompileError",
    "CompileErrorKind",
    "WorldFormatError",
    "WorldLoadError",
    "SchedulerError",
    "WorldNotLoadedError",
]
