"""Karel the Robot simulator.

Learners write a small imperative program that drives Karel through a grid
world and watch it run one action at a time.

Getting started:
    from karel import WorldState, compile_source, ExecutionEngine

    world = WorldState(5, 5)
    program = compile_source("move(); turnLeft(); move();").program
    engine = ExecutionEngine()
    run = engine.begin_run(program, world)
    while not engine.execute_step(run, world).is_terminal:
        pass
"""

from karel.core import (
    Action,
    Clock,
    CompileError,
    CompileErrorKind,
    CompileResult,
    Direction,
    ExecutionEngine,
    ExecutionState,
    KarelError,
    Program,
    Robot,
    RuntimeFault,
    RuntimeFaultKind,
    SchedulerState,
    StepKind,
    StepResult,
    StepScheduler,
    WorldDescription,
    WorldState,
    compile_source,
)
from karel.ide import KarelIde, KarelIdeListener
from karel.worlds.loader import WorldLoader

__version__ = "0.1.0"

__all__ = [
    "Action",
    "Clock",
    "CompileError",
    "CompileErrorKind",
    "CompileResult",
    "Direction",
    "ExecutionEngine",
    "ExecutionState",
    "KarelError",
    "KarelIde",
    "KarelIdeListener",
    "Program",
    "Robot",
    "RuntimeFault",
    "RuntimeFaultKind",
    "SchedulerState",
    "StepKind",
    "StepResult",
    "StepScheduler",
    "WorldDescription",
    "WorldLoader",
    "WorldState",
    "compile_source",
]
