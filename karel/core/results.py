"""Result values returned by compilation and stepping."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from karel.core.exceptions import CompileError
    from karel.core.program import Program


class RuntimeFaultKind(Enum):
    BLOCKED_BY_WALL = "BlockedByWall"
    NO_BEEPER_TO_PICK_UP = "NoBeeperToPickUp"
    NO_BEEPER_TO_PUT_DOWN = "NoBeeperToPutDown"
    STACK_OVERFLOW = "StackOverflow"
    ALREADY_TERMINATED = "AlreadyTerminated"
    NO_PROGRESS = "NoProgress"


_FAULT_MESSAGES = {
    RuntimeFaultKind.BLOCKED_BY_WALL: "Karel is blocked by a wall",
    RuntimeFaultKind.NO_BEEPER_TO_PICK_UP: "There is no beeper here to pick up",
    RuntimeFaultKind.NO_BEEPER_TO_PUT_DOWN: "Karel has no beepers left in the bag",
    RuntimeFaultKind.STACK_OVERFLOW: "Too many nested procedure calls",
    RuntimeFaultKind.ALREADY_TERMINATED: "The run has already ended",
    RuntimeFaultKind.NO_PROGRESS: "The program loops without performing any action",
}


@dataclass(frozen=True)
class RuntimeFault:
    """A terminal runtime error for one run."""

    kind: RuntimeFaultKind
    line: Optional[int] = None

    @property
    def message(self) -> str:
        text = _FAULT_MESSAGES[self.kind]
        if self.line is not None:
            return f"{text} (line {self.line})"
        return text

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class StepKind(Enum):
    CONTINUED = auto()
    FINISHED = auto()
    FAULT = auto()


@dataclass(frozen=True)
class StepResult:
    kind: StepKind
    fault: Optional[RuntimeFault] = None

    @classmethod
    def continued(cls) -> "StepResult":
        return cls(StepKind.CONTINUED)

    @classmethod
    def finished(cls) -> "StepResult":
        return cls(StepKind.FINISHED)

    @classmethod
    def faulted(cls, kind: RuntimeFaultKind, line: Optional[int] = None) -> "StepResult":
        return cls(StepKind.FAULT, RuntimeFault(kind, line))

    @property
    def is_fault(self) -> bool:
        return self.kind is StepKind.FAULT

    @property
    def is_terminal(self) -> bool:
        return self.kind is not StepKind.CONTINUED


@dataclass(frozen=True)
class CompileResult:
    """Outcome of ``compile_source``: exactly one of program/error is set."""

    program: Optional["Program"] = None
    error: Optional["CompileError"] = None

    def __post_init__(self) -> None:
        if (self.program is None) == (self.error is None):
            raise ValueError("CompileResult needs exactly one of program or error")

    @property
    def ok(self) -> bool:
        return self.error is None
