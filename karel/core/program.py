"""Immutable program tree produced by the compiler.

A Program is a set of named procedures plus the name of the entry
procedure. Bodies are tuples of statements so a compiled Program can be
shared between runs without copying.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Union


class Action(Enum):
    """Step-consuming primitive actions."""

    MOVE = "move"
    TURN_LEFT = "turnLeft"
    TURN_RIGHT = "turnRight"
    PUT_BEEPER = "putBeeper"
    PICK_BEEPER = "pickBeeper"


class Predicate(Enum):
    """Read-only sensing predicates."""

    FRONT_IS_CLEAR = "frontIsClear"
    FRONT_IS_BLOCKED = "frontIsBlocked"
    LEFT_IS_CLEAR = "leftIsClear"
    LEFT_IS_BLOCKED = "leftIsBlocked"
    RIGHT_IS_CLEAR = "rightIsClear"
    RIGHT_IS_BLOCKED = "rightIsBlocked"
    BEEPERS_PRESENT = "beepersPresent"
    NO_BEEPERS_PRESENT = "noBeepersPresent"
    BEEPERS_IN_BAG = "beepersInBag"
    NO_BEEPERS_IN_BAG = "noBeepersInBag"
    FACING_NORTH = "facingNorth"
    FACING_EAST = "facingEast"
    FACING_SOUTH = "facingSouth"
    FACING_WEST = "facingWest"
    NOT_FACING_NORTH = "notFacingNorth"
    NOT_FACING_EAST = "notFacingEast"
    NOT_FACING_SOUTH = "notFacingSouth"
    NOT_FACING_WEST = "notFacingWest"


ACTIONS_BY_NAME = {action.value: action for action in Action}
PREDICATES_BY_NAME = {predicate.value: predicate for predicate in Predicate}


# Conditions -----------------------------------------------------------------


@dataclass(frozen=True)
class PredicateCond:
    predicate: Predicate
    line: int = 0


@dataclass(frozen=True)
class NotCond:
    operand: "Condition"
    line: int = 0


@dataclass(frozen=True)
class AndCond:
    left: "Condition"
    right: "Condition"
    line: int = 0


@dataclass(frozen=True)
class OrCond:
    left: "Condition"
    right: "Condition"
    line: int = 0


Condition = Union[PredicateCond, NotCond, AndCond, OrCond]


# Statements -----------------------------------------------------------------


@dataclass(frozen=True)
class ActionStmt:
    action: Action
    line: int = 0


@dataclass(frozen=True)
class CallStmt:
    name: str
    line: int = 0


@dataclass(frozen=True)
class IfStmt:
    condition: Condition
    then_body: tuple["Statement", ...]
    else_body: tuple["Statement", ...] = ()
    line: int = 0


@dataclass(frozen=True)
class WhileStmt:
    condition: Condition
    body: tuple["Statement", ...]
    line: int = 0


@dataclass(frozen=True)
class DoWhileStmt:
    body: tuple["Statement", ...]
    condition: Condition
    line: int = 0


@dataclass(frozen=True)
class RepeatStmt:
    count: int
    body: tuple["Statement", ...]
    line: int = 0


Statement = Union[ActionStmt, CallStmt, IfStmt, WhileStmt, DoWhileStmt, RepeatStmt]


@dataclass(frozen=True)
class Procedure:
    name: str
    body: tuple[Statement, ...]
    line: int = 0


@dataclass(frozen=True)
class Program:
    """Named procedures plus the entry name; the procedure table is read-only."""

    procedures: Mapping[str, Procedure]
    entry: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "procedures", MappingProxyType(dict(self.procedures)))

    @property
    def entry_procedure(self) -> Procedure:
        return self.procedures[self.entry]

    def procedure(self, name: str) -> Procedure:
        return self.procedures[name]

    @classmethod
    def from_actions(cls, actions: list[Action], entry: str = "main") -> "Program":
        """Build a straight-line program, mostly useful for tests and tools."""
        body = tuple(ActionStmt(action, line=i + 1) for i, action in enumerate(actions))
        return cls({entry: Procedure(entry, body, line=1)}, entry)
