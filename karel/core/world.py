"""Grid world model: Karel's pose, beepers and walls.

Coordinates are zero-based with (0, 0) at the south-west corner; North
is +y and East is +x. The mutation primitives are used only by the
execution engine and return ``None`` on success or the fault kind that
prevented the action. A failed primitive never changes the world.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Mapping, Optional

from karel.core.exceptions import WorldFormatError
from karel.core.results import RuntimeFaultKind

Cell = tuple[int, int]


class Direction(Enum):
    NORTH = (0, 1)
    EAST = (1, 0)
    SOUTH = (0, -1)
    WEST = (-1, 0)

    @property
    def dx(self) -> int:
        return self.value[0]

    @property
    def dy(self) -> int:
        return self.value[1]

    def left(self) -> "Direction":
        return _LEFT_OF[self]

    def right(self) -> "Direction":
        return _RIGHT_OF[self]

    def opposite(self) -> "Direction":
        return _LEFT_OF[_LEFT_OF[self]]

    @classmethod
    def parse(cls, text: str) -> "Direction":
        key = text.strip().upper()
        if key in _ALIASES:
            return _ALIASES[key]
        raise ValueError(f"Unknown direction '{text}'")


_LEFT_OF = {
    Direction.NORTH: Direction.WEST,
    Direction.WEST: Direction.SOUTH,
    Direction.SOUTH: Direction.EAST,
    Direction.EAST: Direction.NORTH,
}
_RIGHT_OF = {value: key for key, value in _LEFT_OF.items()}
_ALIASES = {
    "NORTH": Direction.NORTH,
    "N": Direction.NORTH,
    "EAST": Direction.EAST,
    "E": Direction.EAST,
    "SOUTH": Direction.SOUTH,
    "S": Direction.SOUTH,
    "WEST": Direction.WEST,
    "W": Direction.WEST,
}


@dataclass(frozen=True)
class Robot:
    x: int
    y: int
    direction: Direction = Direction.EAST

    @property
    def position(self) -> Cell:
        return (self.x, self.y)


@dataclass(frozen=True)
class WorldDescription:
    """Immutable description of a world.

    Produced by the world loader and by ``WorldState.snapshot()``; consumed
    by ``WorldState.from_description()``/``reset()`` and by renderers.
    ``bag`` is the number of beepers Karel carries, ``None`` for unlimited.
    """

    width: int
    height: int
    robot: Robot = field(default_factory=lambda: Robot(0, 0, Direction.EAST))
    walls: frozenset[tuple[Cell, Direction]] = frozenset()
    beepers: Mapping[Cell, int] = field(default_factory=dict)
    bag: Optional[int] = None


class WorldState:
    """Mutable world state owned by the execution engine during a run."""

    def __init__(
        self,
        width: int,
        height: int,
        robot: Optional[Robot] = None,
        walls: Iterable[tuple[Cell, Direction]] = (),
        beepers: Optional[Mapping[Cell, int]] = None,
        bag: Optional[int] = None,
    ):
        self._width = 0
        self._height = 0
        self._robot = Robot(0, 0)
        self._walls: set[tuple[Cell, Direction]] = set()
        self._beepers: dict[Cell, int] = {}
        self._bag: Optional[int] = None
        self.reset(
            WorldDescription(
                width=width,
                height=height,
                robot=robot or Robot(0, 0, Direction.EAST),
                walls=frozenset(walls),
                beepers=dict(beepers or {}),
                bag=bag,
            )
        )

    @classmethod
    def from_description(cls, desc: WorldDescription) -> "WorldState":
        return cls(
            desc.width,
            desc.height,
            robot=desc.robot,
            walls=desc.walls,
            beepers=desc.beepers,
            bag=desc.bag,
        )

    # Loading ---------------------------------------------------------------

    def reset(self, desc: WorldDescription) -> None:
        """Reinitialize dimensions, walls, beepers, robot and bag.

        Raises:
            WorldFormatError: if the description violates the grid invariants
        """
        validate_description(desc)

        self._width = desc.width
        self._height = desc.height
        self._robot = desc.robot
        self._bag = desc.bag
        self._beepers = {cell: count for cell, count in desc.beepers.items() if count > 0}
        self._walls = set()
        for cell, direction in desc.walls:
            self._add_wall(cell, direction)

    def snapshot(self) -> WorldDescription:
        return WorldDescription(
            width=self._width,
            height=self._height,
            robot=self._robot,
            walls=frozenset(self._walls),
            beepers=dict(self._beepers),
            bag=self._bag,
        )

    def _add_wall(self, cell: Cell, direction: Direction) -> None:
        x, y = cell
        neighbour = (x + direction.dx, y + direction.dy)
        if self._in_bounds(cell):
            self._walls.add((cell, direction))
        if self._in_bounds(neighbour):
            self._walls.add((neighbour, direction.opposite()))

    # Read-only queries -------------------------------------------------------

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def robot(self) -> Robot:
        return self._robot

    @property
    def bag(self) -> Optional[int]:
        return self._bag

    @property
    def beepers(self) -> Mapping[Cell, int]:
        return dict(self._beepers)

    @property
    def facing_direction(self) -> Direction:
        return self._robot.direction

    def beeper_count(self, x: int, y: int) -> int:
        return self._beepers.get((x, y), 0)

    def has_wall(self, x: int, y: int, direction: Direction) -> bool:
        """True if Karel cannot leave (x, y) towards direction."""
        if ((x, y), direction) in self._walls:
            return True
        return not self._in_bounds((x + direction.dx, y + direction.dy))

    def is_clear(self, direction: Direction) -> bool:
        return not self.has_wall(self._robot.x, self._robot.y, direction)

    def front_is_clear(self) -> bool:
        return self.is_clear(self._robot.direction)

    def left_is_clear(self) -> bool:
        return self.is_clear(self._robot.direction.left())

    def right_is_clear(self) -> bool:
        return self.is_clear(self._robot.direction.right())

    def beepers_present(self) -> bool:
        return self.beeper_count(self._robot.x, self._robot.y) > 0

    def beepers_in_bag(self) -> bool:
        return self._bag is None or self._bag > 0

    # Mutation primitives -----------------------------------------------------

    def move(self) -> Optional[RuntimeFaultKind]:
        if not self.front_is_clear():
            return RuntimeFaultKind.BLOCKED_BY_WALL
        direction = self._robot.direction
        self._robot = replace(
            self._robot, x=self._robot.x + direction.dx, y=self._robot.y + direction.dy
        )
        return None

    def turn_left(self) -> Optional[RuntimeFaultKind]:
        self._robot = replace(self._robot, direction=self._robot.direction.left())
        return None

    def turn_right(self) -> Optional[RuntimeFaultKind]:
        self._robot = replace(self._robot, direction=self._robot.direction.right())
        return None

    def put_beeper(self) -> Optional[RuntimeFaultKind]:
        if not self.beepers_in_bag():
            return RuntimeFaultKind.NO_BEEPER_TO_PUT_DOWN
        if self._bag is not None:
            self._bag -= 1
        cell = self._robot.position
        self._beepers[cell] = self._beepers.get(cell, 0) + 1
        return None

    def pick_beeper(self) -> Optional[RuntimeFaultKind]:
        cell = self._robot.position
        count = self._beepers.get(cell, 0)
        if count <= 0:
            return RuntimeFaultKind.NO_BEEPER_TO_PICK_UP
        if count == 1:
            del self._beepers[cell]
        else:
            self._beepers[cell] = count - 1
        if self._bag is not None:
            self._bag += 1
        return None

    # Private helpers -------------------------------------------------------

    def _in_bounds(self, cell: Cell) -> bool:
        x, y = cell
        return 0 <= x < self._width and 0 <= y < self._height

    def __repr__(self) -> str:
        return (
            f"WorldState({self._width}x{self._height}, robot={self._robot}, "
            f"beepers={len(self._beepers)} cells, bag={self._bag})"
        )


def validate_description(desc: WorldDescription) -> None:
    if desc.width <= 0 or desc.height <= 0:
        raise WorldFormatError(f"dimensions must be positive, got {desc.width}x{desc.height}")

    robot = desc.robot
    if not (0 <= robot.x < desc.width and 0 <= robot.y < desc.height):
        raise WorldFormatError(f"Karel at ({robot.x}, {robot.y}) is outside the grid")

    for (x, y), count in desc.beepers.items():
        if not (0 <= x < desc.width and 0 <= y < desc.height):
            raise WorldFormatError(f"beeper at ({x}, {y}) is outside the grid")
        if count < 0:
            raise WorldFormatError(f"beeper count at ({x}, {y}) must be >= 0")

    if desc.bag is not None and desc.bag < 0:
        raise WorldFormatError("beeper bag must be >= 0")
