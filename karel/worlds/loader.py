"""World loader: turns world files into WorldDescriptions.

Two formats are understood, both with 1-based coordinates like the
classic Stanford worlds:

``.w`` text files::

    Dimension: (5, 5)
    Wall: (2, 3) east
    Beeper: (3, 1) 2
    Karel: (1, 1) east
    BeeperBag: INFINITY

``.yaml``/``.yml`` files::

    dimension: [5, 5]
    karel: {x: 1, y: 1, direction: east}
    walls:
      - {x: 2, y: 3, side: east}
    beepers:
      - {x: 3, y: 1, count: 2}
    bag: infinite

A name such as ``15x15.w`` that does not exist on disk loads a blank
world of that size.
"""

from __future__ import annotations

import logging
import re
import threading
from pathlib import Path
from typing import Any, Callable, Optional

import yaml  # type: ignore[import-untyped]

from karel.core.exceptions import WorldFormatError, WorldLoadError
from karel.core.world import Cell, Direction, Robot, WorldDescription, validate_description

logger = logging.getLogger(__name__)

_UNSET = object()
_LINE_RE = re.compile(r"^\s*(?P<key>[A-Za-z]+)\s*:\s*(?P<rest>.*?)\s*$")
_POINT_RE = re.compile(r"^\(\s*(?P<x>-?\d+)\s*,\s*(?P<y>-?\d+)\s*\)\s*(?P<tail>.*)$")
_BLANK_NAME_RE = re.compile(r"^(?P<w>\d+)x(?P<h>\d+)\.w$")
_INFINITE = {"infinite", "infinity", "inf", "unlimited"}


class _WorldBuilder:
    """Accumulates world parts in 1-based coordinates."""

    def __init__(self, default_bag: Optional[int]):
        self.width: Optional[int] = None
        self.height: Optional[int] = None
        self.robot = Robot(0, 0, Direction.EAST)
        self.walls: set[tuple[Cell, Direction]] = set()
        self.beepers: dict[Cell, int] = {}
        self.bag = default_bag

    def set_dimension(self, width: int, height: int, line: Optional[int] = None) -> None:
        if width <= 0 or height <= 0:
            raise WorldFormatError(f"dimensions must be positive, got ({width}, {height})", line)
        self.width, self.height = width, height

    def add_wall(self, x: int, y: int, side: str, line: Optional[int] = None) -> None:
        self.walls.add(((x - 1, y - 1), _direction(side, line)))

    def add_beepers(self, x: int, y: int, count: int, line: Optional[int] = None) -> None:
        if count < 0:
            raise WorldFormatError(f"beeper count must be >= 0, got {count}", line)
        cell = (x - 1, y - 1)
        self.beepers[cell] = self.beepers.get(cell, 0) + count

    def place_robot(self, x: int, y: int, facing: str, line: Optional[int] = None) -> None:
        self.robot = Robot(x - 1, y - 1, _direction(facing, line))

    def set_bag(self, value: Any, line: Optional[int] = None) -> None:
        self.bag = _parse_bag(value, line)

    def build(self) -> WorldDescription:
        if self.width is None or self.height is None:
            raise WorldFormatError("missing dimension")
        desc = WorldDescription(
            width=self.width,
            height=self.height,
            robot=self.robot,
            walls=frozenset(self.walls),
            beepers=dict(self.beepers),
            bag=self.bag,
        )
        validate_description(desc)
        return desc


def _direction(text: Any, line: Optional[int]) -> Direction:
    try:
        return Direction.parse(str(text))
    except ValueError as exc:
        raise WorldFormatError(str(exc), line) from exc


def _parse_bag(value: Any, line: Optional[int]) -> Optional[int]:
    if value is None or str(value).strip().lower() in _INFINITE:
        return None
    try:
        bag = int(str(value).strip())
    except ValueError as exc:
        raise WorldFormatError(f"invalid beeper bag {value!r}", line) from exc
    if bag < 0:
        raise WorldFormatError("beeper bag must be >= 0", line)
    return bag


def _parse_point(rest: str, line: int) -> tuple[int, int, str]:
    m = _POINT_RE.match(rest)
    if m is None:
        raise WorldFormatError(f"expected '(x, y)', got {rest!r}", line)
    return int(m.group("x")), int(m.group("y")), m.group("tail").strip()


def parse_world_text(text: str, default_bag: Optional[int] = None) -> WorldDescription:
    """Parse a classic ``.w`` world description.

    Raises:
        WorldFormatError: on malformed lines or invalid values
    """
    builder = _WorldBuilder(default_bag)

    for lineno, raw_line in enumerate(text.splitlines(), start=1):
        content = raw_line.split("//", 1)[0].strip()
        if not content:
            continue
        m = _LINE_RE.match(content)
        if m is None:
            raise WorldFormatError(f"cannot parse {content!r}", lineno)
        key = m.group("key").lower()
        rest = m.group("rest")

        if key == "dimension":
            x, y, _ = _parse_point(rest, lineno)
            builder.set_dimension(x, y, lineno)
        elif key == "wall":
            x, y, side = _parse_point(rest, lineno)
            builder.add_wall(x, y, side, lineno)
        elif key == "beeper":
            x, y, tail = _parse_point(rest, lineno)
            try:
                count = int(tail) if tail else 1
            except ValueError as exc:
                raise WorldFormatError(f"invalid beeper count {tail!r}", lineno) from exc
            builder.add_beepers(x, y, count, lineno)
        elif key == "karel":
            x, y, facing = _parse_point(rest, lineno)
            builder.place_robot(x, y, facing or "east", lineno)
        elif key == "beeperbag":
            builder.set_bag(rest, lineno)
        elif key == "speed":
            continue
        else:
            raise WorldFormatError(f"unknown entry '{m.group('key')}'", lineno)

    return builder.build()


def parse_world_yaml(text: str, default_bag: Optional[int] = None) -> WorldDescription:
    """Parse a YAML world description.

    Raises:
        WorldFormatError: on malformed YAML or invalid values
    """
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise WorldFormatError(f"invalid YAML: {exc}") from exc
    if not isinstance(raw, dict):
        raise WorldFormatError("world file must contain a mapping")

    builder = _WorldBuilder(default_bag)
    try:
        width, height = raw["dimension"]
        builder.set_dimension(int(width), int(height))

        karel = raw.get("karel")
        if karel is not None:
            builder.place_robot(int(karel["x"]), int(karel["y"]), karel.get("direction", "east"))

        for wall in raw.get("walls") or []:
            builder.add_wall(int(wall["x"]), int(wall["y"]), wall["side"])

        for beeper in raw.get("beepers") or []:
            builder.add_beepers(int(beeper["x"]), int(beeper["y"]), int(beeper.get("count", 1)))

        bag = raw.get("bag", _UNSET)
        if bag is not _UNSET:
            builder.set_bag(bag)
    except KeyError as exc:
        raise WorldFormatError(f"missing key {exc}") from exc
    except (TypeError, ValueError) as exc:
        raise WorldFormatError(f"invalid value: {exc}") from exc

    return builder.build()


def parse_world(text: str, fmt: str = "w", default_bag: Optional[int] = None) -> WorldDescription:
    if fmt in ("yaml", "yml"):
        return parse_world_yaml(text, default_bag)
    if fmt == "w":
        return parse_world_text(text, default_bag)
    raise ValueError(f"Unknown world format '{fmt}'")


class WorldLoader:
    """Resolves world names against a directory and parses them.

    ``load`` is synchronous; ``load_async`` runs it on a worker thread and
    reports through callbacks, the way the browser IDE fetched world files.
    Callbacks run on the worker thread, so GUI callers must marshal them
    back to their own thread.
    """

    def __init__(self, worlds_dir: Optional[str] = None, default_bag: Optional[int] = None):
        self.worlds_dir = Path(worlds_dir) if worlds_dir is not None else None
        self.default_bag = default_bag

    def resolve(self, name: str) -> Optional[Path]:
        candidate = Path(name)
        if candidate.is_file():
            return candidate
        if self.worlds_dir is not None:
            candidate = self.worlds_dir / name
            if candidate.is_file():
                return candidate
        return None

    def load(self, name: str) -> WorldDescription:
        """Load the named world.

        Raises:
            WorldLoadError: if the world cannot be found or read
            WorldFormatError: if its content is malformed
        """
        path = self.resolve(name)
        if path is None:
            m = _BLANK_NAME_RE.match(name)
            if m is None:
                raise WorldLoadError(name)
            logger.debug(f"Using blank world for '{name}'")
            text = f"Dimension: ({m.group('w')}, {m.group('h')})"
            return parse_world_text(text, self.default_bag)

        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise WorldLoadError(name, str(exc)) from exc

        fmt = path.suffix.lstrip(".").lower() or "w"
        if fmt not in ("w", "yaml", "yml"):
            raise WorldLoadError(name, f"unsupported world format '{path.suffix}'")
        desc = parse_world(text, fmt, self.default_bag)
        logger.info(f"Loaded world '{name}' ({desc.width}x{desc.height})")
        return desc

    def load_async(
        self,
        name: str,
        on_loaded: Callable[[str, WorldDescription], None],
        on_failed: Callable[[str, Exception], None],
    ) -> threading.Thread:
        def _worker() -> None:
            try:
                desc = self.load(name)
            except (WorldLoadError, WorldFormatError) as exc:
                logger.error(f"World '{name}' failed to load: {exc}")
                on_failed(name, exc)
                return
            on_loaded(name, desc)

        thread = threading.Thread(target=_worker, name=f"world-loader-{name}", daemon=True)
        thread.start()
        return thread

    def list_worlds(self) -> list[str]:
        if self.worlds_dir is None or not self.worlds_dir.is_dir():
            return []
        return sorted(
            p.name
            for p in self.worlds_dir.iterdir()
            if p.suffix.lower() in (".w", ".yaml", ".yml")
        )
