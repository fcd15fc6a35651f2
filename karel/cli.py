"""Command line runner.

Runs a Karel program against a world without the GUI::

    karel run program.k --world collect_newspaper.w
    karel run program.k --animate
    karel worlds

Exit status is 0 when the program finishes, 1 on a compile error, a
runtime fault or the step limit, and 2 on usage, config or world errors.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

from karel.core.clock import Clock, run_realtime
from karel.core.exceptions import CompileError, ConfigurationError
from karel.core.results import RuntimeFault, StepResult
from karel.core.world import Direction, WorldDescription
from karel.ide import KarelIde, KarelIdeListener
from karel.interfaces.renderer import StaticSource
from karel.utils.config_loader import KarelConfig, get_config, load_config
from karel.worlds.loader import WorldLoader

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2

DEFAULT_MAX_STEPS = 100_000

_ROBOT_GLYPHS = {
    Direction.NORTH: "^",
    Direction.EAST: ">",
    Direction.SOUTH: "v",
    Direction.WEST: "<",
}


def _cell_glyph(desc: WorldDescription, x: int, y: int) -> str:
    if desc.robot.position == (x, y):
        return _ROBOT_GLYPHS[desc.robot.direction]
    count = desc.beepers.get((x, y), 0)
    if count <= 0:
        return "."
    return str(count) if count < 10 else "+"


def render_ascii(desc: WorldDescription) -> str:
    """Draw a world as text, north at the top.

    ``|`` marks a wall between two cells of a row and ``-`` a wall on the
    south side of the cell above it.
    """
    lines = []
    for y in reversed(range(desc.height)):
        row = []
        for x in range(desc.width):
            row.append(_cell_glyph(desc, x, y))
            if x < desc.width - 1:
                row.append("|" if ((x, y), Direction.EAST) in desc.walls else " ")
        lines.append("".join(row))

        if y > 0:
            under = " ".join(
                "-" if ((x, y), Direction.SOUTH) in desc.walls else " "
                for x in range(desc.width)
            )
            if "-" in under:
                lines.append(under.rstrip())

    bag = "infinite" if desc.bag is None else str(desc.bag)
    lines.append(f"bag: {bag}")
    return "\n".join(lines)


class AsciiRenderer:
    """WorldRenderer that prints each frame to a text stream."""

    def __init__(self, stream: Optional[TextIO] = None, clear: bool = True):
        self._stream = stream or sys.stdout
        self._clear = clear
        self.frames = 0

    def render(self, snapshot: WorldDescription) -> None:
        if self._clear:
            self._stream.write("\x1b[H\x1b[2J")
        self._stream.write(render_ascii(snapshot) + "\n")
        self._stream.flush()
        self.frames += 1


class _Outcome(KarelIdeListener):
    """Remembers how the run ended."""

    def __init__(self) -> None:
        self.compile_error: Optional[CompileError] = None
        self.fault: Optional[RuntimeFault] = None
        self.finished_steps: Optional[int] = None
        self.world_error: Optional[Exception] = None

    def on_compile_error(self, error: CompileError) -> None:
        self.compile_error = error

    def on_fault(self, fault: RuntimeFault) -> None:
        self.fault = fault

    def on_finished(self, steps: int) -> None:
        self.finished_steps = steps

    def on_world_error(self, name: str, error: Exception) -> None:
        self.world_error = error


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)")
    common.add_argument("--config", default=None, help="Path to config YAML")

    parser = argparse.ArgumentParser(prog="karel", description="Karel the Robot simulator")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", parents=[common], help="Run a Karel program")
    run.add_argument("program", help="Path to the Karel source file")
    run.add_argument("--world", default=None, help="World file name or path")
    run.add_argument("--worlds-dir", default=None, help="Directory searched for world names")
    run.add_argument(
        "--max-steps",
        type=int,
        default=DEFAULT_MAX_STEPS,
        help=f"Stop after this many actions (default {DEFAULT_MAX_STEPS})",
    )
    run.add_argument("--animate", action="store_true", help="Redraw the world at heartbeat pace")

    worlds = sub.add_parser("worlds", parents=[common], help="List the available worlds")
    worlds.add_argument("--worlds-dir", default=None, help="Directory to list")
    return parser


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _loader_for(args: argparse.Namespace, config: KarelConfig) -> WorldLoader:
    return WorldLoader(args.worlds_dir or config.world.worlds_dir, config.world.default_bag)


def _run_stepwise(ide: KarelIde, max_steps: int) -> Optional[StepResult]:
    result = ide.single_step()
    while result is not None and not result.is_terminal:
        if ide.steps >= max_steps:
            return result
        result = ide.single_step()
    return result


def _run_animated(ide: KarelIde, config: KarelConfig, max_steps: int) -> None:
    if not ide.play().ok:
        return
    clock = Clock(config.timing.heartbeat_ms)
    clock.subscribe(ide)
    run_realtime(clock, lambda: ide.animating and ide.steps < max_steps)
    if ide.animating:
        ide.scheduler.reset()


def _cmd_run(args: argparse.Namespace, config: KarelConfig, out: TextIO, err: TextIO) -> int:
    if args.max_steps <= 0:
        err.write("--max-steps must be positive\n")
        return EXIT_USAGE
    try:
        source = Path(args.program).read_text(encoding="utf-8")
    except OSError as exc:
        err.write(f"Cannot read program '{args.program}': {exc}\n")
        return EXIT_USAGE

    outcome = _Outcome()
    renderer = AsciiRenderer(out) if args.animate else None
    ide = KarelIde(
        StaticSource(source),
        config=config,
        loader=_loader_for(args, config),
        renderer=renderer,
        listener=outcome,
        initial_world=args.world,
    )
    if not ide.world_loaded:
        err.write(f"{outcome.world_error}\n")
        return EXIT_USAGE

    if args.animate:
        _run_animated(ide, config, args.max_steps)
    else:
        _run_stepwise(ide, args.max_steps)
        model = ide.get_model()
        if model is not None:
            out.write(render_ascii(model) + "\n")

    if outcome.compile_error is not None:
        err.write(f"{outcome.compile_error}\n")
        return EXIT_FAILED
    if outcome.fault is not None:
        err.write(f"Fault after {ide.steps} step(s): {outcome.fault}\n")
        return EXIT_FAILED
    if outcome.finished_steps is None:
        err.write(f"Stopped: step limit of {args.max_steps} reached\n")
        return EXIT_FAILED
    out.write(f"Finished after {outcome.finished_steps} step(s)\n")
    return EXIT_OK


def _cmd_worlds(args: argparse.Namespace, config: KarelConfig, out: TextIO) -> int:
    for name in _loader_for(args, config).list_worlds():
        out.write(name + "\n")
    return EXIT_OK


def run_cli(
    argv: Optional[list[str]] = None,
    out: Optional[TextIO] = None,
    err: Optional[TextIO] = None,
) -> int:
    out = out or sys.stdout
    err = err or sys.stderr
    args = _build_parser().parse_args(argv if argv is not None else sys.argv[1:])
    _configure_logging(args.verbose)

    try:
        config = load_config(args.config) if args.config else get_config()
    except ConfigurationError as exc:
        err.write(f"{exc}\n")
        return EXIT_USAGE

    if args.command == "worlds":
        return _cmd_worlds(args, config, out)
    return _cmd_run(args, config, out, err)


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
