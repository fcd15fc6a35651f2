"""User-facing controller (framework-agnostic).

``KarelIde`` ties together the source provider, the compiler, the world
loader, the step scheduler and a renderer. The GUI wires buttons to its
methods and a timer to ``tick``; the command line runner drives it the
same way with a real-time loop.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from karel.core.compiler import compile_source
from karel.core.engine import ExecutionEngine
from karel.core.exceptions import (
    CompileError,
    SchedulerError,
    WorldFormatError,
    WorldLoadError,
)
from karel.core.program import Action
from karel.core.results import CompileResult, RuntimeFault, StepKind, StepResult
from karel.core.scheduler import SchedulerState, StepScheduler
from karel.core.world import WorldDescription, WorldState
from karel.interfaces.renderer import SourceProvider, WorldRenderer
from karel.utils.config_loader import KarelConfig, get_config
from karel.worlds.loader import WorldLoader

logger = logging.getLogger(__name__)


class KarelIdeListener:
    """Notifications from the IDE; override the ones you care about."""

    def on_compile_error(self, error: CompileError) -> None:
        return None

    def on_fault(self, fault: RuntimeFault) -> None:
        return None

    def on_finished(self, steps: int) -> None:
        return None

    def on_rejected(self, message: str) -> None:
        return None

    def on_world_loaded(self, name: str) -> None:
        return None

    def on_world_error(self, name: str, error: Exception) -> None:
        return None


def _call_now(fn: Callable[[], None]) -> None:
    fn()


class KarelIde:
    """Controller behind the play/stop/step buttons."""

    def __init__(
        self,
        source: SourceProvider,
        config: Optional[KarelConfig] = None,
        loader: Optional[WorldLoader] = None,
        renderer: Optional[WorldRenderer] = None,
        listener: Optional[KarelIdeListener] = None,
        initial_world: Optional[str] = None,
        async_loading: bool = False,
        dispatch: Callable[[Callable[[], None]], None] = _call_now,
    ):
        self._config = config or get_config()
        self._source = source
        self._loader = loader or WorldLoader(
            self._config.world.worlds_dir, self._config.world.default_bag
        )
        self._renderer = renderer
        self._listener = listener or KarelIdeListener()
        self._async_loading = async_loading
        self._dispatch = dispatch

        engine = ExecutionEngine(
            max_call_depth=self._config.limits.max_call_depth,
            max_free_ops_per_step=self._config.limits.max_free_ops_per_step,
        )
        self._scheduler = StepScheduler(
            engine,
            action_heartbeats=self._config.timing.action_heartbeats,
            reload_world=self._reload_world,
            listener=self,
        )

        self._world: Optional[WorldState] = None
        self._world_name = initial_world or self._config.world.initial_world
        self._refresh_countdown = self._config.timing.refresh_heartbeats
        self._steps = 0
        self._last_compile: Optional[CompileResult] = None

        self._load_world(self._world_name)

    # Properties -------------------------------------------------------------

    @property
    def scheduler(self) -> StepScheduler:
        return self._scheduler

    @property
    def world(self) -> Optional[WorldState]:
        return self._world

    @property
    def world_loaded(self) -> bool:
        return self._world is not None

    @property
    def world_name(self) -> str:
        return self._world_name

    @property
    def animating(self) -> bool:
        return self._scheduler.state is SchedulerState.RUNNING

    @property
    def steps(self) -> int:
        return self._steps

    @property
    def last_compile(self) -> Optional[CompileResult]:
        return self._last_compile

    def get_model(self) -> Optional[WorldDescription]:
        """Snapshot of the current world, or None while loading."""
        if self._world is None:
            return None
        return self._world.snapshot()

    # Buttons ----------------------------------------------------------------

    def play(self) -> CompileResult:
        """Compile the editor's code and start animating it.

        The world is not reset first, so a program can continue from where
        manual steps left Karel.
        """
        result = self._compile()
        if result.ok:
            try:
                self._scheduler.start(result.program, self._world)
            except SchedulerError as exc:
                self._reject(str(exc))
            else:
                self._steps = 0
        return result

    def stop(self) -> None:
        """Stop animating and restore the current world."""
        self._scheduler.stop()

    def resume(self) -> None:
        try:
            self._scheduler.resume()
        except SchedulerError as exc:
            self._reject(str(exc))

    def change_world(self, name: str) -> None:
        self._scheduler.reset()
        self._world_name = name
        self._load_world(name)

    def single_step(self) -> Optional[StepResult]:
        """Run one program step now, compiling first when no run is suspended."""
        program = None
        if not self._scheduler.has_suspended_run:
            result = self._compile()
            if not result.ok:
                return None
            program = result.program
            self._steps = 0
        try:
            return self._scheduler.request_single_step(program, self._world)
        except SchedulerError as exc:
            self._reject(str(exc))
            return None

    def step_move(self) -> Optional[StepResult]:
        return self._manual(Action.MOVE)

    def step_turn_left(self) -> Optional[StepResult]:
        return self._manual(Action.TURN_LEFT)

    def step_turn_right(self) -> Optional[StepResult]:
        return self._manual(Action.TURN_RIGHT)

    def step_put_beeper(self) -> Optional[StepResult]:
        return self._manual(Action.PUT_BEEPER)

    def step_pick_beeper(self) -> Optional[StepResult]:
        return self._manual(Action.PICK_BEEPER)

    # Heartbeat --------------------------------------------------------------

    def heartbeat(self) -> None:
        """One timer tick: maybe step, and redraw when something changed."""
        result = self._scheduler.on_heartbeat()
        self._refresh_countdown -= 1
        if self._refresh_countdown <= 0:
            self._refresh_countdown = self._config.timing.refresh_heartbeats
            if result is None:
                self._draw()

    def tick(self, beats: int = 1) -> None:
        for _ in range(beats):
            self.heartbeat()

    # SchedulerListener ------------------------------------------------------

    def on_step(self, result: StepResult) -> None:
        if result.kind is StepKind.CONTINUED:
            self._steps += 1
        self._draw()
        if result.kind is StepKind.FINISHED:
            self._listener.on_finished(self._steps)
        elif result.kind is StepKind.FAULT:
            self._listener.on_fault(result.fault)

    # Private helpers --------------------------------------------------------

    def _compile(self) -> CompileResult:
        result = compile_source(
            self._source.get_source(), self._config.limits.max_nesting_depth
        )
        self._last_compile = result
        if not result.ok:
            self._listener.on_compile_error(result.error)
        return result

    def _manual(self, action: Action) -> Optional[StepResult]:
        try:
            return self._scheduler.request_action(action, self._world)
        except SchedulerError as exc:
            self._reject(str(exc))
            return None

    def _reject(self, message: str) -> None:
        logger.warning(f"Request rejected: {message}")
        self._listener.on_rejected(message)

    def _reload_world(self) -> None:
        self._load_world(self._world_name)

    def _load_world(self, name: str) -> None:
        self._world = None
        if self._async_loading:
            self._loader.load_async(
                name,
                on_loaded=lambda n, desc: self._dispatch(lambda: self._world_file_loaded(n, desc)),
                on_failed=lambda n, exc: self._dispatch(lambda: self._world_failed(n, exc)),
            )
            return

        try:
            desc = self._loader.load(name)
        except (WorldLoadError, WorldFormatError) as exc:
            self._world_failed(name, exc)
            return
        self._world_file_loaded(name, desc)

    def _world_file_loaded(self, name: str, desc: WorldDescription) -> None:
        if name != self._world_name:
            logger.debug(f"Ignoring stale world '{name}'")
            return
        self._world = WorldState.from_description(desc)
        self._draw()
        self._listener.on_world_loaded(name)

    def _world_failed(self, name: str, exc: Exception) -> None:
        logger.error(f"Could not load world '{name}': {exc}")
        self._listener.on_world_error(name, exc)

    def _draw(self) -> None:
        if self._renderer is not None and self._world is not None:
            self._renderer.render(self._world.snapshot())
