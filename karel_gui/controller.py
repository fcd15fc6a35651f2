"""GUI controller (Presenter-ish, framework-agnostic)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Optional

from karel.core.exceptions import CompileError
from karel.core.results import RuntimeFault
from karel.core.scheduler import SchedulerState
from karel.ide import KarelIde, KarelIdeListener
from karel.interfaces.renderer import SourceProvider, WorldRenderer
from karel.utils.config_loader import KarelConfig, get_config
from karel.worlds.loader import WorldLoader

try:
    import psutil  # type: ignore[import-untyped]
except Exception:  # pragma: no cover - optional dependency
    psutil = None


class ControllerState(Enum):
    LOADING = auto()
    IDLE = auto()
    RUNNING = auto()
    FAULTED = auto()


@dataclass
class StatusSample:
    cpu_percent: float | None
    memory_percent: float | None


class SystemMonitor:
    """Process-level CPU/memory monitoring."""

    def __init__(self):
        self._proc = psutil.Process() if psutil else None
        if self._proc is not None:
            self._proc.cpu_percent(interval=None)

    def sample(self) -> StatusSample:
        if self._proc is None:
            return StatusSample(None, None)
        return StatusSample(
            cpu_percent=float(self._proc.cpu_percent(interval=None)),
            memory_percent=float(self._proc.memory_percent()),
        )


_MANUAL_ACTIONS = {
    "move": KarelIde.step_move,
    "turnLeft": KarelIde.step_turn_left,
    "turnRight": KarelIde.step_turn_right,
    "putBeeper": KarelIde.step_put_beeper,
    "pickBeeper": KarelIde.step_pick_beeper,
}


class KarelController(KarelIdeListener):
    """Wraps KarelIde and turns its notifications into a status message."""

    def __init__(
        self,
        source: SourceProvider,
        renderer: Optional[WorldRenderer] = None,
        config: Optional[KarelConfig] = None,
        initial_world: Optional[str] = None,
        async_loading: bool = True,
        dispatch: Optional[Callable[[Callable[[], None]], None]] = None,
    ):
        self._config = config or get_config()
        self._loader = WorldLoader(self._config.world.worlds_dir, self._config.world.default_bag)
        self._message = ""
        self._monitor = SystemMonitor()
        kwargs = {} if dispatch is None else {"dispatch": dispatch}
        self._ide = KarelIde(
            source,
            config=self._config,
            loader=self._loader,
            renderer=renderer,
            listener=self,
            initial_world=initial_world,
            async_loading=async_loading,
            **kwargs,
        )

    @property
    def ide(self) -> KarelIde:
        return self._ide

    @property
    def config(self) -> KarelConfig:
        return self._config

    @property
    def message(self) -> str:
        return self._message

    @property
    def state(self) -> ControllerState:
        if not self._ide.world_loaded:
            return ControllerState.LOADING
        scheduler_state = self._ide.scheduler.state
        if scheduler_state is SchedulerState.RUNNING:
            return ControllerState.RUNNING
        if scheduler_state is SchedulerState.FAULTED:
            return ControllerState.FAULTED
        return ControllerState.IDLE

    def world_names(self) -> list[str]:
        names = self._loader.list_worlds()
        initial = self._config.world.initial_world
        if initial not in names:
            names.insert(0, initial)
        return names

    # Commands ---------------------------------------------------------------

    def play(self) -> None:
        self._message = ""
        if self._ide.play().ok and self._ide.animating:
            self._message = "Running"

    def stop(self) -> None:
        self._ide.stop()
        self._message = "Stopped"

    def resume(self) -> None:
        self._ide.resume()

    def single_step(self) -> None:
        self._ide.single_step()

    def manual(self, action: str) -> None:
        try:
            command = _MANUAL_ACTIONS[action]
        except KeyError:
            raise ValueError(f"Unknown action '{action}'") from None
        command(self._ide)

    def change_world(self, name: str) -> None:
        self._message = f"Loading {name}..."
        self._ide.change_world(name)

    def tick(self, beats: int = 1) -> None:
        self._ide.tick(beats)

    def status(self) -> StatusSample:
        return self._monitor.sample()

    # KarelIdeListener -------------------------------------------------------

    def on_compile_error(self, error: CompileError) -> None:
        self._message = str(error)

    def on_fault(self, fault: RuntimeFault) -> None:
        self._message = f"Error: {fault.message}"

    def on_finished(self, steps: int) -> None:
        self._message = f"Finished in {steps} step(s)"

    def on_rejected(self, message: str) -> None:
        self._message = message

    def on_world_loaded(self, name: str) -> None:
        self._message = f"Loaded {name}"

    def on_world_error(self, name: str, error: Exception) -> None:
        self._message = str(error)
