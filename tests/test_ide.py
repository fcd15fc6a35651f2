import dataclasses
import threading

import pytest

from karel.core.exceptions import CompileErrorKind, WorldLoadError
from karel.core.results import RuntimeFaultKind
from karel.core.scheduler import SchedulerState
from karel.core.world import Direction
from karel.ide import KarelIde, KarelIdeListener
from karel.interfaces.renderer import StaticSource


class RecordingRenderer:
    def __init__(self):
        self.frames = []

    def render(self, snapshot):
        self.frames.append(snapshot)


class RecordingListener(KarelIdeListener):
    def __init__(self):
        self.events = []

    def on_compile_error(self, error):
        self.events.append(("compile_error", error.kind))

    def on_fault(self, fault):
        self.events.append(("fault", fault.kind))

    def on_finished(self, steps):
        self.events.append(("finished", steps))

    def on_rejected(self, message):
        self.events.append(("rejected", message))

    def on_world_loaded(self, name):
        self.events.append(("loaded", name))

    def on_world_error(self, name, error):
        self.events.append(("world_error", type(error)))


class MutableSource:
    def __init__(self, text):
        self.text = text

    def get_source(self):
        return self.text


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def renderer():
    return RecordingRenderer()


@pytest.fixture
def make_ide(karel_config, listener, renderer):
    def _make(source="move();", world="corridor.w", **kwargs):
        if isinstance(source, str):
            source = StaticSource(source)
        return KarelIde(
            source,
            config=karel_config,
            renderer=renderer,
            listener=listener,
            initial_world=world,
            **kwargs,
        )

    return _make


class TestWorldLoading:
    def test_initial_world_loaded_and_drawn(self, make_ide, listener, renderer):
        ide = make_ide()
        assert ide.world_loaded
        assert ide.world_name == "corridor.w"
        assert ide.get_model().width == 4
        assert len(renderer.frames) == 1
        assert listener.events == [("loaded", "corridor.w")]

    def test_default_initial_world_is_blank(self, karel_config):
        ide = KarelIde(StaticSource(""), config=karel_config)
        model = ide.get_model()
        assert (model.width, model.height) == (15, 15)

    def test_change_world(self, make_ide):
        ide = make_ide()
        ide.change_world("boxed.yaml")
        assert ide.world_name == "boxed.yaml"
        assert ide.get_model().robot.direction is Direction.NORTH

    def test_unknown_world_reports_error(self, make_ide, listener):
        ide = make_ide(world="nowhere.w")
        assert not ide.world_loaded
        assert ide.get_model() is None
        assert listener.events == [("world_error", WorldLoadError)]

    def test_play_without_world_is_rejected(self, make_ide, listener):
        ide = make_ide(world="nowhere.w")
        result = ide.play()
        assert result.ok
        assert not ide.animating
        assert listener.events[-1] == ("rejected", "No world is loaded yet")


class TestPlayAndStop:
    def test_play_runs_to_finish(self, make_ide, listener):
        ide = make_ide("move(); move(); move();")
        assert ide.play().ok
        assert ide.animating

        ide.tick(10)
        assert not ide.animating
        assert ide.get_model().robot.position == (3, 0)
        assert listener.events[-1] == ("finished", 3)
        assert ide.steps == 3

    def test_play_does_not_reset_world(self, make_ide):
        ide = make_ide("move();")
        ide.step_move()
        ide.play()
        ide.tick(5)
        assert ide.get_model().robot.position == (2, 0)

    def test_compile_error_reported(self, make_ide, listener):
        ide = make_ide("move(")
        result = ide.play()
        assert not result.ok
        assert ide.last_compile is result
        assert not ide.animating
        assert listener.events[-1] == ("compile_error", CompileErrorKind.SYNTAX_ERROR)

    def test_nesting_limit_comes_from_config(self, karel_config, listener):
        limits = dataclasses.replace(karel_config.limits, max_nesting_depth=2)
        config = dataclasses.replace(karel_config, limits=limits)
        source = StaticSource("repeat (1) { repeat (1) { repeat (1) { move(); } } }")
        ide = KarelIde(source, config=config, listener=listener, initial_world="corridor.w")
        result = ide.play()
        assert not result.ok
        assert "nesting too deep" in result.error.reason
        assert listener.events[-1] == ("compile_error", CompileErrorKind.SYNTAX_ERROR)

    def test_runtime_fault_reported(self, make_ide, listener):
        ide = make_ide("repeat (4) { move(); }")
        ide.play()
        ide.tick(10)
        assert ide.scheduler.state is SchedulerState.FAULTED
        assert listener.events[-1] == ("fault", RuntimeFaultKind.BLOCKED_BY_WALL)
        assert ide.get_model().robot.position == (3, 0)

    def test_stop_restores_world(self, make_ide):
        ide = make_ide("move(); move();")
        ide.play()
        ide.tick(1)
        assert ide.get_model().robot.position == (1, 0)

        ide.stop()
        assert not ide.animating
        assert ide.get_model().robot.position == (0, 0)

    def test_source_is_read_on_every_play(self, make_ide, listener):
        source = MutableSource("move(")
        ide = make_ide(source)
        assert not ide.play().ok
        source.text = "move();"
        assert ide.play().ok

    def test_each_step_is_drawn(self, make_ide, renderer):
        ide = make_ide("move(); move();")
        ide.play()
        ide.tick(3)
        # initial load, two moves and the finishing step
        assert len(renderer.frames) == 4


class TestSingleStep:
    def test_single_step_compiles_and_steps(self, make_ide):
        ide = make_ide("move(); move();")
        result = ide.single_step()
        assert not result.is_terminal
        assert ide.get_model().robot.position == (1, 0)
        assert not ide.animating

    def test_single_steps_continue_then_resume(self, make_ide, listener):
        ide = make_ide("move(); move(); move();")
        ide.single_step()
        ide.single_step()
        ide.resume()
        assert ide.animating
        ide.tick(5)
        assert listener.events[-1] == ("finished", 3)

    def test_single_step_with_compile_error(self, make_ide, listener):
        ide = make_ide("jump();")
        assert ide.single_step() is None
        assert listener.events[-1] == ("compile_error", CompileErrorKind.UNKNOWN_IDENTIFIER)

    def test_resume_without_run_is_rejected(self, make_ide, listener):
        ide = make_ide()
        ide.resume()
        assert listener.events[-1][0] == "rejected"


class TestManualButtons:
    def test_manual_actions(self, make_ide):
        ide = make_ide()
        ide.step_turn_left()
        ide.step_turn_right()
        ide.step_move()
        ide.step_put_beeper()
        model = ide.get_model()
        assert model.robot.position == (1, 0)
        assert model.robot.direction is Direction.EAST
        assert model.beepers[(1, 0)] == 1

    def test_manual_pick_without_beeper_faults(self, make_ide, listener):
        ide = make_ide()
        result = ide.step_pick_beeper()
        assert result.fault.kind is RuntimeFaultKind.NO_BEEPER_TO_PICK_UP
        assert listener.events[-1] == ("fault", RuntimeFaultKind.NO_BEEPER_TO_PICK_UP)

    def test_manual_action_rejected_while_animating(self, make_ide, listener):
        ide = make_ide("move(); move();")
        ide.play()
        assert ide.step_move() is None
        assert listener.events[-1][0] == "rejected"


class TestHeartbeat:
    def test_idle_refresh_every_refresh_heartbeats(self, make_ide, renderer, karel_config):
        ide = make_ide()
        before = len(renderer.frames)
        ide.tick(karel_config.timing.refresh_heartbeats * 2)
        assert len(renderer.frames) == before + 2


class TestAsyncLoading:
    def test_world_arrives_through_dispatch(self, make_ide):
        pending = []
        ready = threading.Event()

        def dispatch(fn):
            pending.append(fn)
            ready.set()

        ide = make_ide(async_loading=True, dispatch=dispatch)
        assert ready.wait(5)
        assert not ide.world_loaded

        pending.pop()()
        assert ide.world_loaded
        assert ide.get_model().width == 4

    def test_stale_world_is_ignored(self, make_ide):
        pending = []
        lock = threading.Lock()
        both = threading.Event()

        def dispatch(fn):
            with lock:
                pending.append(fn)
                if len(pending) == 2:
                    both.set()

        ide = make_ide(async_loading=True, dispatch=dispatch)
        ide.change_world("boxed.yaml")
        assert both.wait(5)

        for fn in pending:
            fn()
        assert ide.world_name == "boxed.yaml"
        assert ide.get_model().width == 3
