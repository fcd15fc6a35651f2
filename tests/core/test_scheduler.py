import pytest

from karel.core.compiler import compile_source
from karel.core.engine import ExecutionEngine
from karel.core.exceptions import SchedulerError, WorldNotLoadedError
from karel.core.program import Action, Program
from karel.core.results import RuntimeFaultKind, StepKind
from karel.core.scheduler import SchedulerState, StepScheduler
from karel.core.world import Direction, WorldState


class RecordingListener:
    def __init__(self):
        self.results = []

    def on_step(self, result):
        self.results.append(result)

    @property
    def kinds(self):
        return [r.kind for r in self.results]


@pytest.fixture
def listener():
    return RecordingListener()


def three_moves():
    return Program.from_actions([Action.MOVE] * 3)


class TestStartAndHeartbeat:
    def test_start_requires_program_and_world(self, world5):
        scheduler = StepScheduler()
        with pytest.raises(SchedulerError):
            scheduler.start(None, world5)
        with pytest.raises(WorldNotLoadedError):
            scheduler.start(three_moves(), None)
        assert scheduler.state is SchedulerState.IDLE

    def test_one_step_per_heartbeat(self, world5, listener):
        scheduler = StepScheduler(listener=listener)
        scheduler.start(three_moves(), world5)
        assert scheduler.state is SchedulerState.RUNNING

        for _ in range(3):
            scheduler.on_heartbeat()
        assert world5.robot.position == (3, 0)
        assert scheduler.state is SchedulerState.RUNNING

        scheduler.on_heartbeat()
        assert listener.kinds == [StepKind.CONTINUED] * 3 + [StepKind.FINISHED]
        assert scheduler.state is SchedulerState.IDLE
        assert scheduler.execution_state is None

    def test_action_heartbeats_divides_rate(self, world5):
        scheduler = StepScheduler(action_heartbeats=4)
        scheduler.start(three_moves(), world5)
        scheduler.tick(7)
        assert world5.robot.position == (1, 0)
        scheduler.tick(1)
        assert world5.robot.position == (2, 0)

    def test_heartbeat_while_idle_does_nothing(self, world5, listener):
        scheduler = StepScheduler(listener=listener)
        assert scheduler.on_heartbeat() is None
        assert listener.results == []

    def test_invalid_action_heartbeats(self):
        with pytest.raises(ValueError):
            StepScheduler(action_heartbeats=0)

    def test_tick_stops_after_finish(self, world5, listener):
        scheduler = StepScheduler(listener=listener)
        scheduler.start(three_moves(), world5)
        scheduler.tick(50)
        assert listener.kinds.count(StepKind.FINISHED) == 1
        assert len(listener.results) == 4


class TestFaults:
    def test_fault_moves_to_faulted(self, listener):
        world = WorldState(2, 2)
        scheduler = StepScheduler(listener=listener)
        scheduler.start(three_moves(), world)
        scheduler.tick(5)

        assert scheduler.state is SchedulerState.FAULTED
        assert scheduler.last_fault.kind is RuntimeFaultKind.BLOCKED_BY_WALL
        assert listener.kinds == [StepKind.CONTINUED, StepKind.FAULT]
        assert world.robot.position == (1, 0)

    def test_start_clears_fault(self, world5):
        scheduler = StepScheduler()
        scheduler.start(Program.from_actions([Action.PICK_BEEPER]), world5)
        scheduler.on_heartbeat()
        assert scheduler.state is SchedulerState.FAULTED

        scheduler.start(three_moves(), world5)
        assert scheduler.state is SchedulerState.RUNNING
        assert scheduler.last_fault is None


class TestStopAndReset:
    def test_stop_reloads_world(self, world5):
        reloads = []
        scheduler = StepScheduler(reload_world=lambda: reloads.append(True))
        scheduler.start(three_moves(), world5)
        scheduler.on_heartbeat()
        scheduler.stop()

        assert scheduler.state is SchedulerState.IDLE
        assert scheduler.execution_state is None
        assert reloads == [True]
        assert scheduler.on_heartbeat() is None

    def test_stop_when_idle_is_harmless(self):
        reloads = []
        scheduler = StepScheduler(reload_world=lambda: reloads.append(True))
        scheduler.stop()
        assert scheduler.state is SchedulerState.IDLE
        assert reloads == [True]

    def test_reset_does_not_reload(self, world5):
        reloads = []
        scheduler = StepScheduler(reload_world=lambda: reloads.append(True))
        scheduler.start(three_moves(), world5)
        scheduler.reset()
        assert scheduler.state is SchedulerState.IDLE
        assert reloads == []


class TestSingleStep:
    def test_single_step_begins_and_suspends(self, world5):
        scheduler = StepScheduler()
        result = scheduler.request_single_step(three_moves(), world5)

        assert result.kind is StepKind.CONTINUED
        assert scheduler.state is SchedulerState.IDLE
        assert scheduler.has_suspended_run
        assert world5.robot.position == (1, 0)

    def test_single_steps_continue_the_suspended_run(self, world5):
        scheduler = StepScheduler()
        scheduler.request_single_step(three_moves(), world5)
        scheduler.request_single_step()
        scheduler.request_single_step()
        assert world5.robot.position == (3, 0)
        assert scheduler.request_single_step().kind is StepKind.FINISHED
        assert not scheduler.has_suspended_run

    def test_single_step_while_running_pauses(self, world5):
        scheduler = StepScheduler()
        scheduler.start(three_moves(), world5)
        scheduler.request_single_step()
        assert scheduler.state is SchedulerState.IDLE
        assert world5.robot.position == (1, 0)

    def test_resume_after_single_step(self, world5):
        scheduler = StepScheduler()
        scheduler.request_single_step(three_moves(), world5)
        scheduler.resume()
        assert scheduler.state is SchedulerState.RUNNING
        scheduler.tick(10)
        assert world5.robot.position == (3, 0)
        assert scheduler.state is SchedulerState.IDLE

    def test_resume_without_run(self):
        with pytest.raises(SchedulerError):
            StepScheduler().resume()

    def test_single_step_without_program(self, world5):
        with pytest.raises(SchedulerError):
            StepScheduler().request_single_step(None, world5)


class ReentrantEngine(ExecutionEngine):
    """Calls back into the scheduler from inside a step, like a slow renderer would."""

    def __init__(self):
        super().__init__()
        self.scheduler = None
        self.steps = 0
        self.nested = []

    def execute_step(self, state, world):
        self.steps += 1
        self.nested.append(self.scheduler.on_heartbeat())
        with pytest.raises(SchedulerError, match="already in progress"):
            self.scheduler.request_single_step()
        with pytest.raises(SchedulerError):
            self.scheduler.request_action(Action.MOVE, world)
        return super().execute_step(state, world)


class TestReentrancy:
    def make_scheduler(self, listener):
        engine = ReentrantEngine()
        scheduler = StepScheduler(engine=engine, listener=listener)
        engine.scheduler = scheduler
        return engine, scheduler

    def test_heartbeat_during_step_is_ignored(self, world5, listener):
        engine, scheduler = self.make_scheduler(listener)
        scheduler.start(three_moves(), world5)

        result = scheduler.on_heartbeat()

        assert result.kind is StepKind.CONTINUED
        assert engine.steps == 1
        assert engine.nested == [None]
        assert listener.kinds == [StepKind.CONTINUED]
        assert world5.robot.position == (1, 0)

    def test_single_step_during_step_is_rejected(self, world5, listener):
        engine, scheduler = self.make_scheduler(listener)

        scheduler.request_single_step(three_moves(), world5)

        assert engine.steps == 1
        assert engine.nested == [None]
        assert listener.kinds == [StepKind.CONTINUED]
        assert world5.robot.position == (1, 0)
        assert scheduler.state is SchedulerState.IDLE


class TestManualActions:
    def test_manual_action_mutates_world(self, world5, listener):
        scheduler = StepScheduler(listener=listener)
        result = scheduler.request_action(Action.TURN_LEFT, world5)
        assert result.kind is StepKind.CONTINUED
        assert world5.facing_direction is Direction.NORTH
        assert listener.kinds == [StepKind.CONTINUED]

    def test_manual_action_reports_fault_without_changing_state(self):
        world = WorldState(1, 1)
        scheduler = StepScheduler()
        result = scheduler.request_action(Action.MOVE, world)
        assert result.fault.kind is RuntimeFaultKind.BLOCKED_BY_WALL
        assert scheduler.state is SchedulerState.IDLE

    def test_manual_action_rejected_while_running(self, world5):
        scheduler = StepScheduler()
        scheduler.start(three_moves(), world5)
        with pytest.raises(SchedulerError):
            scheduler.request_action(Action.MOVE, world5)

    def test_manual_action_needs_world(self):
        with pytest.raises(WorldNotLoadedError):
            StepScheduler().request_action(Action.MOVE, None)


def test_compiled_program_runs_under_scheduler(world5):
    program = compile_source("repeat (2) { move(); } turnLeft();").program
    scheduler = StepScheduler()
    scheduler.start(program, world5)
    scheduler.tick(10)
    assert world5.robot.position == (2, 0)
    assert world5.facing_direction is Direction.NORTH
