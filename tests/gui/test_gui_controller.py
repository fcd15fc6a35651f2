import pytest

from karel.interfaces.renderer import StaticSource
from karel_gui.controller import ControllerState, KarelController, StatusSample, SystemMonitor


@pytest.fixture
def controller(karel_config):
    def _make(source="move();", world="corridor.w"):
        return KarelController(
            StaticSource(source),
            config=karel_config,
            initial_world=world,
            async_loading=False,
        )

    return _make


def test_idle_after_load(controller):
    c = controller()
    assert c.state is ControllerState.IDLE
    assert c.message == "Loaded corridor.w"


def test_loading_state_without_world(controller):
    c = controller(world="nowhere.w")
    assert c.state is ControllerState.LOADING
    assert "nowhere.w" in c.message


def test_play_until_finished(controller):
    c = controller("move(); move();")
    c.play()
    assert c.state is ControllerState.RUNNING
    c.tick(5)
    assert c.state is ControllerState.IDLE
    assert c.message == "Finished in 2 step(s)"


def test_fault_message(controller):
    c = controller("pickBeeper();")
    c.play()
    c.tick(1)
    assert c.state is ControllerState.FAULTED
    assert c.message.startswith("Error: There is no beeper here")


def test_compile_error_message(controller):
    c = controller("move(")
    c.play()
    assert c.state is ControllerState.IDLE
    assert "SyntaxError" in c.message


def test_manual_actions(controller):
    c = controller()
    c.manual("turnLeft")
    c.manual("turnRight")
    c.manual("move")
    assert c.ide.get_model().robot.position == (1, 0)
    with pytest.raises(ValueError):
        c.manual("jump")


def test_stop_and_change_world(controller):
    c = controller("move(); move();")
    c.play()
    c.tick(1)
    c.stop()
    assert c.message == "Stopped"
    assert c.ide.get_model().robot.position == (0, 0)

    c.change_world("boxed.yaml")
    assert c.message == "Loaded boxed.yaml"


def test_world_names_include_initial(controller, karel_config):
    names = controller().world_names()
    assert names[0] == karel_config.world.initial_world
    assert "corridor.w" in names


def test_system_monitor_sample_shape():
    sample = SystemMonitor().sample()
    assert isinstance(sample, StatusSample)
    if sample.cpu_percent is not None:
        assert sample.cpu_percent >= 0.0
