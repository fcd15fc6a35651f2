import io

import pytest

from karel.cli import AsciiRenderer, render_ascii, run_cli
from karel.core.world import Direction, Robot, WorldState


@pytest.fixture
def program_file(tmp_path):
    def _write(source):
        path = tmp_path / "program.k"
        path.write_text(source, encoding="utf-8")
        return str(path)

    return _write


def run(argv):
    out, err = io.StringIO(), io.StringIO()
    code = run_cli(argv, out=out, err=err)
    return code, out.getvalue(), err.getvalue()


class TestRender:
    def test_render_ascii(self):
        world = WorldState(
            3,
            2,
            walls=[((0, 0), Direction.EAST), ((1, 0), Direction.NORTH)],
            beepers={(2, 1): 12},
            bag=4,
        )
        assert render_ascii(world.snapshot()) == ". . +\n  -\n>|. .\nbag: 4"

    def test_robot_hides_beeper(self):
        world = WorldState(1, 1, robot=Robot(0, 0, Direction.SOUTH), beepers={(0, 0): 1})
        assert render_ascii(world.snapshot()).splitlines()[0] == "v"

    def test_ascii_renderer_counts_frames(self):
        stream = io.StringIO()
        renderer = AsciiRenderer(stream, clear=False)
        renderer.render(WorldState(2, 1).snapshot())
        assert renderer.frames == 1
        assert stream.getvalue() == "> .\nbag: infinite\n"


class TestRun:
    def test_finished(self, program_file, worlds_dir):
        code, out, err = run(
            ["run", program_file("move(); move();"), "--world", "corridor.w", "--worlds-dir", str(worlds_dir)]
        )
        assert code == 0
        assert ". . > 2" in out
        assert "Finished after 2 step(s)" in out
        assert err == ""

    def test_compile_error(self, program_file, worlds_dir):
        code, _, err = run(["run", program_file("move("), "--worlds-dir", str(worlds_dir)])
        assert code == 1
        assert "SyntaxError" in err

    def test_fault(self, program_file, worlds_dir):
        code, out, err = run(
            ["run", program_file("repeat (5) { move(); }"), "--world", "corridor.w", "--worlds-dir", str(worlds_dir)]
        )
        assert code == 1
        assert "Fault after 3 step(s)" in err
        assert "BlockedByWall" in err

    def test_step_limit(self, program_file):
        code, _, err = run(
            ["run", program_file("while (beepersInBag()) { turnLeft(); }"), "--max-steps", "50"]
        )
        assert code == 1
        assert "step limit of 50" in err

    def test_unknown_world(self, program_file, worlds_dir):
        code, _, err = run(
            ["run", program_file("move();"), "--world", "nowhere.w", "--worlds-dir", str(worlds_dir)]
        )
        assert code == 2
        assert "nowhere.w" in err

    def test_missing_program(self, tmp_path):
        code, _, err = run(["run", str(tmp_path / "missing.k")])
        assert code == 2
        assert "Cannot read program" in err

    def test_invalid_max_steps(self, program_file):
        code, _, _ = run(["run", program_file("move();"), "--max-steps", "0"])
        assert code == 2

    def test_bad_config(self, program_file, temp_yaml_file):
        temp_yaml_file.write_text("timing: {}\n", encoding="utf-8")
        code, _, err = run(["run", program_file("move();"), "--config", str(temp_yaml_file)])
        assert code == 2
        assert "Configuration error" in err

    def test_animate(self, program_file, worlds_dir):
        code, out, _ = run(
            [
                "run",
                program_file("move();"),
                "--world",
                "corridor.w",
                "--worlds-dir",
                str(worlds_dir),
                "--animate",
            ]
        )
        assert code == 0
        assert out.count("\x1b[H") >= 2
        assert "Finished after 1 step(s)" in out


def test_worlds_command(worlds_dir):
    code, out, _ = run(["worlds", "--worlds-dir", str(worlds_dir)])
    assert code == 0
    assert out.splitlines() == ["boxed.yaml", "corridor.w"]
