"""
Pytest configuration and shared fixtures for the karel test suite.
"""

import sys
import tempfile
from pathlib import Path

import pytest
import yaml

# Ensure project root is on PYTHONPATH so 'karel' can be imported
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from karel.core.world import WorldState  # noqa: E402
from karel.utils.config_loader import clear_config_cache  # noqa: E402


@pytest.fixture
def temp_yaml_file():
    """
    Fixture that provides a temporary YAML file.

    Yields:
        Path: Path to the temporary YAML file
    """
    with tempfile.NamedTemporaryFile(
        mode="w",
        suffix=".yaml",
        delete=False,
    ) as f:
        temp_path = Path(f.name)

    yield temp_path

    # Cleanup
    if temp_path.exists():
        temp_path.unlink()


@pytest.fixture
def valid_karel_config_dict():
    """
    Fixture providing a complete valid karel configuration dictionary.
    """
    return {
        "timing": {
            "heartbeat_ms": 8,
            "action_heartbeats": 1,
            "refresh_heartbeats": 100,
        },
        "limits": {
            "max_call_depth": 1000,
            "max_free_ops_per_step": 100000,
            "max_nesting_depth": 100,
        },
        "world": {
            "initial_world": "15x15.w",
            "worlds_dir": "worlds",
            "default_bag": "infinite",
        },
        "canvas": {"width": 370, "height": 370},
    }


@pytest.fixture
def temp_config_yaml_file(temp_yaml_file, valid_karel_config_dict):
    """
    Fixture that creates a temporary YAML file with valid configuration.
    """
    with open(temp_yaml_file, "w", encoding="utf-8") as f:
        yaml.dump(valid_karel_config_dict, f)

    yield temp_yaml_file


@pytest.fixture
def worlds_dir(tmp_path):
    """A worlds directory with one small text world and one YAML world."""
    (tmp_path / "corridor.w").write_text(
        "Dimension: (4, 1)\nKarel: (1, 1) east\nBeeper: (4, 1) 2\n",
        encoding="utf-8",
    )
    (tmp_path / "boxed.yaml").write_text(
        "dimension: [3, 3]\n"
        "karel: {x: 2, y: 2, direction: north}\n"
        "walls:\n"
        "  - {x: 2, y: 2, side: north}\n"
        "bag: 1\n",
        encoding="utf-8",
    )
    return tmp_path


@pytest.fixture
def karel_config(temp_yaml_file, valid_karel_config_dict, worlds_dir):
    """A loaded KarelConfig whose worlds_dir points at the worlds_dir fixture."""
    from karel.utils.config_loader import load_config

    raw = dict(valid_karel_config_dict)
    raw["world"] = dict(raw["world"], worlds_dir=str(worlds_dir))
    with open(temp_yaml_file, "w", encoding="utf-8") as f:
        yaml.dump(raw, f)
    return load_config(str(temp_yaml_file))


@pytest.fixture
def world5():
    """An empty 5x5 world with Karel at the origin facing east."""
    return WorldState(5, 5)


@pytest.fixture(autouse=True)
def _fresh_config_cache():
    clear_config_cache()
    yield
    clear_config_cache()


def pytest_configure(config):
    """
    Hook for initial pytest configuration.

    Used to add custom markers and configuration.
    """
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests",
    )
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
