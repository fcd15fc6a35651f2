"""Helpers for loading and validating karel runtime configuration."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional
import threading

import yaml  # type: ignore[import-untyped]

from karel.core.exceptions import ConfigurationError

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"


@dataclass(frozen=True)
class TimingConfig:
    heartbeat_ms: int
    action_heartbeats: int
    refresh_heartbeats: int


@dataclass(frozen=True)
class LimitsConfig:
    max_call_depth: int
    max_free_ops_per_step: int
    max_nesting_depth: int = 100


@dataclass(frozen=True)
class WorldConfig:
    initial_world: str
    worlds_dir: str
    default_bag: Optional[int]


@dataclass(frozen=True)
class CanvasConfig:
    width: int
    height: int


@dataclass(frozen=True)
class KarelConfig:
    timing: TimingConfig
    limits: LimitsConfig
    world: WorldConfig
    canvas: CanvasConfig


# Configuration cache with thread safety
_LOADER_CACHE: dict[str, KarelConfig] = {}
_CACHE_LOCK = threading.RLock()


def _load_yaml_file(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Failed to parse config: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigurationError("Config file must contain a mapping")
    return raw


def _optional_int(value: Any) -> Optional[int]:
    if value is None or (isinstance(value, str) and value.lower() in ("infinite", "infinity")):
        return None
    return int(value)


def _resolve_worlds_dir(value: str, config_path: Path) -> str:
    worlds_dir = Path(value)
    if not worlds_dir.is_absolute():
        worlds_dir = config_path.parent / worlds_dir
    return str(worlds_dir)


def _parse_karel_cfg_from_dict(raw: dict[str, Any], config_path: Path) -> KarelConfig:
    try:
        timing = raw["timing"]
        limits = raw["limits"]
        world = raw.get("world", {})
        canvas = raw.get("canvas", {})

        cfg = KarelConfig(
            timing=TimingConfig(
                heartbeat_ms=int(timing["heartbeat_ms"]),
                action_heartbeats=int(timing["action_heartbeats"]),
                refresh_heartbeats=int(timing.get("refresh_heartbeats", 100)),
            ),
            limits=LimitsConfig(
                max_call_depth=int(limits["max_call_depth"]),
                max_free_ops_per_step=int(limits["max_free_ops_per_step"]),
                max_nesting_depth=int(limits.get("max_nesting_depth", 100)),
            ),
            world=WorldConfig(
                initial_world=str(world.get("initial_world", "15x15.w")),
                worlds_dir=_resolve_worlds_dir(str(world.get("worlds_dir", "worlds")), config_path),
                default_bag=_optional_int(world.get("default_bag")),
            ),
            canvas=CanvasConfig(
                width=int(canvas.get("width", 370)),
                height=int(canvas.get("height", 370)),
            ),
        )
    except KeyError as exc:
        raise ConfigurationError(f"Missing required config key: {exc}") from exc
    except (TypeError, ValueError, AttributeError) as exc:
        raise ConfigurationError(f"Invalid config schema: {exc}") from exc

    _validate_config(cfg)
    return cfg


def _validate_config(cfg: KarelConfig) -> None:
    """Basic sanity checks to fail fast on bad configs."""
    if cfg.timing.heartbeat_ms <= 0:
        raise ConfigurationError("timing.heartbeat_ms", "must be positive")
    if cfg.timing.action_heartbeats <= 0:
        raise ConfigurationError("timing.action_heartbeats", "must be positive")
    if cfg.timing.refresh_heartbeats <= 0:
        raise ConfigurationError("timing.refresh_heartbeats", "must be positive")
    if cfg.limits.max_call_depth <= 0:
        raise ConfigurationError("limits.max_call_depth", "must be positive")
    if cfg.limits.max_free_ops_per_step <= 0:
        raise ConfigurationError("limits.max_free_ops_per_step", "must be positive")
    if cfg.limits.max_nesting_depth <= 0:
        raise ConfigurationError("limits.max_nesting_depth", "must be positive")
    if cfg.world.default_bag is not None and cfg.world.default_bag < 0:
        raise ConfigurationError("world.default_bag", "must be >= 0 or 'infinite'")
    if cfg.canvas.width <= 0 or cfg.canvas.height <= 0:
        raise ConfigurationError("canvas", "width and height must be positive")


def load_config(path: Optional[str] = None) -> KarelConfig:
    """Load and validate configuration from a YAML file.

    Args:
        path: Optional path to YAML config. If None, load the bundled karel/config.yaml.

    Returns:
        KarelConfig instance

    Raises:
        ConfigurationError: on parse or validation errors
    """

    p = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    raw = _load_yaml_file(p)

    return _parse_karel_cfg_from_dict(raw=raw, config_path=p)


def get_config(path: Optional[str] = None) -> KarelConfig:
    """Return the loaded config for path, loading and caching if necessary.

    THREAD SAFETY: This function is thread-safe. World loading may happen
    on a worker thread while the GUI thread reads the config.
    """
    key = str(Path(path).resolve()) if path is not None else str(DEFAULT_CONFIG_PATH)
    with _CACHE_LOCK:
        if key not in _LOADER_CACHE:
            _LOADER_CACHE[key] = load_config(path=path)
        return _LOADER_CACHE[key]


def clear_config_cache() -> None:
    """Clear all cached configurations.

    All subsequent calls to get_config() will reload from disk.
    """
    with _CACHE_LOCK:
        _LOADER_CACHE.clear()
