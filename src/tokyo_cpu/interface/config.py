"""
User configuration persistence.

Stores CPU timings, feedback pacing and toggles in a JSON file. Nested
sections (timings, pacing) are merged key by key over the defaults, so a
file only needs the values it changes.
"""

import json
from pathlib import Path
from typing import TypedDict

from ..systems.feedback import DEFAULT_LIMITS
from ..systems.turns import DEFAULT_TIMINGS, SPEED_SCALES


class ConfigError(Exception):
    """Config file exists but cannot be used."""
    pass


class Config(TypedDict, total=False):
    """User configuration."""
    cpu_speed: str  # slow, normal, fast
    decision_timeout_ms: float
    feedback_enabled: bool  # "show thought bubbles"
    phrases_path: str | None  # YAML phrase overrides
    currency: str  # Resource spent in the shop
    roll_ms: float  # Simulated dice animation
    timings: dict[str, float]
    pacing: dict[str, float]


DEFAULT_CONFIG: Config = {
    "cpu_speed": "normal",
    "decision_timeout_ms": 1200,
    "feedback_enabled": True,
    "phrases_path": None,
    "currency": "energy",
    "roll_ms": 600,
    "timings": dict(DEFAULT_TIMINGS),
    "pacing": dict(DEFAULT_LIMITS),
}

_NESTED = ("timings", "pacing")


def get_config_path(config_dir: Path | str = ".") -> Path:
    """Get path to config file."""
    return Path(config_dir) / ".tokyo_cpu.json"


def default_config() -> Config:
    """Fresh copy of the defaults (nested sections included)."""
    config = DEFAULT_CONFIG.copy()
    for key in _NESTED:
        config[key] = dict(DEFAULT_CONFIG[key])  # type: ignore[literal-required]
    return config


def load_config(path: Path | str | None = None) -> Config:
    """
    Load config from file, or return defaults if not found.

    Args:
        path: Config file; defaults to get_config_path()

    Raises:
        ConfigError: File is not valid JSON or has invalid values
    """
    path = Path(path) if path is not None else get_config_path()
    config = default_config()

    if not path.exists():
        return config

    try:
        with open(path, "r", encoding="utf-8") as f:
            saved = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"{path}: invalid JSON ({e})") from e
    except OSError as e:
        raise ConfigError(f"{path}: {e}") from e

    if not isinstance(saved, dict):
        raise ConfigError(f"{path}: expected a JSON object")

    # Merge with defaults to handle missing keys
    for key, value in saved.items():
        if key in _NESTED:
            if not isinstance(value, dict):
                raise ConfigError(f"{path}: '{key}' must be an object")
            config[key].update(value)  # type: ignore[literal-required]
        else:
            config[key] = value  # type: ignore[literal-required]

    validate_config(config)
    return config


def validate_config(config: Config) -> None:
    """Raise ConfigError for values the orchestrator would reject."""
    speed = config.get("cpu_speed", "normal")
    if speed not in SPEED_SCALES:
        raise ConfigError(f"cpu_speed must be one of {sorted(SPEED_SCALES)}, got {speed!r}")

    timeout = config.get("decision_timeout_ms", 0)
    if not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError(f"decision_timeout_ms must be a positive number, got {timeout!r}")

    for section in _NESTED:
        for key, value in config.get(section, {}).items():  # type: ignore[attr-defined]
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0:
                raise ConfigError(f"{section}.{key} must be a non-negative number, got {value!r}")


def save_config(config: Config, path: Path | str | None = None) -> bool:
    """Save config to file. Returns True on success."""
    path = Path(path) if path is not None else get_config_path()

    # Ensure directory exists
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
        return True
    except OSError:
        return False


def set_cpu_speed(speed: str, path: Path | str | None = None) -> None:
    """Save CPU speed preference."""
    if speed not in SPEED_SCALES:
        raise ConfigError(f"cpu_speed must be one of {sorted(SPEED_SCALES)}, got {speed!r}")
    config = load_config(path)
    config["cpu_speed"] = speed
    save_config(config, path)


def set_feedback_enabled(enabled: bool, path: Path | str | None = None) -> None:
    """Save thought bubble visibility preference."""
    config = load_config(path)
    config["feedback_enabled"] = enabled
    save_config(config, path)
