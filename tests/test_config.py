"""Tests for configuration persistence and the CLI harness."""

import asyncio
import json

import pytest

from tokyo_cpu.interface.cli import main, run_harness
from tokyo_cpu.interface.config import (
    DEFAULT_CONFIG,
    ConfigError,
    default_config,
    get_config_path,
    load_config,
    save_config,
    set_cpu_speed,
    set_feedback_enabled,
)


def quick_config() -> dict:
    """Config that plays a whole game in well under a second."""
    config = default_config()
    config["cpu_speed"] = "fast"
    config["roll_ms"] = 1
    config["timings"] = {key: 1 for key in config["timings"]}
    config["timings"]["roll_watchdog_ms"] = 500
    return config


class TestConfig:
    """Test loading and saving."""

    def test_defaults_when_missing(self, tmp_path):
        config = load_config(tmp_path / "nope.json")
        assert config == DEFAULT_CONFIG
        assert config["timings"]["turn_start_delay_ms"] == 1800
        assert config["pacing"]["per_entity_min_interval_ms"] == 2200

    def test_defaults_are_copies(self):
        config = default_config()
        config["timings"]["settle_delay_ms"] = 1
        assert DEFAULT_CONFIG["timings"]["settle_delay_ms"] == 1200

    def test_partial_file_merges(self, tmp_path):
        path = tmp_path / "cfg.json"
        path.write_text(json.dumps({"cpu_speed": "slow", "timings": {"settle_delay_ms": 50}}), encoding="utf-8")

        config = load_config(path)

        assert config["cpu_speed"] == "slow"
        assert config["timings"]["settle_delay_ms"] == 50
        assert config["timings"]["turn_start_delay_ms"] == 1800
        assert config["feedback_enabled"] is True

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "cfg.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_invalid_speed(self, tmp_path):
        path = tmp_path / "cfg.json"
        path.write_text(json.dumps({"cpu_speed": "warp"}), encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_invalid_nested_value(self, tmp_path):
        path = tmp_path / "cfg.json"
        path.write_text(json.dumps({"pacing": {"max_global_active": "two"}}), encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_save_then_set(self, tmp_path):
        path = tmp_path / "nested" / "cfg.json"
        assert save_config(default_config(), path) is True

        set_cpu_speed("fast", path)
        set_feedback_enabled(False, path)

        config = load_config(path)
        assert config["cpu_speed"] == "fast"
        assert config["feedback_enabled"] is False

    def test_set_unknown_speed(self, tmp_path):
        with pytest.raises(ConfigError):
            set_cpu_speed("warp", tmp_path / "cfg.json")

    def test_config_path(self, tmp_path):
        assert get_config_path(tmp_path) == tmp_path / ".tokyo_cpu.json"


class TestHarness:
    """Test the simulated game harness."""

    def test_plays_a_game(self):
        result = asyncio.run(run_harness(quick_config(), players=2, turns=3, seed=5, show_feedback=False, max_wall_s=10))

        assert result["finished"] is True
        assert 1 <= len(result["turns"]) <= 3
        assert all(turn["rolls"] <= 3 for turn in result["turns"])
        assert result["metrics"]["resolved"] >= len(result["turns"])

    def test_pause_and_resume(self):
        result = asyncio.run(run_harness(
            quick_config(),
            players=2,
            turns=3,
            seed=2,
            pause_after_ms=5,
            resume_after_ms=30,
            show_feedback=False,
            max_wall_s=10,
        ))
        assert result["finished"] is True

    def test_main_json(self, tmp_path, capsys):
        path = tmp_path / "cfg.json"
        save_config(quick_config(), path)

        code = main(["--players", "2", "--turns", "2", "--seed", "1", "--config", str(path), "--json"])

        assert code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["finished"] is True
        assert [p["id"] for p in output["participants"]] == ["p1", "p2"]

    def test_main_bad_config(self, tmp_path):
        path = tmp_path / "cfg.json"
        path.write_text("[]", encoding="utf-8")
        assert main(["--config", str(path)]) == 2
