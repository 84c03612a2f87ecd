"""
tests/test_config.py — YAML Configuration Loader Tests
=======================================================
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from skate.config import SkateConfig, default_config_path, load_config


def _write(tmp_path, text: str):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_missing_file_uses_defaults(tmp_path):
    cfg = load_config(tmp_path / "absent.yaml")
    assert cfg == SkateConfig()
    assert cfg.storage_backend == "memory"
    assert cfg.turn_window == timedelta(hours=24)


def test_values_are_read(tmp_path):
    cfg = load_config(_write(tmp_path, """
service_name: Park Session
api_port: 9001
storage_backend: SQL
turn_window_hours: 6
expiry_sweep_seconds: 0
seed_demo_data: false
log_level: debug
"""))
    assert cfg.service_name == "Park Session"
    assert cfg.api_port == 9001
    assert cfg.storage_backend == "sql"
    assert cfg.turn_window == timedelta(hours=6)
    assert cfg.expiry_sweep_seconds == 0
    assert cfg.seed_demo_data is False
    assert cfg.log_level == "DEBUG"


def test_empty_file_uses_defaults(tmp_path):
    assert load_config(_write(tmp_path, "")) == SkateConfig()


@pytest.mark.parametrize("text", [
    "storage_backend: redis",
    "turn_window_hours: 0",
    "expiry_sweep_seconds: -5",
    "log_level: LOUD",
])
def test_invalid_values(tmp_path, text):
    with pytest.raises(ValueError):
        load_config(_write(tmp_path, text))


def test_env_override_of_path(tmp_path, monkeypatch):
    path = _write(tmp_path, "api_port: 8123")
    monkeypatch.setenv("SKATE_CONFIG", str(path))
    assert default_config_path() == path
    assert load_config().api_port == 8123
