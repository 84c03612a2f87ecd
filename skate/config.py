"""
skate.config — YAML Configuration Loader
==========================================

Reads ``config.yaml`` for service settings (storage backend, turn window,
expiry sweep cadence).  Secrets such as ``DATABASE_URL`` and ``JWT_SECRET``
stay in the environment / ``.env``.

Usage::

    from skate.config import load_config

    cfg = load_config()            # reads $SKATE_CONFIG or ./config.yaml
    print(cfg.storage_backend)     # "memory"
    print(cfg.turn_window)         # datetime.timedelta(days=1)

A missing file is not an error: every key has a default so the service
runs out of the box with the in-memory store.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

STORAGE_BACKENDS = ("memory", "sql")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class SkateConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    service_name: str = "SKATE Challenges"
    api_port: int = 8000

    # Persistence: "memory" (non-durable) or "sql" (uses DATABASE_URL)
    storage_backend: str = "memory"

    # Game tuning
    turn_window_hours: int = 24
    expiry_sweep_seconds: int = 60  # 0 disables the background sweep

    seed_demo_data: bool = True
    log_level: str = "INFO"

    @property
    def turn_window(self) -> timedelta:
        return timedelta(hours=self.turn_window_hours)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def default_config_path() -> Path:
    return Path(os.getenv("SKATE_CONFIG", "config.yaml"))


def load_config(path: str | Path | None = None) -> SkateConfig:
    """Read *path* and return a :class:`SkateConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.  Defaults to
        ``$SKATE_CONFIG`` or ``config.yaml`` in the working directory.

    Raises
    ------
    ValueError
        If a value is out of range or names an unknown backend / level.
    """
    config_path = Path(path) if path is not None else default_config_path()
    if not config_path.exists():
        logger.info("No config file at %s — using defaults", config_path.resolve())
        return SkateConfig()

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    defaults = SkateConfig()
    cfg = SkateConfig(
        service_name=str(raw.get("service_name", defaults.service_name)),
        api_port=int(raw.get("api_port", defaults.api_port)),
        storage_backend=str(raw.get("storage_backend", defaults.storage_backend)).lower(),
        turn_window_hours=int(raw.get("turn_window_hours", defaults.turn_window_hours)),
        expiry_sweep_seconds=int(
            raw.get("expiry_sweep_seconds", defaults.expiry_sweep_seconds)
        ),
        seed_demo_data=bool(raw.get("seed_demo_data", defaults.seed_demo_data)),
        log_level=str(raw.get("log_level", defaults.log_level)).upper(),
    )
    _validate(cfg)
    return cfg


def _validate(cfg: SkateConfig) -> None:
    if cfg.storage_backend not in STORAGE_BACKENDS:
        raise ValueError(
            f"storage_backend must be one of {STORAGE_BACKENDS}, got {cfg.storage_backend!r}"
        )
    if cfg.turn_window_hours <= 0:
        raise ValueError("turn_window_hours must be positive")
    if cfg.expiry_sweep_seconds < 0:
        raise ValueError("expiry_sweep_seconds cannot be negative")
    if cfg.log_level not in LOG_LEVELS:
        raise ValueError(f"log_level must be one of {LOG_LEVELS}")
