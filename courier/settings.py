"""Forwarder settings: config/settings.yaml layered over built-in defaults.

Sections are flat mappings: dispatcher (DispatcherConfig fields), logging and
runner. A file value of null keeps the default. A section that is not a
mapping is ignored with a warning."""

import logging
from pathlib import Path
from typing import Any

import yaml

from courier.dispatch.config import DispatcherConfig

logger = logging.getLogger(__name__)

_CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

_LOGGING_DEFAULTS: dict[str, Any] = {
    "file": "logs/courier.log",
    "level": "INFO",
    "log_to_console": True,
    "max_bytes": 10485760,  # 10 MB
    "backup_count": 3,
}

_RUNNER_DEFAULTS: dict[str, Any] = {
    # Written on shutdown when set; relative to the project root
    "metrics_file": None,
}


def default_settings() -> dict[str, dict[str, Any]]:
    """Fresh copy of the defaults, one mapping per section."""
    return {
        "dispatcher": DispatcherConfig().model_dump(),
        "logging": dict(_LOGGING_DEFAULTS),
        "runner": dict(_RUNNER_DEFAULTS),
    }


def read_settings_file(path: Path) -> dict[str, Any]:
    """Parsed YAML mapping; {} when the file is missing, unreadable or not a mapping."""
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, OSError) as e:
        logger.warning("Ignoring unreadable settings file %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def load_settings(config_dir: Path | None = None) -> dict[str, dict[str, Any]]:
    """Defaults with config_dir/settings.yaml applied section by section."""
    settings = default_settings()
    path = (config_dir or _CONFIG_DIR) / "settings.yaml"
    for section, values in read_settings_file(path).items():
        if not isinstance(values, dict):
            logger.warning("Ignoring settings section %r: expected a mapping", section)
            continue
        settings.setdefault(section, {}).update(
            {k: v for k, v in values.items() if v is not None}
        )
    return settings
