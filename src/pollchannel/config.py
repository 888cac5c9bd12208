"""YAML configuration with built-in defaults."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from pollchannel.counters import (
    DEFAULT_API_URL,
    DEFAULT_COUNTERS_PATH,
    DEFAULT_GAME_IDS,
    DEFAULT_PROXY_URL,
)
from pollchannel.dispatcher import (
    DEFAULT_CHANNEL_PATH,
    DEFAULT_DEBOUNCE_DELAY,
    DEFAULT_SETTLE_DELAY,
)
from pollchannel.errors import ValidationError
from pollchannel.vfs import DEFAULT_ROOT
from pollchannel.watcher import DEFAULT_POLL_INTERVAL

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "configs" / "default-config.yaml"

DEFAULTS: dict[str, Any] = {
    "root": DEFAULT_ROOT,
    "base_dir": "./vfs",
    "channel_path": DEFAULT_CHANNEL_PATH,
    "counters_path": DEFAULT_COUNTERS_PATH,
    "poll_interval": DEFAULT_POLL_INTERVAL,
    "debounce_delay": DEFAULT_DEBOUNCE_DELAY,
    "settle_delay": DEFAULT_SETTLE_DELAY,
    "counter_ids": list(DEFAULT_GAME_IDS),
    "counter_api_url": DEFAULT_API_URL,
    "counter_proxy_url": DEFAULT_PROXY_URL,
    "request_timeout": 10.0,
    "navigator": "browser",
}


def load_config(config_path: str | None = None) -> dict[str, Any]:
    """Load config from YAML, falling back to the bundled default file.

    Keys missing from the file take their value from DEFAULTS.
    """
    config = dict(DEFAULTS)
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if not path.exists():
        if config_path:
            logger.warning("Config file %s not found, using defaults", config_path)
        return config

    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValidationError(f"Config file {path} must contain a mapping")

    for key, value in data.items():
        if key in DEFAULTS:
            config[key] = value
        else:
            logger.debug("Ignoring unknown config key: %s", key)
    return config
