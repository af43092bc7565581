"""User configuration and logging setup.

Settings live in ``~/.histoboard/config.json``. Environment variables
override the file:

    HISTOBOARD_LOG_LEVEL     logging level name (e.g. DEBUG)
    HISTOBOARD_LAYOUTS_DIR   default directory for saved layouts
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".histoboard"
CONFIG_FILE = CONFIG_DIR / "config.json"

_ENV_KEYS = {
    "log_level": "HISTOBOARD_LOG_LEVEL",
    "layouts_dir": "HISTOBOARD_LAYOUTS_DIR",
}


def _defaults() -> dict[str, Any]:
    return {
        "default_bin_count": 10,
        "outlier_warning_fraction": 0.10,
        "layouts_dir": str(CONFIG_DIR / "layouts"),
        "log_level": "WARNING",
    }


def load_config() -> dict[str, Any]:
    """Return defaults merged with the config file and environment."""
    data = _defaults()
    if CONFIG_FILE.exists():
        try:
            stored = json.loads(CONFIG_FILE.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable config %s: %s", CONFIG_FILE, e)
        else:
            if isinstance(stored, dict):
                data.update(stored)
    for key, env_var in _ENV_KEYS.items():
        value = os.environ.get(env_var)
        if value:
            data[key] = value
    return data


def save_config(data: dict[str, Any]) -> Path:
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(data, indent=2))
    return CONFIG_FILE


def layouts_dir(config: dict[str, Any] | None = None) -> Path:
    config = config if config is not None else load_config()
    return Path(config["layouts_dir"]).expanduser()


_HANDLER_NAME = "histoboard-console"


def configure_logging(level: str | int | None = None) -> logging.Logger:
    """Attach one console handler to the ``histoboard`` logger.

    Calling it again only updates the level. The root logger is left alone.
    """
    if level is None:
        level = os.environ.get(_ENV_KEYS["log_level"]) \
            or load_config().get("log_level", "WARNING")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    pkg_logger = logging.getLogger("histoboard")
    pkg_logger.setLevel(level)
    if not any(h.get_name() == _HANDLER_NAME for h in pkg_logger.handlers):
        handler = logging.StreamHandler()
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s"))
        pkg_logger.addHandler(handler)
    return pkg_logger
