"""Configuration utilities for the chunkrelay CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_log_handler: logging.Handler | None = None


def get_config_dir() -> Path:
    """Get the configuration directory for chunkrelay.

    Returns:
        Path to ~/.chunkrelay or equivalent.
    """
    return Path.home() / ".chunkrelay"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, Any]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def get_state_db(config: dict[str, Any] | None = None) -> Path:
    """Get the checkpoint database path.

    Returns:
        Path to the configured state_db, or state.db in the config directory.
    """
    if config is None:
        config = load_config()
    if config.get("state_db"):
        return Path(config["state_db"]).expanduser().resolve()
    return get_config_dir() / "state.db"


def setup_logging(verbose: bool = False) -> None:
    """Send chunkrelay logs to stderr.

    Args:
        verbose: Log at DEBUG instead of INFO.
    """
    global _log_handler

    root_logger = logging.getLogger("chunkrelay")
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    if _log_handler is not None:
        root_logger.removeHandler(_log_handler)
    _log_handler = logging.StreamHandler(sys.stderr)
    _log_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(_log_handler)
