"""Configuration management for cascadelab."""

import logging
import os
import tomllib

from pathlib import Path
from typing import Any

import tomli_w

from cascadelab.constants import (
    DEFAULT_APP_DIR,
    DEFAULT_DATABASE_PATH,
    DEFAULT_INVALIDATE_ON_BULK,
)

logger = logging.getLogger(__name__)


def get_config_path() -> Path:
    """
    Get the path to the configuration file.

    Returns:
        Path to ~/.cascadelab/config.toml
    """
    return DEFAULT_APP_DIR / "config.toml"


def load_config() -> dict[str, Any]:
    """
    Load configuration from TOML file.

    Returns:
        Configuration dictionary. Returns empty dict if file doesn't exist
        or is corrupted.
    """
    config_path = get_config_path()

    if not config_path.exists():
        return {}

    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning(f"Failed to load config from {config_path}: {e}")
        logger.warning("Treating config as empty. Fix or delete the file to resolve.")
        return {}


def save_config(config: dict[str, Any]) -> None:
    """
    Save configuration to TOML file using atomic write.

    Creates the parent directory if it doesn't exist.
    Uses temp file + rename for atomic operation.

    Args:
        config: Configuration dictionary to save

    Raises:
        PermissionError: If directory cannot be created or file cannot be written
    """
    config_path = get_config_path()

    config_dir = config_path.parent
    try:
        os.makedirs(config_dir, exist_ok=True)
    except PermissionError as e:
        raise PermissionError(
            f"Cannot create config directory {config_dir}: {e}"
        ) from e

    temp_path = config_path.with_suffix(".toml.tmp")

    try:
        with open(temp_path, "wb") as f:
            tomli_w.dump(config, f)

        os.replace(temp_path, config_path)

    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise


def get_database_path(explicit_path: str | None = None) -> str:
    """
    Resolve the database path using precedence: CLI > config > default.

    Args:
        explicit_path: Value from --db flag (None if not provided)

    Returns:
        Path to the SQLite database file
    """
    if explicit_path:
        return explicit_path

    configured: str | None = load_config().get("database", {}).get("path")
    if configured:
        return configured

    return DEFAULT_DATABASE_PATH


def set_database_path(path: str) -> None:
    """Persist the default database path in config."""
    config = load_config()
    config.setdefault("database", {})["path"] = path
    save_config(config)


def unset_database_path() -> None:
    """
    Remove the database path setting from config.

    Drops the database section if it becomes empty, and deletes the config
    file when nothing is left.
    """
    config = load_config()

    if "database" in config and "path" in config["database"]:
        del config["database"]["path"]

        if not config["database"]:
            del config["database"]

        if not config:
            config_path = get_config_path()
            if config_path.exists():
                config_path.unlink()
        else:
            save_config(config)


def get_invalidate_on_bulk() -> bool:
    """Whether bulk statements should evict matched objects from the session."""
    value = load_config().get("database", {}).get("invalidate_on_bulk")
    if isinstance(value, bool):
        return value
    if value is not None:
        logger.warning(
            f"Ignoring non-boolean database.invalidate_on_bulk value: {value!r}"
        )
    return DEFAULT_INVALIDATE_ON_BULK
