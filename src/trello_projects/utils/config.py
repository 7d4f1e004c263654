"""Configuration utilities for the Trello projects cache."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

CONFIG_FILE_NAME = 'trello-projects.yaml'

FETCH_MODES = ('board', 'split')
DEFAULT_TIMEZONE = 'Europe/London'

# Config key -> environment variable overriding it
ENV_VARS = {
    'board_id': 'TRELLO_BOARD_ID',
    'public_list_id': 'TRELLO_LIST_ID',
    'content_list_id': 'TRELLO_CONTENT_LIST_ID',
    'redis_url': 'REDIS_URL',
    'fetch_mode': 'TRELLO_FETCH_MODE',
    'timezone': 'SCHEDULE_TIMEZONE',
}

FETCH_REQUIRED = ('board_id', 'public_list_id', 'redis_url')
CACHE_REQUIRED = ('redis_url',)


class ConfigError(Exception):
    """Configuration error."""

    pass


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings."""

    redis_url: str
    board_id: str | None = None
    public_list_id: str | None = None
    content_list_id: str | None = None
    fetch_mode: str = 'board'
    timezone: str = DEFAULT_TIMEZONE

    @property
    def split(self) -> bool:
        return self.fetch_mode == 'split'


def get_config_path() -> Path:
    """Get the config file path, searching the current directory and its parents.

    Returns:
        Path to an existing config file, or to the cwd location if none exists.
    """
    current_dir = Path.cwd()
    config_path = current_dir / CONFIG_FILE_NAME
    if not config_path.exists():
        # Try parent directories up to 3 levels
        for parent in current_dir.parents[:3]:
            candidate = parent / CONFIG_FILE_NAME
            if candidate.exists():
                return candidate
    return config_path


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load and parse YAML configuration file.

    Args:
        config_path: Optional path to config file. Defaults to trello-projects.yaml
            in the current directory or one of its parents.

    Returns:
        Configuration dictionary, empty if there is no config file.

    Raises:
        ConfigError: If config file is invalid or cannot be read.
    """
    if config_path is None:
        config_path = get_config_path()

    if not config_path.exists():
        return {}

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}") from e
    except OSError as e:
        raise ConfigError(f"Error reading config file: {e}") from e

    errors = validate_config(config)
    if errors:
        raise ConfigError(f"Invalid config file {config_path}: " + '; '.join(errors))
    return config


def validate_config(config: dict[str, Any]) -> list[str]:
    """Validate configuration structure.

    Args:
        config: Configuration dictionary to validate.

    Returns:
        List of validation error messages. Empty list if valid.
    """
    errors: list[str] = []

    if not isinstance(config, dict):
        errors.append("Config must be a dictionary")
        return errors

    for key in ENV_VARS:
        if key in config and config[key] is not None and not isinstance(config[key], str):
            errors.append(f"'{key}' must be a string")

    fetch_mode = config.get('fetch_mode')
    if isinstance(fetch_mode, str) and fetch_mode not in FETCH_MODES:
        errors.append(f"'fetch_mode' must be one of: {', '.join(FETCH_MODES)}")

    unknown = sorted(set(config) - set(ENV_VARS))
    for key in unknown:
        errors.append(f"Unknown config key '{key}'")

    return errors


def resolve_values(config: dict[str, Any] | None = None) -> dict[str, str | None]:
    """Merge config file values with environment overrides.

    Args:
        config: Optional configuration dictionary. If not provided, loads from file.

    Returns:
        Dictionary with every known key, None where unset.
    """
    if config is None:
        config = load_config()

    values: dict[str, str | None] = {}
    for key, env_var in ENV_VARS.items():
        values[key] = os.getenv(env_var) or config.get(key) or None
    return values


def get_settings(
    config: dict[str, Any] | None = None,
    required: tuple[str, ...] = FETCH_REQUIRED,
) -> Settings:
    """Resolve settings, failing if any required value is missing.

    Args:
        config: Optional configuration dictionary. If not provided, loads from file.
        required: Keys that must be set.

    Returns:
        Settings instance.

    Raises:
        ConfigError: If required values are missing or a value is invalid.
    """
    values = resolve_values(config)

    missing = [ENV_VARS[key] for key in required if not values[key]]
    if missing:
        raise ConfigError(
            f"Missing required configuration: {', '.join(missing)}. "
            f"Set them in the environment, .env or {CONFIG_FILE_NAME}"
        )

    fetch_mode = values['fetch_mode'] or 'board'
    if fetch_mode not in FETCH_MODES:
        raise ConfigError(
            f"Invalid fetch mode '{fetch_mode}', expected one of: {', '.join(FETCH_MODES)}"
        )

    return Settings(
        redis_url=values['redis_url'] or '',
        board_id=values['board_id'],
        public_list_id=values['public_list_id'],
        content_list_id=values['content_list_id'],
        fetch_mode=fetch_mode,
        timezone=values['timezone'] or DEFAULT_TIMEZONE,
    )
