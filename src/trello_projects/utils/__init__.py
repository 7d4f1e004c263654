"""Utility functions for configuration and formatting."""

from trello_projects.utils.config import (
    ConfigError,
    Settings,
    get_config_path,
    get_settings,
    load_config,
    validate_config,
)
from trello_projects.utils.formatting import (
    format_content,
    format_date,
    format_projects,
    format_timestamp,
    pack,
    unpack,
)

__all__ = [
    'ConfigError',
    'Settings',
    'format_content',
    'format_date',
    'format_projects',
    'format_timestamp',
    'get_config_path',
    'get_settings',
    'load_config',
    'pack',
    'unpack',
    'validate_config',
]
