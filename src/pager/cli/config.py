"""Configuration utilities for pager CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import click

from pager.core.config import (
    DEFAULT_CONFIG_TOML,
    ConfigError,
    PagerConfig,
    parse_config,
    validate_config,
)

CONFIG_ENV_VAR = "PAGER_CONFIG"


def get_config_dir() -> Path:
    """Get the configuration directory for pager.

    Returns:
        Path to ~/.config/pager or equivalent.
    """
    return Path.home() / ".config" / "pager"


def get_config_file() -> Path:
    """Get the path to the config file.

    ``$PAGER_CONFIG`` overrides the default location.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser().resolve()
    return get_config_dir() / "config.toml"


def ensure_config_file() -> Path:
    """Write the default config file if there is none yet.

    Returns:
        Path to the config file.
    """
    config_file = get_config_file()
    if not config_file.exists():
        config_file.parent.mkdir(parents=True, exist_ok=True)
        config_file.write_text(DEFAULT_CONFIG_TOML, encoding="utf-8")
    return config_file


def load_config() -> PagerConfig:
    """Load configuration, creating the default file on first use.

    Raises:
        ConfigError: If the config file is malformed.
    """
    config_file = ensure_config_file()
    return parse_config(config_file.read_text(encoding="utf-8"), base_dir=config_file.parent)


def require_config() -> PagerConfig:
    """Load and validate configuration for a command.

    Prints every problem and exits with status 1 if the config is unusable.
    """
    try:
        config = load_config()
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    errors = validate_config(config)
    if errors:
        click.echo(f"Error: invalid config file {get_config_file()}", err=True)
        for error in errors:
            click.echo(f"  - {error}", err=True)
        sys.exit(1)
    return config
