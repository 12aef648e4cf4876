"""Core types and configuration shared by the sync engine, page lookup and CLI."""

from pager.core.config import (
    ConfigError,
    PagerConfig,
    SyncSettings,
    parse_config,
    validate_config,
)
from pager.core.types import WILDCARD, RepositoryDescriptor, repo_name

__all__ = [
    "WILDCARD",
    "ConfigError",
    "PagerConfig",
    "RepositoryDescriptor",
    "SyncSettings",
    "parse_config",
    "repo_name",
    "validate_config",
]
