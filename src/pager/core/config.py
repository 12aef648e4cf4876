"""Configuration model for pager.

This module defines the parsed configuration and its validation rules.
File locations and reading/writing live in ``pager.cli.config``.
"""

from __future__ import annotations

import tomllib
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pager.core.types import WILDCARD, RepositoryDescriptor, is_safe_name

TRANSPORTS = ("git", "libgit2")

DEFAULT_CONFIG_TOML = """\
[page_db]
# Each entry is "url", ["url"] or ["url", "sub/path"]; "*" in the subpath
# makes every directory at that level a separate page directory.
git_repos = []
git_download_dir = "./online_pages"
local_dirs = []

[sync]
# "git" runs the git binary, "libgit2" uses pygit2
transport = "git"
# Seconds before a single repository fetch is abandoned (0 = no deadline)
job_timeout = 0
# Clone next to the target and swap it in only after a successful fetch
atomic_replace = false
"""


class ConfigError(Exception):
    """Configuration file could not be parsed."""


@dataclass
class SyncSettings:
    """Settings for the sync engine.

    Attributes:
        transport: Fetch transport name ("git" or "libgit2").
        job_timeout: Per-repository deadline in seconds, None for no deadline.
        atomic_replace: Swap in the new clone only after it succeeded.
    """

    transport: str = "git"
    job_timeout: float | None = None
    atomic_replace: bool = False


@dataclass
class PagerConfig:
    """Parsed pager configuration.

    Relative directories are resolved against ``base_dir`` (the directory
    holding the config file).

    Attributes:
        repositories: Configured remote page repositories, in file order.
        download_dir: Directory the repositories are cloned into.
        local_dirs: Extra page directories that are never synced.
        sync: Sync engine settings.
        base_dir: Directory relative paths are resolved against.
        errors: Problems found while parsing repository entries.
    """

    repositories: list[RepositoryDescriptor] = field(default_factory=list)
    download_dir: str = "./online_pages"
    local_dirs: list[str] = field(default_factory=list)
    sync: SyncSettings = field(default_factory=SyncSettings)
    base_dir: Path = field(default_factory=Path.cwd)
    errors: list[str] = field(default_factory=list)

    @property
    def download_path(self) -> Path:
        """Absolute download directory."""
        return resolve_path(self.download_dir, self.base_dir)

    @property
    def local_paths(self) -> list[Path]:
        """Absolute local page directories."""
        return [resolve_path(d, self.base_dir) for d in self.local_dirs]


def resolve_path(value: str, base_dir: Path) -> Path:
    """Resolve a configured path against the config directory.

    Args:
        value: Path from the config file, may use ``~``.
        base_dir: Directory to resolve relative paths against.

    Returns:
        Absolute, normalized path.
    """
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path.resolve()


def parse_config(text: str, base_dir: Path) -> PagerConfig:
    """Parse TOML configuration text.

    Repository entries that cannot be parsed are recorded in
    ``PagerConfig.errors`` instead of raising, so every problem can be
    reported at once by ``validate_config``.

    Args:
        text: TOML document.
        base_dir: Directory relative paths are resolved against.

    Returns:
        The parsed configuration.

    Raises:
        ConfigError: If the document is not valid TOML or has wrong value types.
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid config file: {e}") from e

    page_db = _table(data, "page_db")
    sync = _table(data, "sync")
    errors: list[str] = []

    repositories: list[RepositoryDescriptor] = []
    for entry in _list(page_db, "git_repos"):
        try:
            repositories.append(RepositoryDescriptor.parse(entry))
        except ValueError as e:
            errors.append(str(e))

    timeout = sync.get("job_timeout", 0)
    if not isinstance(timeout, (int, float)) or isinstance(timeout, bool):
        raise ConfigError(f"sync.job_timeout must be a number, got {timeout!r}")

    return PagerConfig(
        repositories=repositories,
        download_dir=str(page_db.get("git_download_dir", "./online_pages")),
        local_dirs=[str(d) for d in _list(page_db, "local_dirs")],
        sync=SyncSettings(
            transport=str(sync.get("transport", "git")),
            job_timeout=float(timeout) if timeout else None,
            atomic_replace=bool(sync.get("atomic_replace", False)),
        ),
        base_dir=base_dir,
        errors=errors,
    )


def validate_config(config: PagerConfig) -> list[str]:
    """Check a configuration for problems that would break a sync.

    Args:
        config: Parsed configuration.

    Returns:
        Human-readable error messages, empty if the config is usable.
    """
    errors = list(config.errors)

    if config.sync.transport not in TRANSPORTS:
        errors.append(
            f"Unknown transport {config.sync.transport!r} "
            f"(expected one of: {', '.join(TRANSPORTS)})"
        )
    if config.sync.job_timeout is not None and config.sync.job_timeout < 0:
        errors.append("sync.job_timeout must not be negative")

    by_name: dict[str, list[str]] = defaultdict(list)
    for repo in config.repositories:
        if not is_safe_name(repo.name):
            errors.append(
                f"Repository {repo.url} does not end in a usable directory name ({repo.name!r})"
            )
            continue
        by_name[repo.name].append(repo.url)
        if repo.subpath and repo.subpath.count(WILDCARD) > 1:
            errors.append(f"Only one '*' is allowed in the subpath of {repo.url}")

    for name, urls in by_name.items():
        if len(urls) > 1:
            errors.append(f"Repositories {', '.join(urls)} all sync into '{name}'")

    return errors


def _table(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(f"[{key}] must be a table")
    return value


def _list(table: dict[str, Any], key: str) -> list[Any]:
    value = table.get(key, [])
    if not isinstance(value, list):
        raise ConfigError(f"{key} must be a list")
    return value
