"""Shared value types for pager.

This module defines types used by both the sync engine and the page lookup:
- RepositoryDescriptor: One configured remote page source
- repo_name: Target directory name derived from a repository URL
- is_safe_name: Check that a target name is a single plain directory name
"""

from __future__ import annotations

from dataclasses import dataclass, field

WILDCARD = "*"


def repo_name(url: str) -> str:
    """Derive the target directory name for a repository URL.

    Uses the final path segment with a trailing ``.git`` stripped.

    Args:
        url: Repository URL (any scheme, or a local path).

    Returns:
        Directory name, or "unknown" if the URL has no usable segment.
    """
    segment = url.rstrip("/").split("/")[-1]
    if segment.endswith(".git"):
        segment = segment[: -len(".git")]
    return segment or "unknown"


def is_safe_name(name: str) -> bool:
    """Check that a target name refers to exactly one directory below its parent.

    "." and ".." would point at the download root or above it, and a
    separator would point into another directory.
    """
    return name not in (".", "..") and "/" not in name and "\\" not in name


@dataclass(frozen=True)
class RepositoryDescriptor:
    """A configured remote page repository.

    Identity is the URL. The subpath is not used by the sync engine
    itself, it is carried so the page lookup can resolve directories
    inside the cloned tree.

    Attributes:
        url: Remote URL passed to the transport.
        subpath: Ordered path tokens; each is a literal directory name or "*".
    """

    url: str
    subpath: tuple[str, ...] | None = field(default=None, compare=False)

    @classmethod
    def parse(cls, entry: str | list[str] | tuple[str, ...]) -> RepositoryDescriptor:
        """Build a descriptor from a config entry.

        Args:
            entry: Bare URL, or ``[url]`` / ``[url, "a/*/b"]``.

        Returns:
            The descriptor.

        Raises:
            ValueError: If the entry is empty or has more than two elements.
        """
        if isinstance(entry, str):
            entry = [entry]
        if not entry or len(entry) > 2:
            raise ValueError(f"Repository entry must be [url] or [url, subpath]: {entry!r}")

        url = str(entry[0]).strip()
        if not url:
            raise ValueError("Repository URL is empty")

        subpath = None
        if len(entry) == 2:
            tokens = tuple(t for t in str(entry[1]).split("/") if t)
            subpath = tokens or None
        return cls(url=url, subpath=subpath)

    @property
    def name(self) -> str:
        """Target directory name for this repository."""
        return repo_name(self.url)

    @property
    def has_wildcard(self) -> bool:
        """Check if the subpath contains a wildcard token."""
        return self.subpath is not None and WILDCARD in self.subpath

