"""Git transports for the sync engine.

Two ways to clone a page repository:
- "git": runs ``git clone --progress`` and scrapes its stderr
  (TextStreamSource). Fast, needs the git binary on PATH.
- "libgit2": clones in-process with pygit2 (StructuredSource). Needs the
  optional ``pygit2`` dependency; noticeably slower on large repositories.
"""

from __future__ import annotations

import importlib.util
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from pager.sync.sources.structured import StructuredFetch, StructuredSource
from pager.sync.sources.text_stream import TextStreamSource
from pager.sync.types import FetchCancelledError, SyncError

if TYPE_CHECKING:
    from pager.core.types import RepositoryDescriptor
    from pager.sync.sources.base import SourceFactory

logger = logging.getLogger(__name__)


def git_clone_command(url: str, dest: Path, git: str = "git") -> list[str]:
    """Command line for a full clone with progress reporting forced on."""
    return [git, "clone", "--progress", url, str(dest)]


def git_environment(base: dict[str, str] | None = None) -> dict[str, str]:
    """Environment for git subprocesses.

    Progress labels are only recognized in git's untranslated wording, so
    the C locale is forced. Credential prompts are disabled; a repository
    that needs them fails instead of hanging its job.
    """
    env = dict(os.environ if base is None else base)
    env["LC_ALL"] = "C"
    env["LANGUAGE"] = "C"
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


def git_source_factory(timeout: float | None = None, git: str = "git") -> SourceFactory:
    """Factory creating a ``git clone`` text-stream source per repository."""

    def make_source(descriptor: RepositoryDescriptor, fetch_dir: Path) -> TextStreamSource:
        return TextStreamSource(
            git_clone_command(descriptor.url, fetch_dir, git=git),
            env=git_environment(),
            timeout=timeout,
        )

    return make_source


def pygit2_clone(url: str, dest: Path) -> StructuredFetch:
    """Structured fetch cloning ``url`` into ``dest`` with pygit2.

    libgit2 reports one transfer statistics object. Object counts are
    forwarded until every object arrived, then delta counts, so the single
    count stream walks receiving objects and then resolving deltas.
    """

    def fetch(on_progress: Callable[[int, int], None], cancel_check: Callable[[], bool]) -> None:
        import pygit2

        class Callbacks(pygit2.RemoteCallbacks):
            def __init__(self) -> None:
                super().__init__()
                self.objects_done = False

            def transfer_progress(self, stats: pygit2.remotes.TransferProgress) -> None:
                if cancel_check():
                    raise FetchCancelledError("cancelled")
                if not self.objects_done:
                    on_progress(stats.received_objects, stats.total_objects)
                    self.objects_done = (
                        stats.total_objects > 0
                        and stats.received_objects == stats.total_objects
                    )
                elif stats.total_deltas > 0:
                    on_progress(stats.indexed_deltas, stats.total_deltas)

        pygit2.clone_repository(url, str(dest), callbacks=Callbacks())

    return fetch


def libgit2_source_factory(timeout: float | None = None) -> SourceFactory:
    """Factory creating a pygit2 structured source per repository.

    Raises:
        SyncError: If pygit2 is not installed.
    """
    if importlib.util.find_spec("pygit2") is None:
        raise SyncError("The libgit2 transport needs pygit2: pip install 'pager[libgit2]'")

    def make_source(descriptor: RepositoryDescriptor, fetch_dir: Path) -> StructuredSource:
        return StructuredSource(
            pygit2_clone(descriptor.url, fetch_dir),
            timeout=timeout,
            name=descriptor.name,
        )

    return make_source


def source_factory(transport: str, timeout: float | None = None) -> SourceFactory:
    """Factory for the configured transport.

    Args:
        transport: "git" or "libgit2".
        timeout: Per-repository deadline in seconds.

    Raises:
        SyncError: If the transport is unknown or unavailable.
    """
    if transport == "git":
        return git_source_factory(timeout=timeout)
    if transport == "libgit2":
        return libgit2_source_factory(timeout=timeout)
    raise SyncError(f"Unknown transport: {transport}")
