"""Shared types and dataclasses for sync operations.

This module provides:
- SyncError and subclasses: Exception taxonomy for the sync engine
- ProgressObservation: One progress data point from a transport
- JobState: Lifecycle of a sync job
- SyncResult: Terminal outcome of one repository sync
- JobStarted, JobProgress, JobFinished: Events published to a progress sink
- ProgressSink: Protocol for anything that consumes progress events
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from pager.core.types import RepositoryDescriptor
    from pager.sync.domain.phases import Phase


class SyncError(Exception):
    """Base exception for sync errors."""


class DownloadRootError(SyncError):
    """The download root could not be created; nothing was synced."""


class DuplicateTargetError(SyncError):
    """Several repositories would sync into the same directory.

    Attributes:
        name: The shared target directory name.
        urls: URLs of the colliding repositories.
    """

    def __init__(self, name: str, urls: list[str]) -> None:
        self.name = name
        self.urls = urls
        super().__init__(f"Repositories {', '.join(urls)} all sync into '{name}'")


class InvalidTargetError(SyncError):
    """A repository URL does not yield a usable target directory name.

    Attributes:
        url: The offending repository URL.
        name: The name derived from it.
    """

    def __init__(self, url: str, name: str) -> None:
        self.url = url
        self.name = name
        super().__init__(f"Repository {url} does not end in a usable directory name ({name!r})")


class ReconcileError(SyncError):
    """The target directory could not be cleared or swapped in."""


class FetchError(SyncError):
    """The transport reported a failed fetch.

    Attributes:
        returncode: Process exit code, if the transport is a process.
    """

    def __init__(self, message: str, returncode: int | None = None) -> None:
        self.returncode = returncode
        super().__init__(message)


class FetchTimeoutError(FetchError):
    """The fetch did not finish before its deadline."""


class FetchCancelledError(FetchError):
    """The fetch was cancelled before it finished."""


@dataclass(frozen=True)
class ProgressObservation:
    """One progress report from a transfer progress source.

    Attributes:
        phase: Phase the counters belong to, or None when the transport
            reported progress that could not be attributed to any phase.
        received: Items done in this phase.
        total: Items in this phase, 0 while unknown.
    """

    phase: Phase | None
    received: int = 0
    total: int = 0


class JobState(Enum):
    """Lifecycle of a sync job."""

    PENDING = auto()
    RUNNING = auto()
    SUCCEEDED = auto()
    FAILED = auto()

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.SUCCEEDED, JobState.FAILED)


@dataclass(frozen=True)
class SyncResult:
    """Terminal outcome of syncing one repository.

    Attributes:
        descriptor: The repository that was synced.
        success: Whether the fetch succeeded.
        message: Human-readable outcome.
        target_dir: Directory the repository was synced into.
        elapsed_time: Time taken in seconds.
    """

    descriptor: RepositoryDescriptor
    success: bool
    message: str
    target_dir: Path | None = None
    elapsed_time: float = 0.0


@dataclass(frozen=True)
class JobStarted:
    """A job entered RUNNING."""

    name: str


@dataclass(frozen=True)
class JobProgress:
    """Snapshot of a running job's phase and counters."""

    name: str
    phase: Phase
    received: int
    total: int
    progress_known: bool = True


@dataclass(frozen=True)
class JobFinished:
    """A job reached a terminal state."""

    name: str
    result: SyncResult


ProgressEvent = JobStarted | JobProgress | JobFinished


class ProgressSink(Protocol):
    """Consumer of progress events.

    ``publish`` is called from job worker threads and must not block them
    for longer than it takes to hand the event over.
    """

    def publish(self, event: ProgressEvent) -> None: ...


def summarize(results: list[SyncResult]) -> tuple[int, int]:
    """Count results.

    Returns:
        (succeeded, failed)
    """
    succeeded = sum(1 for r in results if r.success)
    return succeeded, len(results) - succeeded
