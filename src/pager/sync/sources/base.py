"""Transfer progress source interface.

A source wraps one fetch and turns whatever progress reporting the
transport offers into a sequence of ProgressObservation values. The job
and the phase model only ever see this interface, never the transport.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pager.core.types import RepositoryDescriptor
    from pager.sync.types import ProgressObservation

logger = logging.getLogger(__name__)


class TransferProgressSource(ABC):
    """Abstract base class for progress sources.

    Subclasses must implement:
    - subscribe(): Run the fetch, yielding observations as they arrive
    - _on_cancel(): Stop the underlying transport

    ``subscribe`` returns normally when the fetch succeeded and raises a
    FetchError subclass when it failed, timed out or was cancelled. The
    sequence may end before every phase was observed; only the transport's
    own result decides success.

    Usage:
        source = TextStreamSource(["git", "clone", "--progress", url, dest])
        try:
            for observation in source.subscribe():
                tracker.apply(observation)
        except FetchError as e:
            ...
    """

    def __init__(self, timeout: float | None = None) -> None:
        """Initialize the source.

        Args:
            timeout: Seconds the fetch may take before it is abandoned.
        """
        self._timeout = timeout
        self._cancelled = threading.Event()
        self._timed_out = False
        self._started_at: float | None = None

    @property
    def cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._cancelled.is_set()

    @property
    def timed_out(self) -> bool:
        """Check if the fetch ran past its deadline."""
        return self._timed_out

    @abstractmethod
    def subscribe(self) -> Iterator[ProgressObservation]:
        """Run the fetch and yield its progress observations.

        Raises:
            FetchError: If the fetch failed.
            FetchTimeoutError: If the deadline passed.
            FetchCancelledError: If cancel() was called.
        """
        ...

    def cancel(self) -> None:
        """Request cancellation. Safe to call from any thread."""
        if self._cancelled.is_set():
            return
        self._cancelled.set()
        logger.info(f"{type(self).__name__}: cancellation requested")
        self._on_cancel()

    def _on_cancel(self) -> None:
        """Stop the transport. Called once, from the cancelling thread."""

    def _start_clock(self) -> None:
        self._started_at = time.monotonic()

    def _remaining(self) -> float | None:
        """Seconds left before the deadline, None without a deadline."""
        if self._timeout is None or self._started_at is None:
            return None
        return max(0.0, self._timeout - (time.monotonic() - self._started_at))


SourceFactory = Callable[["RepositoryDescriptor", Path], TransferProgressSource]
