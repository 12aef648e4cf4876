"""Progress source backed by a library-level fetch with a progress callback.

This module provides:
- StructuredFetch: Signature of a fetch function that reports counts
- StructuredSource: Runs such a fetch and forwards its callbacks
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from pager.sync.domain.phases import PhaseTracker
from pager.sync.sources.base import TransferProgressSource
from pager.sync.types import (
    FetchCancelledError,
    FetchError,
    FetchTimeoutError,
    ProgressObservation,
)

logger = logging.getLogger(__name__)

# Seconds between cancellation/deadline checks while the fetch is silent
POLL_INTERVAL = 0.1

# Seconds to wait for an interrupted fetch to notice and stop writing
STOP_GRACE = 5.0

# fetch(on_progress, cancel_check): on_progress(received, total) may be
# called from any thread; the fetch should stop when cancel_check() is True
StructuredFetch = Callable[[Callable[[int, int], None], Callable[[], bool]], None]


@dataclass
class _Done:
    error: Exception | None = None


class StructuredSource(TransferProgressSource):
    """Runs a callback-driven fetch and yields its progress.

    The transport reports a single stream of ``(received, total)`` counts
    without naming phases. Each callback becomes one observation tagged with
    the current phase; the phase advances whenever a count reaches its total,
    so one continuous stream walks the phases in order.

    The fetch runs on its own thread and hands counts over through a queue,
    so callbacks never touch the consumer's state. Observations are yielded
    on the thread iterating ``subscribe()``.

    Usage:
        source = StructuredSource(lambda on_progress, cancel_check: clone(...))
        for observation in source.subscribe():
            ...
    """

    def __init__(
        self,
        fetch: StructuredFetch,
        timeout: float | None = None,
        name: str = "fetch",
    ) -> None:
        """Initialize the source.

        Args:
            fetch: Function performing the fetch; raises on failure.
            timeout: Seconds before the fetch is abandoned.
            name: Name for the fetch thread.
        """
        super().__init__(timeout=timeout)
        self._fetch = fetch
        self._name = name

    def subscribe(self) -> Iterator[ProgressObservation]:
        if self.cancelled:
            raise FetchCancelledError("cancelled")

        channel: queue.Queue[tuple[int, int] | _Done] = queue.Queue()
        stopping = threading.Event()

        def on_progress(received: int, total: int) -> None:
            channel.put((received, total))

        def run() -> None:
            try:
                self._fetch(on_progress, lambda: stopping.is_set() or self.cancelled)
            except Exception as e:
                channel.put(_Done(error=e))
            else:
                channel.put(_Done())

        self._start_clock()
        thread = threading.Thread(target=run, name=f"StructuredSource-{self._name}", daemon=True)
        thread.start()

        cursor = PhaseTracker()
        try:
            while True:
                self._check_interrupted()
                try:
                    item = channel.get(timeout=POLL_INTERVAL)
                except queue.Empty:
                    continue

                if isinstance(item, _Done):
                    self._raise_for(item)
                    return

                observation = ProgressObservation(cursor.phase, received=item[0], total=item[1])
                if cursor.apply(observation):
                    yield observation
        finally:
            # The caller discards the fetch directory next, so the fetch must
            # have stopped writing into it first
            stopping.set()
            thread.join(STOP_GRACE)
            if thread.is_alive():
                logger.warning(f"{self._name} still running {STOP_GRACE:g}s after it was stopped")

    def _check_interrupted(self) -> None:
        if self.cancelled:
            raise FetchCancelledError("cancelled")
        remaining = self._remaining()
        if remaining is not None and remaining <= 0:
            self._timed_out = True
            logger.warning(f"Abandoning {self._name} after {self._timeout:g}s")
            raise FetchTimeoutError(f"Timed out after {self._timeout:g}s")

    def _raise_for(self, done: _Done) -> None:
        if done.error is None:
            if self.cancelled:
                raise FetchCancelledError("cancelled")
            return
        if isinstance(done.error, FetchError):
            raise done.error
        if self.cancelled:
            raise FetchCancelledError("cancelled") from done.error
        raise FetchError(str(done.error) or type(done.error).__name__) from done.error
