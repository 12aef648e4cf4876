"""Sync job: one repository fetched into one target directory.

States:
    PENDING -> RUNNING -> SUCCEEDED
                       -> FAILED
    PENDING -> FAILED  (target could not be prepared, or cancelled early)
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING

from pager.sync.domain.phases import Phase, PhaseTracker
from pager.sync.reconciler import TargetReconciler
from pager.sync.types import (
    FetchError,
    JobFinished,
    JobProgress,
    JobStarted,
    JobState,
    ReconcileError,
    SyncResult,
)

if TYPE_CHECKING:
    from pager.core.types import RepositoryDescriptor
    from pager.sync.sources.base import SourceFactory, TransferProgressSource
    from pager.sync.types import ProgressSink

logger = logging.getLogger(__name__)


class SyncJob:
    """Fetches one repository and tracks its progress.

    The job's phase and counters are written only by the thread running
    ``run()``. Other threads see progress exclusively through the immutable
    events published to the sink.

    Usage:
        job = SyncJob(descriptor, download_root / descriptor.name, make_source)
        result = job.run()
    """

    def __init__(
        self,
        descriptor: RepositoryDescriptor,
        target_dir: Path,
        source_factory: SourceFactory,
        reconciler: TargetReconciler | None = None,
        sink: ProgressSink | None = None,
    ) -> None:
        """Initialize the job.

        Args:
            descriptor: Repository to fetch.
            target_dir: Final location of the clone.
            source_factory: Creates the progress source for a fetch directory.
            reconciler: Prepares the target (defaults to direct replacement).
            sink: Receives progress events.
        """
        self.descriptor = descriptor
        self.target_dir = target_dir
        self._source_factory = source_factory
        self._reconciler = reconciler or TargetReconciler()
        self._sink = sink

        self._state = JobState.PENDING
        self._lock = threading.Lock()
        self._cancel_requested = False
        self._source: TransferProgressSource | None = None
        self._tracker = PhaseTracker()
        self._result: SyncResult | None = None
        self._ran = False
        self._started_at = 0.0

    @property
    def name(self) -> str:
        return self.target_dir.name

    @property
    def state(self) -> JobState:
        """Get current job state."""
        return self._state

    @property
    def phase(self) -> Phase:
        return self._tracker.phase

    @property
    def received(self) -> int:
        return self._tracker.received

    @property
    def total(self) -> int:
        return self._tracker.total

    @property
    def progress_known(self) -> bool:
        return self._tracker.progress_known

    @property
    def result(self) -> SyncResult | None:
        """Terminal result, None until the job finished."""
        return self._result

    def cancel(self) -> bool:
        """Request cancellation.

        Returns:
            True if the request was recorded, False if already finished.
        """
        with self._lock:
            if self._state.is_terminal:
                return False
            self._cancel_requested = True
            source = self._source
        if source is not None:
            source.cancel()
        return True

    def run(self) -> SyncResult:
        """Prepare the target, run the fetch and report the outcome.

        Never raises for per-repository problems; they end up in the result.

        Returns:
            The terminal result.

        Raises:
            RuntimeError: If the job was already run.
        """
        with self._lock:
            if self._ran:
                raise RuntimeError(f"Job for {self.descriptor.url} already ran")
            self._ran = True
        self._started_at = time.monotonic()

        try:
            fetch_dir = self._reconciler.prepare(self.target_dir)
        except ReconcileError as e:
            return self._finish(False, str(e))

        try:
            source = self._source_factory(self.descriptor, fetch_dir)
        except Exception as e:
            logger.exception(f"Could not create a fetch for {self.descriptor.url}")
            return self._finish(False, str(e) or type(e).__name__)

        with self._lock:
            cancelled = self._cancel_requested
            if not cancelled:
                self._state = JobState.RUNNING
                self._source = source
        if cancelled:
            return self._finish(False, "cancelled")

        logger.info(f"Cloning {self.descriptor.url} into {self.target_dir}")
        self._publish(JobStarted(self.name))

        try:
            self._consume(source)
            self._reconciler.commit(fetch_dir, self.target_dir)
        except (FetchError, ReconcileError) as e:
            self._reconciler.discard(fetch_dir)
            return self._finish(False, str(e))
        except Exception as e:
            logger.exception(f"Unexpected error while syncing {self.descriptor.url}")
            self._reconciler.discard(fetch_dir)
            return self._finish(False, str(e) or type(e).__name__)

        self._tracker.finish()
        self._publish_progress()
        return self._finish(True, "done")

    def _consume(self, source: TransferProgressSource) -> None:
        for observation in source.subscribe():
            previous = self._tracker.phase
            was_known = self._tracker.progress_known
            if not self._tracker.apply(observation):
                continue

            if self._tracker.phase is not previous:
                logger.info(f"{self.name}: {previous.label} done")
            if was_known and not self._tracker.progress_known:
                logger.warning(f"{self.name}: progress output not recognized, progress unknown")
            else:
                logger.debug(
                    f"{self.name}: {self._tracker.phase.label} "
                    f"{self._tracker.received}/{self._tracker.total}"
                )
            self._publish_progress()

    def _publish_progress(self) -> None:
        self._publish(
            JobProgress(
                name=self.name,
                phase=self._tracker.phase,
                received=self._tracker.received,
                total=self._tracker.total,
                progress_known=self._tracker.progress_known,
            )
        )

    def _finish(self, success: bool, reason: str) -> SyncResult:
        elapsed = time.monotonic() - self._started_at
        if success:
            message = f"Finished cloning {self.name}"
            logger.info(f"{message} in {elapsed:.1f}s")
        else:
            message = f"Failed cloning {self.name}: {reason}"
            logger.error(message)

        result = SyncResult(
            descriptor=self.descriptor,
            success=success,
            message=message,
            target_dir=self.target_dir,
            elapsed_time=elapsed,
        )
        with self._lock:
            self._state = JobState.SUCCEEDED if success else JobState.FAILED
            self._result = result
            self._source = None
        self._publish(JobFinished(self.name, result))
        return result

    def _publish(self, event: JobStarted | JobProgress | JobFinished) -> None:
        if self._sink is not None:
            self._sink.publish(event)
