"""Sync orchestrator: fetches every configured repository concurrently.

Each repository gets its own SyncJob on its own thread. Nothing is shared
between jobs except the progress sink, and no job waits for another.
Parallelism equals the number of repositories; that suits the handful of
page sources a personal setup has, not hundreds.

Results come back in completion order. A failed job is reported, never
retried.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections import defaultdict
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from pager.core.types import is_safe_name
from pager.sync.job import SyncJob
from pager.sync.reconciler import TargetReconciler
from pager.sync.types import (
    DownloadRootError,
    DuplicateTargetError,
    InvalidTargetError,
    JobFinished,
    SyncResult,
)

if TYPE_CHECKING:
    from pager.core.types import RepositoryDescriptor
    from pager.sync.sources.base import SourceFactory
    from pager.sync.types import ProgressSink

logger = logging.getLogger(__name__)

# Seconds between checks while waiting for results, so Ctrl-C is delivered
RESULT_POLL_INTERVAL = 0.2


class SyncOrchestrator:
    """Runs one sync job per repository, all at once.

    Usage:
        orchestrator = SyncOrchestrator(source_factory, sink=renderer)
        results = orchestrator.sync(descriptors, download_root)
    """

    def __init__(
        self,
        source_factory: SourceFactory,
        reconciler: TargetReconciler | None = None,
        sink: ProgressSink | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            source_factory: Creates a progress source per repository fetch.
            reconciler: Target directory policy shared by all jobs.
            sink: Receives progress events from every job.
        """
        self._source_factory = source_factory
        self._reconciler = reconciler or TargetReconciler()
        self._sink = sink
        self._lock = threading.Lock()
        self._jobs: list[SyncJob] = []

    @property
    def jobs(self) -> list[SyncJob]:
        """Jobs of the current or last sync."""
        with self._lock:
            return list(self._jobs)

    def plan(
        self, descriptors: Sequence[RepositoryDescriptor], download_root: Path
    ) -> list[SyncJob]:
        """Create one job per repository.

        Args:
            descriptors: Repositories to sync.
            download_root: Directory the repositories are cloned into.

        Returns:
            Jobs in descriptor order.

        Raises:
            InvalidTargetError: If a URL does not yield a plain directory name.
            DuplicateTargetError: If two repositories derive the same name.
        """
        by_name: dict[str, list[str]] = defaultdict(list)
        for descriptor in descriptors:
            if not is_safe_name(descriptor.name):
                raise InvalidTargetError(descriptor.url, descriptor.name)
            by_name[descriptor.name].append(descriptor.url)
        for name, urls in by_name.items():
            if len(urls) > 1:
                raise DuplicateTargetError(name, urls)

        return [
            SyncJob(
                descriptor,
                download_root / descriptor.name,
                self._source_factory,
                reconciler=self._reconciler,
                sink=self._sink,
            )
            for descriptor in descriptors
        ]

    def sync(
        self, descriptors: Sequence[RepositoryDescriptor], download_root: Path
    ) -> list[SyncResult]:
        """Fetch every repository and wait for all of them.

        Args:
            descriptors: Repositories to sync.
            download_root: Directory the repositories are cloned into.

        Returns:
            One result per repository, in completion order.

        Raises:
            DownloadRootError: If the download root cannot be created.
            InvalidTargetError: If a URL does not yield a plain directory name.
            DuplicateTargetError: If two repositories derive the same name.
        """
        jobs = self.plan(descriptors, download_root)
        try:
            download_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DownloadRootError(f"Could not create {download_root}: {e}") from e

        with self._lock:
            self._jobs = jobs
        if not jobs:
            logger.info("No repositories configured")
            return []

        logger.info(f"Syncing {len(jobs)} repositories into {download_root}")
        results: queue.Queue[SyncResult] = queue.Queue()
        threads = [
            threading.Thread(
                target=self._run_job,
                args=(job, results),
                name=f"SyncJob-{job.name}",
                daemon=True,
            )
            for job in jobs
        ]
        for thread in threads:
            thread.start()

        collected: list[SyncResult] = []
        try:
            while len(collected) < len(jobs):
                try:
                    collected.append(results.get(timeout=RESULT_POLL_INTERVAL))
                except queue.Empty:
                    continue
        except KeyboardInterrupt:
            logger.warning("Interrupted, cancelling running jobs")
            self.cancel()
            for thread in threads:
                thread.join()
            raise

        for thread in threads:
            thread.join()
        return collected

    def cancel(self) -> None:
        """Cancel every job that has not finished yet."""
        for job in self.jobs:
            job.cancel()

    def _run_job(self, job: SyncJob, results: queue.Queue[SyncResult]) -> None:
        try:
            result = job.run()
        except Exception as e:
            logger.exception(f"Sync job for {job.descriptor.url} crashed")
            result = SyncResult(
                descriptor=job.descriptor,
                success=False,
                message=f"Failed cloning {job.name}: {e}",
                target_dir=job.target_dir,
            )
            if self._sink is not None:
                self._sink.publish(JobFinished(job.name, result))
        results.put(result)
