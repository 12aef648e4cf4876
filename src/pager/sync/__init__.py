"""Repository sync engine.

Architecture:
    SyncOrchestrator → SyncJob (one thread each) → TransferProgressSource
                                ↓
                       ProgressSink (ProgressRenderer)

Components:
- **SyncOrchestrator**: Fans out one job per repository and collects results
- **SyncJob**: Prepares the target, drives a source, tracks phases
- **TransferProgressSource**: Hides the transport (git subprocess or libgit2)
- **PhaseTracker**: Applies observations to the clone phase state machine
- **TargetReconciler**: Full-replace (optionally atomic) target handling
- **ProgressRenderer**: Single coordinator drawing live progress with rich
"""

from pager.sync.domain.phases import Phase, PhaseTracker
from pager.sync.git import source_factory
from pager.sync.job import SyncJob
from pager.sync.orchestrator import SyncOrchestrator
from pager.sync.reconciler import TargetReconciler
from pager.sync.sources import (
    SourceFactory,
    StructuredSource,
    TextStreamSource,
    TransferProgressSource,
)
from pager.sync.types import (
    DownloadRootError,
    DuplicateTargetError,
    FetchCancelledError,
    FetchError,
    FetchTimeoutError,
    InvalidTargetError,
    JobFinished,
    JobProgress,
    JobStarted,
    JobState,
    ProgressObservation,
    ProgressSink,
    ReconcileError,
    SyncError,
    SyncResult,
    summarize,
)

__all__ = [
    "DownloadRootError",
    "DuplicateTargetError",
    "FetchCancelledError",
    "FetchError",
    "FetchTimeoutError",
    "InvalidTargetError",
    "JobFinished",
    "JobProgress",
    "JobStarted",
    "JobState",
    "Phase",
    "PhaseTracker",
    "ProgressObservation",
    "ProgressSink",
    "ReconcileError",
    "SourceFactory",
    "StructuredSource",
    "SyncError",
    "SyncJob",
    "SyncOrchestrator",
    "SyncResult",
    "TargetReconciler",
    "TextStreamSource",
    "TransferProgressSource",
    "source_factory",
    "summarize",
]
