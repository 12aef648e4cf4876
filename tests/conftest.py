"""Shared fixtures for pager tests."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from pager.core.types import RepositoryDescriptor
from pager.sync.domain.phases import Phase
from pager.sync.sources.base import TransferProgressSource
from pager.sync.types import FetchCancelledError, ProgressObservation

# A clean clone reporting every phase, as git does for a small repository
FULL_CLONE: list[ProgressObservation] = [
    ProgressObservation(Phase.RECEIVING_OBJECTS, 5, 10),
    ProgressObservation(Phase.RECEIVING_OBJECTS, 10, 10),
    ProgressObservation(Phase.RESOLVING_DELTAS, 2, 4),
    ProgressObservation(Phase.RESOLVING_DELTAS, 4, 4),
    ProgressObservation(Phase.UPDATING_FILES, 3, 3),
]


class ScriptedSource(TransferProgressSource):
    """Progress source replaying a fixed list of observations.

    Writes a README into the fetch directory the way a real clone would,
    waits ``delay`` seconds before each observation (interruptible by
    cancel) and raises ``error`` at the end if one is given.
    """

    def __init__(
        self,
        fetch_dir: Path,
        observations: list[ProgressObservation] | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
        files: dict[str, str] | None = None,
    ) -> None:
        super().__init__()
        self.fetch_dir = fetch_dir
        self.observations = FULL_CLONE if observations is None else observations
        self.error = error
        self.delay = delay
        self.files = {"README.md": "# readme\n"} if files is None else files
        self.subscribed = threading.Event()

    def subscribe(self) -> Iterator[ProgressObservation]:
        self.subscribed.set()
        self.fetch_dir.mkdir(parents=True)
        for name, content in self.files.items():
            (self.fetch_dir / name).write_text(content)

        for observation in self.observations:
            if self.delay and self._cancelled.wait(self.delay):
                raise FetchCancelledError("cancelled")
            if self.cancelled:
                raise FetchCancelledError("cancelled")
            yield observation

        if self.error is not None:
            raise self.error


class RecordingSink:
    """Progress sink that keeps every published event."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: list[Any] = []

    def publish(self, event: Any) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list[Any]:
        with self._lock:
            return list(self._events)

    def for_job(self, name: str) -> list[Any]:
        return [e for e in self.events if e.name == name]


ScriptFactory = Callable[..., Callable[[RepositoryDescriptor, Path], ScriptedSource]]


@pytest.fixture
def make_factory() -> ScriptFactory:
    """Build a source factory from per-repository scripts.

    Usage:
        factory = make_factory(alpha={"delay": 0.1}, beta={"error": FetchError("x")})

    Repositories without a script replay FULL_CLONE. Created sources are
    recorded on ``factory.sources`` by repository name.
    """

    def build(**scripts: dict[str, Any]) -> Callable[[RepositoryDescriptor, Path], ScriptedSource]:
        sources: dict[str, ScriptedSource] = {}
        lock = threading.Lock()

        def factory(descriptor: RepositoryDescriptor, fetch_dir: Path) -> ScriptedSource:
            source = ScriptedSource(fetch_dir, **scripts.get(descriptor.name, {}))
            with lock:
                sources[descriptor.name] = source
            return source

        factory.sources = sources  # type: ignore[attr-defined]
        return factory

    return build


@pytest.fixture(autouse=True)
def restore_pager_logger() -> Iterator[None]:
    """Undo logging changes made by CLI commands."""
    pager_logger = logging.getLogger("pager")
    handlers = pager_logger.handlers[:]
    level, propagate = pager_logger.level, pager_logger.propagate
    yield
    pager_logger.handlers[:] = handlers
    pager_logger.setLevel(level)
    pager_logger.propagate = propagate


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def download_root(tmp_path: Path) -> Path:
    return tmp_path / "online_pages"
