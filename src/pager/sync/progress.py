"""Live progress display for a sync.

This module provides:
- ProgressRenderer: Single rendering coordinator fed through a queue
- LineSink: Plain one-line-per-event output for non-interactive runs
- StatusColumn, PhaseBarColumn, CountColumn: rich columns for job rows

Job threads never touch display state. They publish immutable events,
and one coordinator thread drains the queue and owns every rich task.
This keeps fetch callbacks and the render loop from contending for the
same objects.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    ProgressColumn,
    Task,
    TaskID,
    TextColumn,
)
from rich.progress_bar import ProgressBar
from rich.spinner import Spinner
from rich.text import Text

from pager.sync.domain.phases import Phase, style
from pager.sync.types import JobFinished, JobProgress, JobStarted

if TYPE_CHECKING:
    from pager.sync.types import ProgressEvent

logger = logging.getLogger(__name__)

SUCCESS_GLYPH = "✅"
FAILURE_GLYPH = "❌"


class StatusColumn(ProgressColumn):
    """Spinner while a job runs, then a success or failure glyph."""

    def __init__(self, spinner_name: str = "dots") -> None:
        super().__init__()
        self._spinner = Spinner(spinner_name, style="progress.spinner")

    def render(self, task: Task) -> Any:
        outcome = task.fields.get("outcome")
        if outcome is None:
            return self._spinner.render(task.get_time())
        return Text(SUCCESS_GLYPH if outcome else FAILURE_GLYPH)


class PhaseBarColumn(BarColumn):
    """Bar styled by the job's current phase; pulses while the total is unknown."""

    def render(self, task: Task) -> ProgressBar:
        phase: Phase | None = task.fields.get("phase")
        counted = bool(task.fields.get("counted")) and task.total is not None
        phase_style = style(phase) if phase is not None else None
        return ProgressBar(
            total=max(0, task.total) if counted and task.total is not None else None,
            completed=max(0, task.completed),
            width=None if self.bar_width is None else max(1, self.bar_width),
            pulse=not counted,
            animation_time=task.get_time(),
            style=phase_style.remaining_style if phase_style else self.style,
            complete_style=phase_style.complete_style if phase_style else self.complete_style,
            finished_style=phase_style.complete_style if phase_style else self.finished_style,
            pulse_style=self.pulse_style,
        )


class CountColumn(ProgressColumn):
    """``received/total`` once the phase total is known."""

    def render(self, task: Task) -> Text:
        if not task.fields.get("counted") or task.total is None:
            return Text("")
        return Text(f"{int(task.completed)}/{int(task.total)}", style="progress.download")


class ProgressRenderer:
    """Rendering coordinator for sync progress.

    ``publish`` only enqueues, so it is safe and cheap to call from any job
    thread. Events are applied in arrival order by the coordinator thread.

    Usage:
        with ProgressRenderer() as renderer:
            orchestrator = SyncOrchestrator(source_factory, sink=renderer)
            orchestrator.sync(descriptors, download_root)
    """

    def __init__(self, console: Console | None = None) -> None:
        """Initialize the renderer.

        Args:
            console: Console to draw on (defaults to stdout).
        """
        self._progress = Progress(
            StatusColumn(),
            TextColumn("{task.description}"),
            PhaseBarColumn(bar_width=40),
            CountColumn(),
            console=console,
        )
        self._events: queue.Queue[ProgressEvent | None] = queue.Queue()
        self._tasks: dict[str, TaskID] = {}
        self._thread: threading.Thread | None = None

    @property
    def console(self) -> Console:
        """Console to print through while the display is live."""
        return self._progress.console

    @property
    def progress(self) -> Progress:
        return self._progress

    def publish(self, event: ProgressEvent) -> None:
        self._events.put(event)

    def start(self) -> None:
        """Start drawing and processing events."""
        if self._thread is not None:
            return
        self._progress.start()
        self._thread = threading.Thread(target=self._loop, name="ProgressRenderer", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Apply every pending event, then stop drawing."""
        if self._thread is None:
            return
        self._events.put(None)
        self._thread.join()
        self._thread = None
        self._progress.stop()

    def __enter__(self) -> ProgressRenderer:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def _loop(self) -> None:
        while True:
            event = self._events.get()
            if event is None:
                break
            try:
                self.apply(event)
            except Exception:
                logger.exception("Failed to render progress event")

    def apply(self, event: ProgressEvent) -> None:
        """Apply one event to the display. Only the coordinator calls this."""
        task_id = self._task_for(event.name)

        if isinstance(event, JobStarted):
            self._progress.update(task_id, description=f"Beginning cloning for {event.name}")

        elif isinstance(event, JobProgress):
            description = f"Cloning {event.name}: {event.phase.label}"
            if not event.progress_known:
                description += " (progress unknown)"
            fields: dict[str, Any] = {
                "description": description,
                "completed": event.received,
                "phase": event.phase,
                "counted": event.total > 0,
            }
            if event.total > 0:
                fields["total"] = event.total
            self._progress.update(task_id, **fields)

        elif isinstance(event, JobFinished):
            updates: dict[str, Any] = {
                "description": event.result.message,
                "outcome": event.result.success,
            }
            if event.result.success:
                # Fill the bar even when the last phase never reported a total
                task = next(t for t in self._progress.tasks if t.id == task_id)
                total = task.total if task.fields.get("counted") and task.total else 1
                updates.update(total=total, completed=total, counted=True, phase=Phase.FINISHED)
            self._progress.update(task_id, **updates)

    def _task_for(self, name: str) -> TaskID:
        task_id = self._tasks.get(name)
        if task_id is None:
            task_id = self._progress.add_task(
                f"Waiting for {name}",
                total=None,
                phase=None,
                counted=False,
                outcome=None,
            )
            self._tasks[name] = task_id
        return task_id


class LineSink:
    """Prints job starts and outcomes as plain lines.

    Used when there is no terminal to draw on. Counter updates are only
    logged at debug level.

    Usage:
        orchestrator = SyncOrchestrator(source_factory, sink=LineSink(click.echo))
    """

    def __init__(self, write: Callable[[str], None]) -> None:
        self._write = write
        self._lock = threading.Lock()

    def publish(self, event: ProgressEvent) -> None:
        if isinstance(event, JobStarted):
            line = f"Beginning cloning for {event.name}"
        elif isinstance(event, JobFinished):
            glyph = SUCCESS_GLYPH if event.result.success else FAILURE_GLYPH
            line = f"{glyph} {event.result.message}"
        else:
            logger.debug(f"{event.name}: {event.phase.label} {event.received}/{event.total}")
            return
        with self._lock:
            self._write(line)
