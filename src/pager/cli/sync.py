"""Sync command for pager CLI.

Commands:
- sync: Re-clone every configured page repository
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import click

from pager.cli.config import require_config

if TYPE_CHECKING:
    from rich.console import Console


class ConsoleLogHandler(logging.Handler):
    """Logging handler that prints through the live progress console.

    rich redraws the progress rows below anything printed through its
    console, so log records never tear the bars.
    """

    def __init__(self, console: Console) -> None:
        super().__init__()
        self._console = console

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            self._console.print(msg, markup=False, highlight=False)
        except Exception:
            self.handleError(record)


@click.command()
@click.option("--no-progress", is_flag=True, help="Disable progress bars.")
def sync(no_progress: bool) -> None:
    """Sync the online page database against the configured git repos.

    Every repository is cloned again from scratch, all at the same time.
    A repository that fails is reported; the others are not affected and
    the command still exits successfully.
    """
    from pager.sync import (
        SyncError,
        SyncOrchestrator,
        TargetReconciler,
        source_factory,
        summarize,
    )
    from pager.sync.progress import LineSink, ProgressRenderer

    config = require_config()

    try:
        factory = source_factory(config.sync.transport, timeout=config.sync.job_timeout)
    except SyncError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not config.repositories:
        click.echo("No git repositories configured, nothing to sync.")
        return

    renderer = None
    if not no_progress and sys.stdout.isatty():
        renderer = ProgressRenderer()

    orchestrator = SyncOrchestrator(
        factory,
        reconciler=TargetReconciler(atomic=config.sync.atomic_replace),
        sink=renderer if renderer is not None else LineSink(click.echo),
    )

    # Route pager's log records through the live display while it runs
    pager_logger = logging.getLogger("pager")
    saved_handlers = pager_logger.handlers[:]
    if renderer is not None:
        console_handler = ConsoleLogHandler(renderer.console)
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        for handler in saved_handlers:
            pager_logger.removeHandler(handler)
        pager_logger.addHandler(console_handler)

    click.echo("Cloning online page repos from git")
    try:
        if renderer is not None:
            renderer.start()
        results = orchestrator.sync(config.repositories, config.download_path)
    except SyncError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("Sync interrupted.", err=True)
        sys.exit(130)
    finally:
        if renderer is not None:
            renderer.stop()
            pager_logger.handlers[:] = saved_handlers

    succeeded, failed = summarize(results)
    summary = f"Synced {succeeded} of {len(results)} repositories"
    if failed:
        summary += f" ({failed} failed)"
    click.echo(summary)
