"""Progress source backed by a subprocess's progress output.

This module provides:
- TextStreamSource: Runs a command and scrapes progress from its stderr
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
from collections.abc import Iterator, Mapping, Sequence
from pathlib import Path

from pager.sync.domain.phases import PhaseTracker
from pager.sync.sources.base import TransferProgressSource
from pager.sync.sources.parser import LineBuffer, ProgressLineParser
from pager.sync.types import (
    FetchCancelledError,
    FetchError,
    FetchTimeoutError,
    ProgressObservation,
)

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024

# git clone runs helpers (remote-https, index-pack) that share its stderr pipe
PROCESS_GROUPS = os.name == "posix"


class TextStreamSource(TransferProgressSource):
    """Runs a fetch command and parses its stderr into observations.

    stderr is read incrementally as raw bytes, split into logical lines
    (carriage returns count as line ends) and parsed line by line. Lines
    that carry no progress are skipped. An observation is yielded only when
    it moves this fetch's phase state forward, so the repeated "100%" line
    git prints when a phase is done is not counted twice.

    The exit status is authoritative: a zero exit succeeds even if some
    phases never appeared in the output.

    Usage:
        source = TextStreamSource(["git", "clone", "--progress", url, dest])
        for observation in source.subscribe():
            ...
    """

    def __init__(
        self,
        command: Sequence[str],
        env: Mapping[str, str] | None = None,
        cwd: Path | None = None,
        timeout: float | None = None,
        parser: ProgressLineParser | None = None,
    ) -> None:
        """Initialize the source.

        Args:
            command: Command line to run.
            env: Environment for the process (inherits when None).
            cwd: Working directory for the process.
            timeout: Seconds before the process is killed.
            parser: Line parser (defaults to git's progress format).
        """
        super().__init__(timeout=timeout)
        self._command = list(command)
        self._env = dict(env) if env is not None else None
        self._cwd = cwd
        self._parser = parser or ProgressLineParser()
        self._process: subprocess.Popen[bytes] | None = None
        self._last_message = ""

    @property
    def command(self) -> list[str]:
        return list(self._command)

    def subscribe(self) -> Iterator[ProgressObservation]:
        if self.cancelled:
            raise FetchCancelledError("cancelled")

        self._start_clock()
        try:
            process = subprocess.Popen(
                self._command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                env=self._env,
                cwd=self._cwd,
                start_new_session=PROCESS_GROUPS,
            )
        except OSError as e:
            raise FetchError(f"Could not run {self._command[0]}: {e}") from e
        self._process = process
        if self.cancelled:
            self._kill(process)

        timer = self._start_deadline_timer(process)
        try:
            yield from self._read(process)
            returncode = process.wait()
        finally:
            if timer is not None:
                timer.cancel()
            if process.poll() is None:
                self._kill(process)
                process.wait()
            if process.stderr is not None:
                process.stderr.close()

        if self._timed_out:
            raise FetchTimeoutError(f"Timed out after {self._timeout:g}s")
        if self.cancelled:
            raise FetchCancelledError("cancelled")
        if returncode != 0:
            detail = f": {self._last_message}" if self._last_message else ""
            raise FetchError(
                f"{self._command[0]} exited with status {returncode}{detail}",
                returncode=returncode,
            )

    def _read(self, process: subprocess.Popen[bytes]) -> Iterator[ProgressObservation]:
        assert process.stderr is not None
        buffer = LineBuffer()
        cursor = PhaseTracker()

        for chunk in iter(lambda: process.stderr.read1(CHUNK_SIZE), b""):
            for line in buffer.feed(chunk):
                yield from self._observe(line, cursor)
        for line in buffer.flush():
            yield from self._observe(line, cursor)

    def _observe(self, line: str, cursor: PhaseTracker) -> Iterator[ProgressObservation]:
        observation = self._parser.parse(line)
        if observation is None:
            logger.debug(f"Ignored output line: {line}")
            self._last_message = line
            return
        if cursor.apply(observation):
            yield observation

    def _start_deadline_timer(
        self, process: subprocess.Popen[bytes]
    ) -> threading.Timer | None:
        if self._timeout is None:
            return None

        # Fires only while output is still being read; the child may already
        # have exited with a helper holding the pipe open
        def expire() -> None:
            self._timed_out = True
            logger.warning(f"Killing {self._command[0]} after {self._timeout:g}s")
            self._kill(process)

        timer = threading.Timer(self._timeout, expire)
        timer.daemon = True
        timer.start()
        return timer

    def _on_cancel(self) -> None:
        process = self._process
        if process is not None:
            self._kill(process)

    @staticmethod
    def _kill(process: subprocess.Popen[bytes]) -> None:
        """Kill the process and every helper it started."""
        if not PROCESS_GROUPS:
            process.kill()
            return
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
