"""Parsing of git's human-readable progress output.

git reports progress on stderr by rewriting one terminal line with
carriage returns:

    Receiving objects:  45% (450/1000), 1.20 MiB | 2.00 MiB/s\\r
    Receiving objects: 100% (1000/1000), 2.66 MiB | 2.00 MiB/s, done.\\n

LineBuffer turns the raw byte stream into complete logical lines and
ProgressLineParser maps each line to an observation. Phase recognition is
driven by the pattern tables below, not by the phases' display labels.
"""

from __future__ import annotations

import re

from pager.sync.domain.phases import Phase
from pager.sync.types import ProgressObservation

_COUNTS = r":\s*(?:\d+%\s*)?\((\d+)/(\d+)\)"

PHASE_PATTERNS: dict[Phase, tuple[re.Pattern[str], ...]] = {
    Phase.RECEIVING_OBJECTS: (
        re.compile(r"Receiving objects" + _COUNTS),
        re.compile(r"Unpacking objects" + _COUNTS),
    ),
    Phase.RESOLVING_DELTAS: (re.compile(r"Resolving deltas" + _COUNTS),),
    Phase.UPDATING_FILES: (
        re.compile(r"Updating files" + _COUNTS),
        re.compile(r"Checking out files" + _COUNTS),
    ),
}

# Progress lines that are known and carry nothing for the local phases
IGNORED_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^remote:"),
    re.compile(r"^(?:Enumerating|Counting|Compressing) objects"),
    re.compile(r"^Checking connectivity"),
    re.compile(r"^Filtering content"),
)

# Anything shaped like progress, used to detect output we cannot attribute
PROGRESS_SHAPE = re.compile(r"\(\d+/\d+\)")


class LineBuffer:
    """Splits a carriage-return-updated byte stream into lines.

    Carriage returns are treated as line terminators so every in-place
    update becomes its own line. Incomplete trailing data is kept until the
    next chunk (or flush) completes it. Blank lines are dropped.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding = encoding
        self._buffer = bytearray()

    def feed(self, chunk: bytes) -> list[str]:
        """Add raw bytes and return the lines they completed."""
        self._buffer.extend(chunk.replace(b"\r", b"\n"))
        *complete, rest = self._buffer.split(b"\n")
        self._buffer = bytearray(rest)
        return self._decode(complete)

    def flush(self) -> list[str]:
        """Return whatever is left as a final line."""
        rest, self._buffer = bytes(self._buffer), bytearray()
        return self._decode([rest])

    def _decode(self, raw_lines: list[bytes] | list[bytearray]) -> list[str]:
        lines = (raw.decode(self._encoding, errors="replace").strip() for raw in raw_lines)
        return [line for line in lines if line]


class ProgressLineParser:
    """Maps one line of transport output to a progress observation.

    Attributes:
        patterns: Recognition patterns per phase.
        ignored: Patterns for known lines that are not local progress.
    """

    def __init__(
        self,
        patterns: dict[Phase, tuple[re.Pattern[str], ...]] | None = None,
        ignored: tuple[re.Pattern[str], ...] = IGNORED_PATTERNS,
    ) -> None:
        self.patterns = PHASE_PATTERNS if patterns is None else patterns
        self.ignored = ignored

    def parse(self, line: str) -> ProgressObservation | None:
        """Parse a line.

        Args:
            line: One complete line of output.

        Returns:
            An observation for a recognized phase, an observation with
            ``phase=None`` for progress-shaped output no pattern recognizes,
            or None for informational lines.
        """
        for phase, phase_patterns in self.patterns.items():
            for pattern in phase_patterns:
                match = pattern.search(line)
                if match:
                    return ProgressObservation(
                        phase=phase,
                        received=int(match.group(1)),
                        total=int(match.group(2)),
                    )

        if any(pattern.search(line) for pattern in self.ignored):
            return None
        if PROGRESS_SHAPE.search(line):
            return ProgressObservation(phase=None)
        return None
