"""Clone phase state machine.

Phases:
    RECEIVING_OBJECTS -> RESOLVING_DELTAS -> UPDATING_FILES -> FINISHED

FINISHED is terminal and absorbing. A tracked fetch never moves backwards.

Advancement rule:
    The current phase completes when an observation reports
    ``received == total`` with ``total > 0``. Observations for a phase that
    has already completed are ignored. An observation for a later phase
    skips the phases in between (a clone with nothing to resolve never
    reports "Resolving deltas").
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pager.sync.types import ProgressObservation

logger = logging.getLogger(__name__)


class Phase(IntEnum):
    """Stage of a single repository fetch, in transfer order."""

    RECEIVING_OBJECTS = auto()
    RESOLVING_DELTAS = auto()
    UPDATING_FILES = auto()
    FINISHED = auto()

    @property
    def label(self) -> str:
        """Display text for the phase."""
        return _LABELS[self]

    @property
    def is_terminal(self) -> bool:
        return self is Phase.FINISHED


_LABELS: dict[Phase, str] = {
    Phase.RECEIVING_OBJECTS: "Receiving objects",
    Phase.RESOLVING_DELTAS: "Resolving deltas",
    Phase.UPDATING_FILES: "Updating files",
    Phase.FINISHED: "Finished",
}


@dataclass(frozen=True)
class PhaseStyle:
    """Visual identity of a phase for the progress display.

    Attributes:
        complete_style: Style of the filled part of the bar.
        remaining_style: Style of the unfilled part of the bar.
        label_style: Style of the phase label.
    """

    complete_style: str
    remaining_style: str
    label_style: str


_STYLES: dict[Phase, PhaseStyle] = {
    Phase.RECEIVING_OBJECTS: PhaseStyle("cyan", "blue", "bold cyan"),
    Phase.RESOLVING_DELTAS: PhaseStyle("yellow", "cyan", "bold yellow"),
    Phase.UPDATING_FILES: PhaseStyle("green", "yellow", "bold green"),
    Phase.FINISHED: PhaseStyle("green", "yellow", "green"),
}


def initial() -> Phase:
    """Phase every fetch starts in."""
    return Phase.RECEIVING_OBJECTS


def advance(current: Phase) -> Phase:
    """Next phase in transfer order; FINISHED stays FINISHED."""
    if current.is_terminal:
        return current
    return Phase(current + 1)


def style(current: Phase) -> PhaseStyle:
    """Visual style for a phase."""
    return _STYLES[current]


def is_valid_count(received: int, total: int) -> bool:
    """Check an observation's counters.

    ``total == 0`` means the total is not known yet. Once a total is known,
    ``received`` may not exceed it.
    """
    if received < 0 or total < 0:
        return False
    return total == 0 or received <= total


class PhaseTracker:
    """Applies progress observations to one fetch's phase state.

    Pure and deterministic: no I/O, no locking. Each tracker is owned by a
    single job worker (or a single source) and only that owner mutates it.

    Usage:
        tracker = PhaseTracker()
        for observation in source.subscribe():
            if tracker.apply(observation):
                publish(tracker.phase, tracker.received, tracker.total)
    """

    def __init__(self) -> None:
        self.phase = initial()
        self.received = 0
        self.total = 0
        self.progress_known = True

    def apply(self, observation: ProgressObservation) -> bool:
        """Apply one observation.

        Args:
            observation: Observation from a transfer progress source.

        Returns:
            True if the tracked state changed.
        """
        if self.phase.is_terminal:
            return False

        if observation.phase is None:
            # Transport reported progress in a shape we cannot attribute
            if not self.progress_known:
                return False
            self.progress_known = False
            return True

        if not is_valid_count(observation.received, observation.total):
            logger.debug(
                f"Rejected observation {observation.received}/{observation.total} "
                f"for {observation.phase.label}"
            )
            return False

        if observation.phase < self.phase:
            return False

        entered = observation.phase > self.phase
        if entered:
            self._enter(observation.phase)

        changed = (
            entered
            or not self.progress_known
            or (observation.received, observation.total) != (self.received, self.total)
        )
        self.received = observation.received
        self.total = observation.total
        self.progress_known = True

        if self.total > 0 and self.received == self.total:
            self._enter(advance(self.phase))
        return changed

    def finish(self) -> None:
        """Force the terminal phase once the fetch itself reported success."""
        if not self.phase.is_terminal:
            self._enter(Phase.FINISHED)

    def _enter(self, phase: Phase) -> None:
        self.phase = phase
        if not phase.is_terminal:
            self.received = 0
            self.total = 0
