"""Pure domain logic for the sync engine (no I/O)."""

from pager.sync.domain.phases import (
    Phase,
    PhaseStyle,
    PhaseTracker,
    advance,
    initial,
    is_valid_count,
    style,
)

__all__ = [
    "Phase",
    "PhaseStyle",
    "PhaseTracker",
    "advance",
    "initial",
    "is_valid_count",
    "style",
]
