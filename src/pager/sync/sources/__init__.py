"""Transfer progress sources.

This package provides progress sources that hide the fetch transport:
- TransferProgressSource: Abstract interface yielding ProgressObservation
- TextStreamSource: Scrapes a subprocess's carriage-return progress output
- StructuredSource: Forwards a library fetch's (received, total) callbacks
- LineBuffer, ProgressLineParser: Byte stream to observation parsing
"""

from pager.sync.sources.base import SourceFactory, TransferProgressSource
from pager.sync.sources.parser import (
    IGNORED_PATTERNS,
    PHASE_PATTERNS,
    LineBuffer,
    ProgressLineParser,
)
from pager.sync.sources.structured import StructuredFetch, StructuredSource
from pager.sync.sources.text_stream import TextStreamSource

__all__ = [
    "IGNORED_PATTERNS",
    "PHASE_PATTERNS",
    "LineBuffer",
    "ProgressLineParser",
    "SourceFactory",
    "StructuredFetch",
    "StructuredSource",
    "TextStreamSource",
    "TransferProgressSource",
]
