"""Structured event logging for minisheet.

Provides a unified event schema, filesystem NDJSON sink, and safe
emit helpers that never raise uncaught exceptions.
"""

from minisheet.logging.events import (
    EventLevel,
    EventType,
    SheetEvent,
    configure_logging,
    emit,
    emit_error,
    emit_info,
    emit_warning,
    get_sink,
    truncate_context,
)
from minisheet.logging.sink import EventSink

__all__ = [
    "EventLevel",
    "EventSink",
    "EventType",
    "SheetEvent",
    "configure_logging",
    "emit",
    "emit_error",
    "emit_info",
    "emit_warning",
    "get_sink",
    "truncate_context",
]
