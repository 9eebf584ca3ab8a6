"""Event reporting for patch application.

The engine never touches log storage directly: it hands ``PatchEvent``
objects to whatever reporter the caller injects. ``LoggingReporter`` is the
default and forwards events to the standard ``logging`` module.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol

EVENT_HEADER = "header"
EVENT_PROGRESS = "progress"
EVENT_COMPLETED = "completed"
EVENT_FAILED = "failed"
EVENT_CANCELLED = "cancelled"


@dataclass(frozen=True)
class PatchEvent:
    kind: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)


class PatchReporter(Protocol):
    def report(self, event: PatchEvent) -> None: ...


class LoggingReporter:
    """Reporter that writes events to a logger."""

    _LEVELS = {
        EVENT_HEADER: logging.DEBUG,
        EVENT_PROGRESS: logging.DEBUG,
        EVENT_COMPLETED: logging.INFO,
        EVENT_FAILED: logging.ERROR,
        EVENT_CANCELLED: logging.WARNING,
    }

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("assetpatch.patching")

    def report(self, event: PatchEvent) -> None:
        level = self._LEVELS.get(event.kind, logging.INFO)
        if event.details:
            self.logger.log(level, "%s %s", event.message, event.details)
        else:
            self.logger.log(level, "%s", event.message)


class CallbackReporter:
    """Adapts a plain callable (e.g. a UI hook) to the reporter interface."""

    def __init__(self, callback: Callable[[PatchEvent], None]):
        self._callback = callback

    def report(self, event: PatchEvent) -> None:
        self._callback(event)


class RecordingReporter:
    """Keeps every event in memory; handy for diagnostics and tests."""

    def __init__(self) -> None:
        self.events: List[PatchEvent] = []

    def report(self, event: PatchEvent) -> None:
        self.events.append(event)

    def kinds(self) -> List[str]:
        return [event.kind for event in self.events]
