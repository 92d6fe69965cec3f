"""Audit event sinks.

Persisting security events is the embedding application's job; this module
only defines the interface the session manager emits through, plus a sink that
forwards events to the ``devicecrypt.audit`` logger.
"""
from __future__ import annotations

import logging
from typing import List, Protocol

from devicecrypt.core.models import SecurityEvent, SecurityEventSeverity

_SEVERITY_LEVELS = {
    SecurityEventSeverity.INFORMATION: logging.INFO,
    SecurityEventSeverity.WARNING: logging.WARNING,
    SecurityEventSeverity.ERROR: logging.ERROR,
    SecurityEventSeverity.CRITICAL: logging.CRITICAL,
}


class AuditSink(Protocol):
    def record(self, event: SecurityEvent) -> None:
        ...


class LoggingAuditSink:
    """Write each event as one log line, at the level matching its severity."""

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger("devicecrypt.audit")

    def record(self, event: SecurityEvent) -> None:
        self._logger.log(
            _SEVERITY_LEVELS[event.severity],
            "%s user=%s machine=%s success=%s: %s",
            event.event_type.name,
            event.user_id,
            event.machine_id,
            event.is_successful,
            event.description,
            extra={"security_event": event.to_dict()},
        )


class NullAuditSink:
    def record(self, event: SecurityEvent) -> None:
        pass


class MemoryAuditSink:
    # keeps events in a list; handy for tests and for callers that batch-forward
    def __init__(self):
        self.events: List[SecurityEvent] = []

    def record(self, event: SecurityEvent) -> None:
        self.events.append(event)
