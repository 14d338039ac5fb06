"""
security_log.py — Append-only Security Event Log

Every protocol-relevant occurrence (session minted, hash mismatch, expiry,
confirmation, processor failures) is appended here and mirrored to the
application log. Events are kept for the lifetime of the process; readers
only ever see the newest entries.
"""

import json
import threading
from typing import Any, Dict, List

from .logging_config import get_logger
from .models import SecurityEvent, SecurityEventType

log = get_logger(__name__)

RECENT_EVENTS_LIMIT = 50


class SecurityEventLog:
    def __init__(self):
        self._events: List[SecurityEvent] = []
        self._lock = threading.Lock()

    def record(self, event_type: SecurityEventType, details: Dict[str, Any] = None) -> SecurityEvent:
        """
        Appends an event and writes it to the application log.

        Args:
            event_type (SecurityEventType): Kind of event.
            details (dict): Structured payload. Must be JSON-serializable.

        Returns:
            SecurityEvent: The stored event.
        """
        event = SecurityEvent(type=event_type, details=details or {})
        with self._lock:
            self._events.append(event)
        log.info(f"[SECURITY] {event.type.value}: {json.dumps(event.details, default=str)}")
        return event

    def recent(self, limit: int = RECENT_EVENTS_LIMIT) -> List[SecurityEvent]:
        """Returns the newest `limit` events in chronological order."""
        if limit <= 0:
            return []
        with self._lock:
            return list(self._events[-limit:])

    def __len__(self):
        with self._lock:
            return len(self._events)
