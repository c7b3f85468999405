"""Observability signals emitted by scan passes."""

import logging
from typing import Protocol

logger = logging.getLogger(__name__)

SCAN_STARTED = "scan-started"
SCAN_COMPLETE = "scan-complete"
STARTUP_SCAN_STARTED = "startup-scan-started"
STARTUP_SCAN_COMPLETE = "startup-scan-complete"
TAGS_SYNCED = "tags-synced"


class Notifier(Protocol):
    """Receives scheduler events. Delivery is best-effort."""

    def emit(self, event: str, payload: dict) -> None:
        ...


class LoggingNotifier:
    def emit(self, event: str, payload: dict) -> None:
        logger.info("Event %s: %s", event, payload)


def emit_safely(notifier: Notifier, event: str, payload: dict | None = None) -> None:
    """Deliver an event; a failing notifier is logged and never fails the pass."""
    try:
        notifier.emit(event, payload or {})
    except Exception as e:  # pylint: disable=broad-except
        logger.error("Failed to emit %s event: %s", event, e)
