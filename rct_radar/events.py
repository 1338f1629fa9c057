"""
Radar Module: Orchestration Events
Structured events emitted at every rollback state transition.
"""

import json
import logging
from datetime import datetime
from typing import Any


class LoggingEventSink:
    """Write each event as one JSON line on the `rct.events` logger."""

    def __init__(self, logger_name: str = "rct.events"):
        self.logger = logging.getLogger(logger_name)

    def emit(self, event: str, **fields: Any) -> None:
        entry = {
            "timestamp": datetime.utcnow().isoformat(),
            "event": event,
            **fields,
        }
        level = logging.ERROR if event in ERROR_EVENTS else logging.INFO
        self.logger.log(level, json.dumps(entry, default=str))


ERROR_EVENTS = {
    "rollback_crashed",
    "notification_failed",
    "metric_failed",
}
