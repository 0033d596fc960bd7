"""
inference/events.py
Events emitted by the engine and a small publish/subscribe bus.

Logging, persistence, alerts and the recording trigger all observe the engine
through this bus; none of them run inside the detection logic itself.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from inference.intervals import ViolationInterval
from inference.types import Condition
from utils.logger import get_logger

logger = get_logger("inference.events")


class EventType(str, Enum):
    OPENED = "opened"
    EXTENDED = "extended"
    CLOSED = "closed"
    SUPPRESSED = "suppressed"
    TICK_SKIPPED = "tick_skipped"
    CLASSIFIER_UNAVAILABLE = "classifier_unavailable"
    CAPTURE_STARTED = "capture_started"
    CAPTURE_STOPPED = "capture_stopped"
    CAPTURE_FAILED = "capture_failed"
    SESSION_ENDED = "session_ended"


@dataclass
class EngineEvent:
    type: EventType
    timestamp: float
    kind: Optional[Condition] = None
    index: Optional[int] = None
    interval: Optional[ViolationInterval] = None  # copy taken when the event was emitted
    detail: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "timestamp": self.timestamp,
            "kind": self.kind.value if self.kind else None,
            "index": self.index,
            "interval": self.interval.to_dict() if self.interval else None,
            "detail": dict(self.detail),
        }


Subscriber = Callable[[EngineEvent], None]


class EventBus:
    def __init__(self):
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Subscriber:
        self._subscribers.append(callback)
        return callback

    def unsubscribe(self, callback: Subscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def publish(self, events: Iterable[EngineEvent]) -> None:
        for event in events:
            for cb in list(self._subscribers):
                try:
                    cb(event)
                except Exception:
                    logger.exception("Event subscriber %r failed on %s", cb, event.type.value)


def log_event(event: EngineEvent) -> None:
    """Default logging subscriber."""
    kind = event.kind.value if event.kind else "-"
    if event.type == EventType.OPENED:
        iv = event.interval
        logger.info(
            "Violation opened kind=%s index=%s t=%.2f score=%s window=[%.2f, %.2f]",
            kind, event.index, event.timestamp, iv.score, iv.start_time, iv.end_time,
        )
    elif event.type == EventType.CLOSED:
        logger.info("Violation closed kind=%s index=%s t=%.2f", kind, event.index, event.timestamp)
    elif event.type in (EventType.CLASSIFIER_UNAVAILABLE, EventType.CAPTURE_FAILED):
        logger.warning("%s kind=%s t=%.2f detail=%s", event.type.value, kind, event.timestamp, event.detail)
    else:
        logger.debug("%s kind=%s index=%s t=%.2f", event.type.value, kind, event.index, event.timestamp)
