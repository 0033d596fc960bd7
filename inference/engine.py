"""
inference/engine.py
Turns per-tick condition candidates into violation intervals.

ViolationEngine.process_sample is the whole tick transition: it takes the
engine's current state plus one FrameSample and returns the events it caused
(opened / extended / closed / suppressed). It needs no timers and no real
detectors, so a test can drive it with hand-built samples.
"""

import threading
from typing import Dict, FrozenSet, List, Optional

from inference.conditions import ConditionResult, evaluate_conditions, select_candidate
from inference.config import EngineConfig
from inference.events import EngineEvent, EventBus, EventType
from inference.intervals import ViolationInterval, ViolationIntervalStore
from inference.temporal_validator import ConditionState, ConsecutiveRunTracker, DebounceGate
from inference.types import Condition, FrameSample
from utils.logger import get_logger

logger = get_logger("inference.engine")


class ViolationEngine:
    def __init__(self, config: Optional[EngineConfig] = None, bus: Optional[EventBus] = None):
        self.config = config or EngineConfig()
        self.bus = bus or EventBus()
        self.tracker = ConsecutiveRunTracker(self.config.required_consecutive)
        self.debounce = DebounceGate(self.config.debounce_window, self.config.debounced_conditions)
        self.store = ViolationIntervalStore(self.config.context_window)
        self._disabled: FrozenSet[Condition] = frozenset()
        self._lock = threading.RLock()
        self.last_tick: Optional[float] = None

    # ------------------------------------------------------------------ state

    @property
    def condition_state(self) -> ConditionState:
        with self._lock:
            s = self.tracker.state
            return ConditionState(s.active_kind, s.consecutive_count)

    @property
    def disabled_conditions(self) -> FrozenSet[Condition]:
        return self._disabled

    def disable(self, *conditions: Condition) -> None:
        with self._lock:
            self._disabled = self._disabled | frozenset(conditions)

    def reset(self) -> None:
        """Start a new session: clears counters, debounce history and the log."""
        with self._lock:
            self.tracker.reset()
            self.debounce.reset()
            self.store.clear()
            self.last_tick = None

    def snapshot(self) -> List[ViolationInterval]:
        with self._lock:
            return self.store.snapshot()

    def export(self) -> List[Dict]:
        with self._lock:
            return self.store.export()

    def open_kinds(self) -> List[Condition]:
        with self._lock:
            return self.store.open_kinds()

    # ------------------------------------------------------------------- tick

    def _event(self, etype: EventType, now: float, kind: Condition, index: Optional[int], **detail) -> EngineEvent:
        interval = self.store.get(index) if index is not None else None
        return EngineEvent(etype, now, kind=kind, index=index, interval=interval, detail=detail)

    def process_sample(self, sample: FrameSample) -> List[EngineEvent]:
        with self._lock:
            events = self._transition(sample)
        self.bus.publish(events)
        return events

    def _transition(self, sample: FrameSample) -> List[EngineEvent]:
        now = sample.timestamp
        if self.last_tick is not None and now < self.last_tick:
            logger.warning("Dropping out-of-order sample t=%.3f (last tick %.3f)", now, self.last_tick)
            return [EngineEvent(EventType.TICK_SKIPPED, now, detail={"reason": "out_of_order"})]
        self.last_tick = now

        results = evaluate_conditions(sample, self.config, self._disabled)
        candidate, result = select_candidate(results)
        events: List[EngineEvent] = []

        previous, changed = self.tracker.observe(candidate)
        if changed and previous is not None:
            # a different kind (or nothing) interrupts the previous run at once
            idx = self.store.close(previous, now)
            if idx is not None:
                events.append(self._event(EventType.CLOSED, now, previous, idx))

        if candidate is not None and self.tracker.is_confirmed(candidate):
            events.extend(self._confirm(candidate, result, now))
        return events

    def _confirm(self, kind: Condition, result: ConditionResult, now: float) -> List[EngineEvent]:
        score = result.score if result is not None else None
        extra = dict(result.extra) if result is not None else {}
        if self.store.is_open(kind):
            idx = self.store.extend(kind, now, score)
            return [self._event(EventType.EXTENDED, now, kind, idx, **extra)]
        if not self.debounce.allows(kind, now, has_open=False):
            return [EngineEvent(
                EventType.SUPPRESSED, now, kind=kind,
                detail={"last_opened_at": self.debounce.last_opened_at(kind), **extra},
            )]
        idx = self.store.open(kind, now, score)
        self.debounce.record_open(kind, now)
        return [self._event(EventType.OPENED, now, kind, idx, **extra)]

    def end_session(self, now: float) -> List[EngineEvent]:
        """Close every open interval at now and reset run/debounce state."""
        with self._lock:
            events = []
            for kind in self.store.open_kinds():
                idx = self.store.close(kind, now)
                events.append(self._event(EventType.CLOSED, now, kind, idx, reason="session_end"))
            self.tracker.reset()
            self.debounce.reset()
            events.append(EngineEvent(EventType.SESSION_ENDED, now, detail={"intervals": len(self.store)}))
        self.bus.publish(events)
        return events
