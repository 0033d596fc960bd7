"""
inference/session.py
One monitoring session: detectors -> engine -> recording trigger, one tick at
a time, plus the status a UI needs to show a "degraded" indicator.
"""

import threading
import time
import uuid
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from inference.config import EngineConfig
from inference.engine import ViolationEngine
from inference.errors import ClassifierTimeout
from inference.events import EngineEvent, EventBus, EventType, log_event
from inference.recording import Artifact, CaptureSink, RecordingTrigger
from inference.sampler import DetectorRunner, TickScheduler
from inference.types import CONDITION_CHANNEL, FrameSample
from utils.logger import get_logger

logger = get_logger("inference.session")


class MonitoringSession:
    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        runner: Optional[DetectorRunner] = None,
        sink: Optional[CaptureSink] = None,
        bus: Optional[EventBus] = None,
        session_id: Optional[str] = None,
        on_artifact: Optional[Callable[[Artifact], None]] = None,
    ):
        self.config = config or EngineConfig()
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.bus = bus or EventBus()
        self.bus.subscribe(log_event)
        self.engine = ViolationEngine(self.config, self.bus)
        self.runner = runner or DetectorRunner(budget=self.config.detector_budget)
        self.recorder = RecordingTrigger(sink, self.config.capture_duration, on_artifact=on_artifact)
        self.sink = sink
        self.skipped_ticks = 0
        self.ticks = 0
        self.ended = False
        self.last_sample: Optional[FrameSample] = None
        self._scheduler: Optional[TickScheduler] = None
        self._tick_lock = threading.Lock()
        self._announce_unavailable()

    def _announce_unavailable(self) -> None:
        events = []
        for ch in self.runner.unavailable_channels:
            conds = [c for c, needed in CONDITION_CHANNEL.items() if needed == ch]
            self.engine.disable(*conds)
            events.append(EngineEvent(
                EventType.CLASSIFIER_UNAVAILABLE, time.time(),
                detail={"channel": ch, "disabled": [c.value for c in conds]},
            ))
        self.bus.publish(events)

    # ---------------------------------------------------------------- ticking

    def process_frame(self, frame: np.ndarray, timestamp: float) -> List[EngineEvent]:
        """Run one tick for frame. Never raises for detector or capture failures."""
        with self._tick_lock:
            if self.ended:
                return []
            try:
                sample = self.runner.sample(frame, timestamp)
            except ClassifierTimeout as e:
                sample = None
                reason = str(e)
            else:
                reason = "detector_error"
            if sample is None:
                self.skipped_ticks += 1
                skipped = [EngineEvent(EventType.TICK_SKIPPED, timestamp, detail={"reason": reason})]
                self.bus.publish(skipped)
                capture = self.recorder.on_tick(timestamp)
                self.bus.publish(capture)
                return skipped + capture

            self.ticks += 1
            self.last_sample = sample
            events = self.engine.process_sample(sample)
            capture = self.recorder.observe(events, timestamp)
            capture += self.recorder.on_tick(timestamp)
            self.bus.publish(capture)
            return events + capture

    def feed(self, frame: np.ndarray) -> None:
        """Pass a raw frame to the capture sink while a capture is running."""
        if self.sink is not None and self.recorder.is_recording:
            self.sink.write(frame)

    def run_live(self, read_frame: Callable[[], Tuple[bool, Optional[np.ndarray]]],
                 clock: Callable[[], float] = time.time) -> TickScheduler:
        """
        Drive ticks from a periodic timer.

        Args:
            read_frame: returns (ok, frame) like cv2.VideoCapture.read
            clock: timestamp source for ticks
        """
        def _tick():
            ok, frame = read_frame()
            if not ok or frame is None:
                logger.debug("No frame available for tick")
                return
            self.feed(frame)
            self.process_frame(frame, clock())

        self._scheduler = TickScheduler(self.config.tick_interval, _tick, name=f"session-{self.session_id}")
        self._scheduler.start()
        return self._scheduler

    def stop(self, now: Optional[float] = None) -> List[Artifact]:
        """
        End the session: cancel the timer first, then close open intervals and
        stop and flush any capture. Returns every artifact of the session.
        """
        if self._scheduler is not None:
            self._scheduler.stop()
            self.skipped_ticks += self._scheduler.skipped
        with self._tick_lock:
            if self.ended:
                return list(self.recorder.artifacts)
            now = time.time() if now is None else now
            self.engine.end_session(now)
            self.bus.publish(self.recorder.finish(now))
            self.ended = True
        self.runner.close()
        logger.info("Session %s ended: %d intervals, %d artifacts, %d skipped ticks",
                    self.session_id, len(self.engine.store), len(self.recorder.artifacts), self.skipped_ticks)
        return list(self.recorder.artifacts)

    # ---------------------------------------------------------------- readers

    def export(self) -> List[Dict]:
        return self.engine.export()

    def status(self) -> Dict:
        unavailable = self.runner.unavailable_channels
        return {
            "session_id": self.session_id,
            "degraded": bool(unavailable) or self.recorder.degraded,
            "unavailable_channels": unavailable,
            "disabled_conditions": sorted(c.value for c in self.engine.disabled_conditions),
            "recording": self.recorder.is_recording,
            "recording_error": self.recorder.last_error,
            "open_violations": [c.value for c in self.engine.open_kinds()],
            "intervals": len(self.engine.store),
            "ticks": self.ticks,
            "skipped_ticks": self.skipped_ticks,
            "ended": self.ended,
        }
