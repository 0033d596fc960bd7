"""
inference/sampler.py
Classifier input side of the engine: runs the two pluggable detectors for a
frame within the tick budget, and drives ticks from a periodic timer.

Detector contract:
    detector.detect(frame: np.ndarray) -> List[Entity]
A detector that failed to load is passed as None; its channel is reported
unavailable and the conditions depending on it are disabled.
"""

import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
from typing import Callable, Dict, List, Optional

import numpy as np

from inference.errors import ClassifierTimeout
from inference.types import OBJECTS_CHANNEL, PRESENCE_CHANNEL, Entity, FrameSample
from utils.logger import get_logger

logger = get_logger("inference.sampler")


class DetectorRunner:
    def __init__(self, presence_detector=None, object_detector=None, budget: float = 1.0):
        self.budget = budget
        self.detectors = {
            PRESENCE_CHANNEL: presence_detector,
            OBJECTS_CHANNEL: object_detector,
        }
        self._pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="detector")
        self._inflight: List = []

    @property
    def unavailable_channels(self) -> List[str]:
        return [ch for ch, det in self.detectors.items() if det is None]

    @property
    def available_channels(self) -> List[str]:
        return [ch for ch, det in self.detectors.items() if det is not None]

    def sample(self, frame: np.ndarray, timestamp: float) -> Optional[FrameSample]:
        """
        Run every available detector on frame.

        Returns:
            FrameSample, or None when a detector raised (the tick is a miss)

        Raises:
            ClassifierTimeout: inference did not finish inside the budget, or a
                previous tick's inference is still running
        """
        still_running = [f for f in self._inflight if not f.done()]
        if still_running:
            raise ClassifierTimeout("previous tick", self.budget)
        self._inflight = []

        futures = {ch: self._pool.submit(det.detect, frame) for ch, det in self.detectors.items() if det is not None}
        deadline = time.monotonic() + self.budget
        entities: List[Entity] = []
        channels = set()
        failed = False
        for ch, fut in futures.items():
            remaining = max(0.0, deadline - time.monotonic())
            try:
                found = fut.result(timeout=remaining)
            except FuturesTimeout:
                self._inflight = list(futures.values())
                raise ClassifierTimeout(ch, self.budget)
            except Exception as e:
                logger.warning("%s detector raised during detect: %s", ch, e)
                failed = True
                continue
            entities.extend(found or [])
            channels.add(ch)
        if failed:
            return None

        frame_size = None
        if frame is not None and getattr(frame, "ndim", 0) >= 2:
            frame_size = (int(frame.shape[1]), int(frame.shape[0]))
        return FrameSample(timestamp=timestamp, entities=entities, frame_size=frame_size, channels=frozenset(channels))

    def close(self) -> None:
        self._pool.shutdown(wait=False)


class TickScheduler:
    """
    Calls callback every interval seconds on a background thread.

    At most one tick runs at a time; timer slots that pass while a tick is
    still running are skipped (and counted), never queued up.
    """

    def __init__(self, interval: float, callback: Callable[[], None],
                 clock: Callable[[], float] = time.monotonic, name: str = "tick-scheduler"):
        self.interval = interval
        self.callback = callback
        self.clock = clock
        self.name = name
        self.ticks = 0
        self.skipped = 0
        self._busy = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def fire(self) -> bool:
        """Run one tick now unless one is already in flight. Returns True if it ran."""
        if not self._busy.acquire(blocking=False):
            self.skipped += 1
            return False
        try:
            if self._stop.is_set():
                return False
            self.callback()
            self.ticks += 1
        except Exception:
            logger.exception("Tick callback failed")
        finally:
            self._busy.release()
        return True

    def _run(self) -> None:
        next_at = self.clock()
        while not self._stop.is_set():
            self.fire()
            next_at += self.interval
            now = self.clock()
            if now > next_at:
                missed = int(math.floor((now - next_at) / self.interval)) + 1
                self.skipped += missed
                next_at += missed * self.interval
            self._stop.wait(max(0.0, next_at - self.clock()))

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Cancel pending firings and wait for an in-flight tick to finish."""
        self._stop.set()
        t = self._thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout)
        self._thread = None
