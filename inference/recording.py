"""
inference/recording.py
Evidence capture policy.

The first violation that opens while nothing is recording starts a capture on
the sink; the capture stops by itself after a fixed duration (checked on every
tick) or when the session ends. A sink that fails to start or stop never stops
the tick loop: the trigger marks itself degraded and detection carries on.
"""

import abc
import itertools
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

from inference.errors import CaptureStartFailed, CaptureStopFailed
from inference.events import EngineEvent, EventType
from utils.logger import get_logger

logger = get_logger("inference.recording")

_handle_ids = itertools.count(1)


@dataclass(frozen=True)
class CaptureHandle:
    id: int
    started_at: float


@dataclass
class Artifact:
    """Opaque encoded evidence. The engine never looks inside data."""
    data: bytes
    filename: str
    started_at: float
    stopped_at: float
    mime_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.data)


def evidence_filename(ext: str = ".mp4", when: Optional[datetime] = None) -> str:
    """Filename hint taken from the wall clock, e.g. evidence_20261017T094501Z.mp4"""
    when = when or datetime.now(timezone.utc)
    return f"evidence_{when.strftime('%Y%m%dT%H%M%SZ')}{ext}"


ErrorHandler = Callable[[CaptureHandle, Exception], None]


class CaptureSink(abc.ABC):
    """Something that records evidence between start() and stop()."""

    def __init__(self):
        self._error_handler: Optional[ErrorHandler] = None

    def set_error_handler(self, handler: Optional[ErrorHandler]) -> None:
        self._error_handler = handler

    def on_error(self, handle: CaptureHandle, cause: Exception) -> None:
        if self._error_handler is not None:
            self._error_handler(handle, cause)
        else:
            logger.error("Capture %s failed: %s", handle.id, cause)

    @staticmethod
    def new_handle(now: float) -> CaptureHandle:
        return CaptureHandle(next(_handle_ids), now)

    @abc.abstractmethod
    def start(self, now: float) -> CaptureHandle:
        """Begin recording. Raises CaptureStartFailed."""

    @abc.abstractmethod
    def stop(self, handle: CaptureHandle, now: float) -> Artifact:
        """Finish recording and return the artifact. Raises CaptureStopFailed."""

    def write(self, frame) -> None:
        """Feed one frame while recording; sinks bound to their own source ignore this."""


class RecordingTrigger:
    def __init__(self, sink: Optional[CaptureSink], duration: float = 30.0,
                 on_artifact: Optional[Callable[[Artifact], None]] = None):
        self.sink = sink
        self.duration = duration
        self.on_artifact = on_artifact
        self.artifacts: List[Artifact] = []
        self.degraded = sink is None
        self.last_error: Optional[str] = None if sink is not None else "no capture sink configured"
        self._handle: Optional[CaptureHandle] = None
        self._pending: List[EngineEvent] = []
        if sink is not None:
            sink.set_error_handler(self.on_error)

    @property
    def is_recording(self) -> bool:
        return self._handle is not None

    @property
    def handle(self) -> Optional[CaptureHandle]:
        return self._handle

    def observe(self, events: List[EngineEvent], now: float) -> List[EngineEvent]:
        """React to a tick's engine events; returns capture events."""
        out = self._drain()
        if self.sink is None or self._handle is not None:
            return out
        opened = [e for e in events if e.type == EventType.OPENED]
        if opened:
            out.extend(self._start(now, opened[0]))
        return out

    def on_tick(self, now: float) -> List[EngineEvent]:
        out = self._drain()
        if self._handle is not None and now - self._handle.started_at >= self.duration:
            out.extend(self._stop(now, reason="duration_elapsed"))
        return out

    def finish(self, now: float) -> List[EngineEvent]:
        """Session end: stop and flush any capture even if no violation is open."""
        out = self._drain()
        if self._handle is not None:
            out.extend(self._stop(now, reason="session_end"))
        return out

    def on_error(self, handle: CaptureHandle, cause: Exception) -> None:
        """Error callback registered on the sink."""
        logger.error("Capture %s reported error: %s", handle.id, cause)
        self.degraded = True
        self.last_error = str(cause)
        if self._handle is not None and self._handle.id == handle.id:
            self._handle = None
        self._pending.append(EngineEvent(
            EventType.CAPTURE_FAILED, handle.started_at,
            detail={"stage": "recording", "handle": handle.id, "error": str(cause)},
        ))

    def _drain(self) -> List[EngineEvent]:
        out, self._pending = self._pending, []
        return out

    def _start(self, now: float, trigger: EngineEvent) -> List[EngineEvent]:
        try:
            self._handle = self.sink.start(now)
        except CaptureStartFailed as e:
            logger.warning("Evidence capture failed to start, continuing detection only: %s", e)
            self.degraded = True
            self.last_error = str(e)
            return [EngineEvent(EventType.CAPTURE_FAILED, now, kind=trigger.kind,
                                detail={"stage": "start", "error": str(e)})]
        logger.info("Evidence capture %s started at %.2f (trigger=%s)",
                    self._handle.id, now, trigger.kind.value if trigger.kind else "-")
        return [EngineEvent(EventType.CAPTURE_STARTED, now, kind=trigger.kind,
                            detail={"handle": self._handle.id})]

    def _stop(self, now: float, reason: str) -> List[EngineEvent]:
        handle, self._handle = self._handle, None
        try:
            artifact = self.sink.stop(handle, now)
        except CaptureStopFailed as e:
            logger.warning("Evidence capture %s failed to stop cleanly: %s", handle.id, e)
            self.degraded = True
            self.last_error = str(e)
            return [EngineEvent(EventType.CAPTURE_FAILED, now,
                                detail={"stage": "stop", "handle": handle.id, "error": str(e)})]
        self.artifacts.append(artifact)
        logger.info("Evidence capture %s stopped (%s): %s, %d bytes",
                    handle.id, reason, artifact.filename, artifact.size)
        if self.on_artifact is not None:
            try:
                self.on_artifact(artifact)
            except Exception:
                logger.exception("Artifact callback failed for %s", artifact.filename)
        return [EngineEvent(EventType.CAPTURE_STOPPED, now,
                            detail={"handle": handle.id, "reason": reason, "filename": artifact.filename})]
