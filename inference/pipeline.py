# inference/pipeline.py
import os
import time
from typing import Dict, Generator, List, Optional, Set, Union

import cv2
import numpy as np

from inference.annotate import annotate_frame
from inference.capture import VideoCaptureSink
from inference.config import EngineConfig
from inference.errors import ClassifierUnavailable
from inference.events import EngineEvent, EventBus, EventType
from inference.recording import Artifact
from inference.sampler import DetectorRunner
from inference.session import MonitoringSession
from db.violation_log import save_artifact, save_session_log
from utils.fileops import ensure_dir, make_unique_filename, safe_join, save_image_pil
from utils.logger import get_logger

logger = get_logger("inference.pipeline")

EVIDENCE_DIR = os.getenv("EVIDENCE_DIR", "evidence_store")

# running sessions of this process, for status pages; removed once finalized
ACTIVE_SESSIONS: Dict[str, MonitoringSession] = {}


def load_detectors(device: str = "cpu", object_model: str = "fasterrcnn_mobilenet"):
    """
    Load the presence and general-object detectors. A detector that fails to
    load comes back as None; the session then runs without its conditions.
    """
    from models.detector.face_detector import FaceDetector
    from models.detector.object_detector import ObjectDetector

    presence, objects = None, None
    try:
        presence = FaceDetector()
    except ClassifierUnavailable as e:
        logger.error("Presence detection disabled: %s", e)
    try:
        detector = ObjectDetector(device=device, model_name=object_model)
        detector.warmup()
        objects = detector
    except ClassifierUnavailable as e:
        logger.error("Object detection disabled: %s", e)
    return presence, objects


class InferencePipeline:
    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        detector_device: str = "cpu",
        detector_name: str = "fasterrcnn_mobilenet",
        detectors=None,
        record: bool = True,
        persist: bool = True,
        notifier=None,
        evidence_dir: str = EVIDENCE_DIR,
        session_factory=None,
    ):
        """
        Args:
            config: engine configuration (validated on construction)
            detector_device / detector_name: used when detectors is None
            detectors: (presence, objects) pair to use instead of loading models
            record: capture video evidence when a violation opens
            persist: write the violation log and evidence to the database
            notifier: optional NotificationService subscribed to engine events
        """
        self.config = config or EngineConfig()
        if detectors is None:
            detectors = load_detectors(detector_device, detector_name)
        self.presence_detector, self.object_detector = detectors
        self.record = record
        self.persist = persist
        self.notifier = notifier
        self.evidence_dir = evidence_dir
        self.session_factory = session_factory
        self.snapshot_dir = os.path.join(evidence_dir, "snapshots")
        self.last_session: Optional[MonitoringSession] = None
        # session_id -> indices of intervals whose alert went out
        self._notified: Dict[str, Set[int]] = {}

    def new_session(self, fps: float = 10.0, frame_size=None, live: bool = False) -> MonitoringSession:
        """
        Args:
            fps: source frame rate, used for the evidence video
            frame_size: (width, height) of the source, if known
            live: timer-driven ticks; only ticked frames reach the capture
                sink, so evidence is encoded at the tick rate instead of fps
        """
        runner = DetectorRunner(self.presence_detector, self.object_detector, budget=self.config.detector_budget)
        if live:
            fps = 1.0 / self.config.tick_interval
        sink = VideoCaptureSink(fps=fps, frame_size=frame_size) if self.record else None
        bus = EventBus()
        notified: Set[int] = set()
        if self.notifier is not None:
            def _alert(event: EngineEvent) -> None:
                if event.type == EventType.OPENED and self.notifier.notify_opened(event):
                    notified.add(event.index)
            bus.subscribe(_alert)
        session = MonitoringSession(self.config, runner, sink=sink, bus=bus)
        self._notified[session.session_id] = notified
        session.recorder.on_artifact = lambda a, sid=session.session_id: self._store_artifact(sid, a)
        ACTIVE_SESSIONS[session.session_id] = session
        self.last_session = session
        return session

    def _store_artifact(self, session_id: str, artifact: Artifact) -> None:
        if not self.persist:
            return
        path = save_artifact(session_id, artifact, self.evidence_dir, session_factory=self.session_factory)
        if path:
            logger.info("Evidence for session %s stored at %s", session_id, path)

    def _save_snapshot(self, session_id: str, frame: np.ndarray, event: EngineEvent) -> Optional[str]:
        try:
            fname = make_unique_filename(prefix=f"{session_id}_{event.kind.value}")
            path = safe_join(self.snapshot_dir, fname)
            save_image_pil(frame, path)
            return path
        except (OSError, ValueError) as e:
            logger.exception("Failed to save snapshot for %s: %s", event.kind.value, e)
            return None

    def finalize(self, session: MonitoringSession, now: float, video_source=None) -> List[Artifact]:
        artifacts = session.stop(now)
        ACTIVE_SESSIONS.pop(session.session_id, None)
        notified = self._notified.pop(session.session_id, set())
        if self.persist:
            save_session_log(session.session_id, session.export(), video_source=video_source,
                             session_factory=self.session_factory, notified=notified)
        return artifacts

    def process_video(self, video_source: Union[str, int]) -> Generator[bytes, None, None]:
        """
        Run a session over a video file, stream URL or camera index and yield
        annotated JPEG frames. The session is finalized when the source ends or
        the consumer closes the generator.
        """
        self.last_session = None
        cap = cv2.VideoCapture(video_source)
        if not cap.isOpened():
            logger.error("Unable to open video source: %s", video_source)
            return
        fps = cap.get(cv2.CAP_PROP_FPS) or 10.0
        width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)) or None
        height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)) or None
        is_camera = isinstance(video_source, int)
        session = self.new_session(fps=fps, frame_size=(width, height) if width and height else None)
        logger.info("Session %s started on %s (fps=%.1f)", session.session_id, video_source, fps)
        if self.persist:
            ensure_dir(self.snapshot_dir)

        next_tick = None
        frame_idx = 0
        ts = time.time() if is_camera else 0.0
        try:
            while True:
                ret, frame = cap.read()
                if not ret:
                    break
                # files are timed by frame position so replays are deterministic
                ts = time.time() if is_camera else frame_idx / fps
                frame_idx += 1
                if session.sink is not None and not session.sink.frame_size:
                    session.sink.frame_size = (frame.shape[1], frame.shape[0])

                if next_tick is None or ts + 1e-6 >= next_tick:
                    next_tick = ts + self.config.tick_interval
                    events = session.process_frame(frame, ts)
                    if self.persist:
                        for e in events:
                            if e.type == EventType.OPENED:
                                self._save_snapshot(session.session_id, frame, e)
                session.feed(frame)

                entities = session.last_sample.entities if session.last_sample is not None else []
                status = session.status()
                annotated = annotate_frame(frame, entities, session.engine.open_kinds(),
                                           recording=status["recording"], degraded=status["degraded"])
                _, jpg = cv2.imencode(".jpg", annotated, [int(cv2.IMWRITE_JPEG_QUALITY), 80])
                yield jpg.tobytes()
        finally:
            cap.release()
            self.finalize(session, ts, video_source=video_source)

    def run(self, video_source: Union[str, int]) -> Dict:
        """Headless run; returns the session status and its exported log."""
        for _ in self.process_video(video_source):
            pass
        session = self.last_session
        if session is None:
            return {"status": None, "violations": [], "artifacts": []}
        return {
            "status": session.status(),
            "violations": session.export(),
            "artifacts": [a.filename for a in session.recorder.artifacts],
        }
