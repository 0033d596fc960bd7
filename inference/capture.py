"""
inference/capture.py
OpenCV-backed capture sink: frames fed between start() and stop() are encoded
into a temporary video file whose bytes become the evidence artifact.
"""

import os
import tempfile
from typing import Optional, Tuple

import cv2
import numpy as np

from inference.errors import CaptureStartFailed, CaptureStopFailed
from inference.recording import Artifact, CaptureHandle, CaptureSink, evidence_filename
from utils.logger import get_logger

logger = get_logger("inference.capture")

MIME_TYPES = {".mp4": "video/mp4", ".avi": "video/x-msvideo", ".mkv": "video/x-matroska"}


class VideoCaptureSink(CaptureSink):
    """
    Args:
        fps: output video FPS
        frame_size: (width, height); may be set later, before the first start()
        codec: FourCC codec string
        extension: container extension for the artifact filename
    """

    def __init__(self, fps: float = 10.0, frame_size: Optional[Tuple[int, int]] = None,
                 codec: str = "mp4v", extension: str = ".mp4"):
        super().__init__()
        self.fps = fps
        self.frame_size = frame_size
        self.codec = codec
        self.extension = extension
        self._writer = None
        self._path: Optional[str] = None
        self._handle: Optional[CaptureHandle] = None
        self.frames_written = 0

    def start(self, now: float) -> CaptureHandle:
        if self._writer is not None:
            raise CaptureStartFailed("capture already in progress")
        if not self.frame_size:
            raise CaptureStartFailed("frame size unknown; cannot open video writer")
        fd, path = tempfile.mkstemp(suffix=self.extension, prefix="capture_")
        os.close(fd)
        fourcc = cv2.VideoWriter_fourcc(*self.codec)
        writer = cv2.VideoWriter(path, fourcc, self.fps, tuple(int(v) for v in self.frame_size))
        if not writer.isOpened():
            writer.release()
            os.remove(path)
            raise CaptureStartFailed(f"failed to open video writer codec={self.codec} path={path}")
        self._writer = writer
        self._path = path
        self._handle = self.new_handle(now)
        self.frames_written = 0
        return self._handle

    @property
    def is_open(self) -> bool:
        return self._writer is not None

    def write(self, frame: np.ndarray) -> None:
        if self._writer is None:
            return
        w, h = self.frame_size
        try:
            if frame.shape[1] != w or frame.shape[0] != h:
                frame = cv2.resize(frame, (int(w), int(h)))
            self._writer.write(frame)
            self.frames_written += 1
        except cv2.error as e:
            handle = self._handle
            self._discard()
            self.on_error(handle, e)

    def stop(self, handle: CaptureHandle, now: float) -> Artifact:
        if self._handle is None or handle.id != self._handle.id:
            raise CaptureStopFailed(f"capture {handle.id} is not in progress")
        path = self._path
        self._writer.release()
        self._writer = None
        self._handle = None
        self._path = None
        try:
            with open(path, "rb") as fh:
                data = fh.read()
        except OSError as e:
            raise CaptureStopFailed(f"could not read encoded capture {path}: {e}")
        finally:
            if os.path.exists(path):
                os.remove(path)
        logger.debug("Capture %s finalized: %d frames, %d bytes", handle.id, self.frames_written, len(data))
        return Artifact(
            data=data,
            filename=evidence_filename(self.extension),
            started_at=handle.started_at,
            stopped_at=now,
            mime_type=MIME_TYPES.get(self.extension, "application/octet-stream"),
        )

    def _discard(self) -> None:
        if self._writer is not None:
            self._writer.release()
        if self._path and os.path.exists(self._path):
            os.remove(self._path)
        self._writer = None
        self._path = None
        self._handle = None
