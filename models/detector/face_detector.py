"""
models/detector/face_detector.py

Presence detector using OpenCV's bundled Haar frontal-face cascade. The most
confident face is reported as PERSON, every other face as SECONDARY_FACE.
"""

from typing import List, Optional

import cv2
import numpy as np

from inference.errors import ClassifierUnavailable
from inference.types import Entity, EntityKind, Rect
from utils.logger import get_logger

logger = get_logger("models.detector.face_detector")

DEFAULT_CASCADE = "haarcascade_frontalface_default.xml"


class FaceDetector:
    def __init__(self, cascade_path: Optional[str] = None, scale_factor: float = 1.1,
                 min_neighbors: int = 5, min_size=(40, 40)):
        path = cascade_path or (cv2.data.haarcascades + DEFAULT_CASCADE)
        self.cascade = cv2.CascadeClassifier(path)
        if self.cascade.empty():
            raise ClassifierUnavailable("presence", f"could not load cascade {path}")
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.min_size = tuple(min_size)

    def detect(self, frame: np.ndarray) -> List[Entity]:
        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY) if frame.ndim == 3 else frame
        faces, _, weights = self.cascade.detectMultiScale3(
            gray,
            scaleFactor=self.scale_factor,
            minNeighbors=self.min_neighbors,
            minSize=self.min_size,
            outputRejectLevels=True,
        )
        if len(faces) == 0:
            return []
        # cascade level weights are unbounded; squash to (0, 1) for thresholding
        conf = [float(1.0 / (1.0 + np.exp(-float(w)))) for w in np.ravel(weights)]
        order = sorted(range(len(faces)), key=lambda i: conf[i], reverse=True)
        out = []
        for rank, i in enumerate(order):
            x, y, w, h = faces[i]
            out.append(Entity(
                kind=EntityKind.PERSON if rank == 0 else EntityKind.SECONDARY_FACE,
                confidence=conf[i],
                bbox=Rect.from_xywh(x, y, w, h),
                label="face",
            ))
        return out
