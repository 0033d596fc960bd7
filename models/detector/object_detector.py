"""
models/detector/object_detector.py

General-object detector backed by torchvision's COCO-pretrained Faster R-CNN.
Every detection above the detector's own floor is returned as a
RESTRICTED_OBJECT candidate carrying its COCO label; whether the label is
actually restricted is decided by the condition rules, not here.

API:
    det = ObjectDetector(device='cpu', model_name='fasterrcnn_mobilenet')
    entities = det.detect(frame_bgr)
"""

from typing import List

import cv2
import numpy as np

from inference.errors import ClassifierUnavailable
from inference.types import Entity, EntityKind, Rect
from utils.logger import get_logger

try:
    import torch
    from torchvision.models import detection
    from torchvision.transforms import functional as F
    TORCH_AVAILABLE = True
except Exception:
    TORCH_AVAILABLE = False

logger = get_logger("models.detector.object_detector")

MODEL_BUILDERS = {
    "fasterrcnn": ("fasterrcnn_resnet50_fpn", "FasterRCNN_ResNet50_FPN_Weights"),
    "fasterrcnn_mobilenet": ("fasterrcnn_mobilenet_v3_large_320_fpn", "FasterRCNN_MobileNet_V3_Large_320_FPN_Weights"),
}


class ObjectDetector:
    def __init__(self, device: str = "cpu", model_name: str = "fasterrcnn_mobilenet", score_floor: float = 0.3):
        """
        Args:
            device: "cpu" or "cuda"
            model_name: key of MODEL_BUILDERS
            score_floor: detections below this score are dropped before the rules see them

        Raises:
            ClassifierUnavailable: torch/torchvision missing or the weights failed to load
        """
        if not TORCH_AVAILABLE:
            raise ClassifierUnavailable("objects", "torch/torchvision not installed")
        if model_name not in MODEL_BUILDERS:
            raise ClassifierUnavailable("objects", f"unknown model {model_name!r}")
        self.device = device
        self.model_name = model_name
        self.score_floor = score_floor
        builder_name, weights_name = MODEL_BUILDERS[model_name]
        try:
            weights = getattr(detection, weights_name).DEFAULT
            self.model = getattr(detection, builder_name)(weights=weights)
            self.model.eval()
            self.model.to(torch.device(self.device))
        except Exception as e:
            raise ClassifierUnavailable("objects", f"failed to load {model_name}: {e}")
        self.categories = list(weights.meta["categories"])
        logger.info("Loaded %s on %s (%d categories)", model_name, device, len(self.categories))

    def _label(self, label_id: int) -> str:
        if 0 <= label_id < len(self.categories):
            return self.categories[label_id]
        return f"cls_{label_id}"

    def detect(self, frame: np.ndarray) -> List[Entity]:
        """Run detection on a BGR frame (HxWx3 uint8)."""
        if frame.ndim != 3:
            raise ValueError("Input frame must be HxWxC numpy array")
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        tensor = F.to_tensor(rgb).to(torch.device(self.device))
        with torch.no_grad():
            outputs = self.model([tensor])[0]

        boxes = outputs["boxes"].cpu().numpy()
        scores = outputs["scores"].cpu().numpy()
        labels = outputs["labels"].cpu().numpy()

        entities = []
        for bbox, score, label_id in zip(boxes, scores, labels):
            if score < self.score_floor:
                continue
            x1, y1, x2, y2 = [float(v) for v in bbox]
            entities.append(Entity(
                kind=EntityKind.RESTRICTED_OBJECT,
                confidence=float(score),
                bbox=Rect(x1, y1, x2, y2),
                label=self._label(int(label_id)),
            ))
        return entities

    def warmup(self):
        """Run one dummy pass so the first real tick does not pay model start-up latency."""
        dummy = torch.zeros((3, 320, 320)).to(torch.device(self.device))
        try:
            with torch.no_grad():
                self.model([dummy])
        except RuntimeError as e:
            raise ClassifierUnavailable("objects", f"warmup failed on {self.device}: {e}")
