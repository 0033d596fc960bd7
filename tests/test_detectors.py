"""Tests for the bundled detectors and frame annotation that do not need model weights."""

import numpy as np
import pytest

from conftest import face, obj
from inference.annotate import annotate_frame
from inference.errors import ClassifierUnavailable
from inference.types import Condition
from models.detector.face_detector import FaceDetector
from models.detector.object_detector import ObjectDetector


class TestFaceDetector:
    def test_blank_frame_has_no_faces(self):
        det = FaceDetector()
        assert det.detect(np.zeros((240, 320, 3), dtype=np.uint8)) == []

    def test_grayscale_input(self):
        det = FaceDetector()
        assert det.detect(np.zeros((240, 320), dtype=np.uint8)) == []

    def test_missing_cascade(self, tmp_path):
        with pytest.raises(ClassifierUnavailable) as exc:
            FaceDetector(cascade_path=str(tmp_path / "missing.xml"))
        assert exc.value.channel == "presence"


class TestObjectDetector:
    def test_unknown_model(self):
        with pytest.raises(ClassifierUnavailable) as exc:
            ObjectDetector(model_name="yolo9000")
        assert exc.value.channel == "objects"


class TestAnnotate:
    def test_draws_on_copy(self):
        img = np.zeros((120, 160, 3), dtype=np.uint8)
        out = annotate_frame(img, [face(x=20), obj(bbox=(60, 40, 100, 100))],
                             [Condition.RESTRICTED_OBJECT], recording=True, degraded=True)
        assert out.shape == img.shape
        assert out.any()
        assert not img.any()

    def test_nothing_to_draw(self):
        img = np.zeros((60, 80, 3), dtype=np.uint8)
        assert not annotate_frame(img).any()
