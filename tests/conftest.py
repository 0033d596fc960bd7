import os

# db.session builds its engine at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest

from inference.config import EngineConfig
from inference.recording import Artifact, CaptureSink
from inference.errors import CaptureStartFailed, CaptureStopFailed
from inference.types import ALL_CHANNELS, Condition, Entity, EntityKind, FrameSample, Rect


def face(conf=0.9, secondary=False, x=200):
    kind = EntityKind.SECONDARY_FACE if secondary else EntityKind.PERSON
    return Entity(kind, conf, Rect(x, 100, x + 80, 190), "face")


def obj(label="cell phone", conf=0.7, bbox=(100, 100, 160, 220)):
    return Entity(EntityKind.RESTRICTED_OBJECT, conf, Rect(*bbox), label)


def make_sample(t, faces=1, objects=(), frame_size=(640, 480), channels=ALL_CHANNELS):
    entities = [face(secondary=i > 0, x=50 + 120 * i) for i in range(faces)]
    entities.extend(objects)
    return FrameSample(timestamp=float(t), entities=entities, frame_size=frame_size, channels=frozenset(channels))


class FakeSink(CaptureSink):
    def __init__(self, fail_start=False, fail_stop=False):
        super().__init__()
        self.fail_start = fail_start
        self.fail_stop = fail_stop
        self.started = []
        self.stopped = []
        self.frames = 0
        self._current = None

    def start(self, now):
        if self.fail_start:
            raise CaptureStartFailed("codec negotiation failed")
        self._current = self.new_handle(now)
        self.started.append(self._current)
        return self._current

    def write(self, frame):
        if self._current is not None:
            self.frames += 1

    def stop(self, handle, now):
        self._current = None
        if self.fail_stop:
            raise CaptureStopFailed("flush failed")
        self.stopped.append(handle)
        return Artifact(b"fake-bytes", f"evidence_{handle.id}.mp4", handle.started_at, now, "video/mp4")


@pytest.fixture
def config():
    return EngineConfig(
        required_consecutive={
            Condition.RESTRICTED_OBJECT: 2,
            Condition.SECONDARY_SUBJECT: 3,
            Condition.SUBJECT_ABSENT: 20,
        },
        debounce_window=5.0,
    )


@pytest.fixture
def fake_sink():
    return FakeSink()
