# inference/types.py
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple

PRESENCE_CHANNEL = "presence"
OBJECTS_CHANNEL = "objects"
ALL_CHANNELS = frozenset({PRESENCE_CHANNEL, OBJECTS_CHANNEL})


class EntityKind(str, Enum):
    PERSON = "person"
    SECONDARY_FACE = "secondary_face"
    RESTRICTED_OBJECT = "restricted_object"


class Condition(str, Enum):
    """Monitored anomaly kinds. Declaration order is the per-tick precedence."""
    RESTRICTED_OBJECT = "restricted_object"
    SECONDARY_SUBJECT = "secondary_subject"
    SUBJECT_ABSENT = "subject_absent"


PRECEDENCE: Tuple[Condition, ...] = tuple(Condition)

# detector channel each condition depends on
CONDITION_CHANNEL = {
    Condition.RESTRICTED_OBJECT: OBJECTS_CHANNEL,
    Condition.SECONDARY_SUBJECT: PRESENCE_CHANNEL,
    Condition.SUBJECT_ABSENT: PRESENCE_CHANNEL,
}


@dataclass(frozen=True)
class Rect:
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self) -> float:
        return max(0.0, self.x2 - self.x1)

    @property
    def height(self) -> float:
        return max(0.0, self.y2 - self.y1)

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height if self.height > 0 else 0.0

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x1, self.y1, self.x2, self.y2)

    @classmethod
    def from_xywh(cls, x: float, y: float, w: float, h: float) -> "Rect":
        return cls(float(x), float(y), float(x + w), float(y + h))


@dataclass(frozen=True)
class Entity:
    """One detection from one detector for one tick."""
    kind: EntityKind
    confidence: float
    bbox: Rect
    label: str = ""


@dataclass
class FrameSample:
    """
    Raw classifier output for one tick.

    Attributes:
        timestamp: tick instant in seconds
        entities: detections from every detector that answered this tick
        frame_size: (width, height) of the analysed frame, if known
        channels: detector channels that produced output this tick
    """
    timestamp: float
    entities: List[Entity] = field(default_factory=list)
    frame_size: Optional[Tuple[int, int]] = None
    channels: FrozenSet[str] = ALL_CHANNELS

    def of_kind(self, *kinds: EntityKind) -> List[Entity]:
        return [e for e in self.entities if e.kind in kinds]
