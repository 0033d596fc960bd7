# inference/annotate.py
import cv2
from typing import Iterable, List, Optional

from inference.types import Condition, Entity, EntityKind

COLORS = {
    EntityKind.PERSON: (0, 200, 0),
    EntityKind.SECONDARY_FACE: (0, 165, 255),
    EntityKind.RESTRICTED_OBJECT: (200, 200, 0),
}

BANNERS = {
    Condition.RESTRICTED_OBJECT: "PROHIBITED OBJECT",
    Condition.SECONDARY_SUBJECT: "ADDITIONAL PERSON",
    Condition.SUBJECT_ABSENT: "FACE NOT VISIBLE",
}


def draw_bbox(img, bbox, label=None, color=(0,255,0), thickness=2):
    x1,y1,x2,y2 = map(int, bbox)
    cv2.rectangle(img, (x1,y1), (x2,y2), color, thickness)
    if label:
        text = str(label)
        ((w,h), _) = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, 0.5, 1)
        cv2.rectangle(img, (x1, y1 - 18), (x1 + w + 4, y1), color, -1)
        cv2.putText(img, text, (x1 + 2, y1 - 4), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (0,0,0), 1)


def annotate_frame(img, entities: Optional[Iterable[Entity]] = None,
                   open_kinds: Optional[List[Condition]] = None,
                   recording: bool = False, degraded: bool = False):
    out = img.copy()
    for e in entities or []:
        draw_bbox(out, e.bbox.as_tuple(), f"{e.label} {e.confidence:.2f}", color=COLORS.get(e.kind, (0,200,0)))
    y = 28
    for kind in open_kinds or []:
        cv2.putText(out, BANNERS[kind], (10, y), cv2.FONT_HERSHEY_SIMPLEX, 0.8, (0,0,255), 2)
        y += 30
    if recording:
        cv2.circle(out, (out.shape[1] - 20, 20), 8, (0,0,255), -1)
    if degraded:
        cv2.putText(out, "DEGRADED", (10, out.shape[0] - 12), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (0,200,255), 2)
    return out
