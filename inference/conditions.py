"""
inference/conditions.py
Per-tick condition rules. Each rule reduces a FrameSample to at most one
ConditionResult for its condition and has no side effects.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from inference.config import EngineConfig
from inference.types import (
    CONDITION_CHANNEL,
    PRECEDENCE,
    Condition,
    Entity,
    EntityKind,
    FrameSample,
)


@dataclass(frozen=True)
class ConditionResult:
    condition: Condition
    score: Optional[float] = None
    extra: Dict[str, Any] = field(default_factory=dict)


def _qualifying_subjects(sample: FrameSample, config: EngineConfig):
    return [
        e for e in sample.of_kind(EntityKind.PERSON, EntityKind.SECONDARY_FACE)
        if e.confidence >= config.presence_confidence
    ]


def subject_absent(sample: FrameSample, config: EngineConfig) -> Optional[ConditionResult]:
    if _qualifying_subjects(sample, config):
        return None
    return ConditionResult(Condition.SUBJECT_ABSENT)


def secondary_subject_present(sample: FrameSample, config: EngineConfig) -> Optional[ConditionResult]:
    # score is the face count: severity, not classifier certainty
    count = len(_qualifying_subjects(sample, config))
    if count <= 1:
        return None
    return ConditionResult(Condition.SECONDARY_SUBJECT, score=float(count), extra={"count": count})


def is_plausible(entity: Entity, frame_size: Optional[Tuple[int, int]], config: EngineConfig) -> bool:
    """Reject boxes whose size or shape cannot be a real object."""
    box = entity.bbox
    if box.width <= 0 or box.height <= 0:
        return False
    if not config.aspect_ratio_min <= box.aspect_ratio <= config.aspect_ratio_max:
        return False
    if frame_size:
        w, h = frame_size
        frame_area = float(w * h)
        if frame_area > 0:
            ratio = box.area / frame_area
            if not config.area_ratio_min <= ratio <= config.area_ratio_max:
                return False
    return True


def restricted_object_present(sample: FrameSample, config: EngineConfig) -> Optional[ConditionResult]:
    best = None
    for e in sample.of_kind(EntityKind.RESTRICTED_OBJECT):
        if e.label.strip().lower() not in config.restricted_labels:
            continue
        if e.confidence <= config.object_confidence:
            continue
        if not is_plausible(e, sample.frame_size, config):
            continue
        if best is None or e.confidence > best.confidence:
            best = e
    if best is None:
        return None
    return ConditionResult(
        Condition.RESTRICTED_OBJECT,
        score=best.confidence,
        extra={"label": best.label, "bbox": best.bbox.as_tuple()},
    )


RULES = {
    Condition.RESTRICTED_OBJECT: restricted_object_present,
    Condition.SECONDARY_SUBJECT: secondary_subject_present,
    Condition.SUBJECT_ABSENT: subject_absent,
}


def evaluate_conditions(sample: FrameSample, config: EngineConfig, disabled=()) -> Dict[Condition, ConditionResult]:
    """
    Run every rule whose detector channel answered this tick.

    Args:
        sample: raw detections for the tick
        config: thresholds and plausibility bounds
        disabled: conditions to skip (e.g. their detector never loaded)

    Returns:
        dict of condition -> result, only for conditions that are true
    """
    results = {}
    for cond in PRECEDENCE:
        if cond in disabled or CONDITION_CHANNEL[cond] not in sample.channels:
            continue
        res = RULES[cond](sample, config)
        if res is not None:
            results[cond] = res
    return results


def select_candidate(results: Dict[Condition, ConditionResult]) -> Tuple[Optional[Condition], Optional[ConditionResult]]:
    """Pick the single tracked condition for the tick, first in precedence order."""
    for cond in PRECEDENCE:
        if cond in results:
            return cond, results[cond]
    return None, None
