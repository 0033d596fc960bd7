"""
inference/intervals.py
Ordered store of violation intervals.

Intervals are appended, extended while open and closed once; they are never
removed. Callers refer to an interval by its index in the store, never by
holding the object, so that a closed interval cannot be mutated from outside.
"""

from dataclasses import dataclass, asdict, replace
from typing import Dict, List, Optional

from inference.types import Condition
from utils.logger import get_logger

logger = get_logger("inference.intervals")


@dataclass
class ViolationInterval:
    kind: Condition
    violation_time: float
    start_time: float
    end_time: float
    score: Optional[float] = None
    closed: bool = False

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    def to_dict(self) -> Dict:
        d = asdict(self)
        d["kind"] = self.kind.value
        return d


class ViolationIntervalStore:
    def __init__(self, context_window: float = 10.0):
        self.context_window = context_window
        self._intervals: List[ViolationInterval] = []
        self._active: Dict[Condition, Optional[int]] = {c: None for c in Condition}

    def __len__(self) -> int:
        return len(self._intervals)

    def _resolve(self, kind: Condition) -> Optional[int]:
        """Dereference the active pointer for kind, clearing it if stale."""
        idx = self._active.get(kind)
        if idx is None:
            return None
        if 0 <= idx < len(self._intervals):
            iv = self._intervals[idx]
            if iv.kind == kind and not iv.closed:
                return idx
        logger.warning("Clearing stale active pointer kind=%s index=%s", kind.value, idx)
        self._active[kind] = None
        return None

    def active_index(self, kind: Condition) -> Optional[int]:
        return self._resolve(kind)

    def is_open(self, kind: Condition) -> bool:
        return self._resolve(kind) is not None

    def open_kinds(self) -> List[Condition]:
        return [k for k in Condition if self._resolve(k) is not None]

    def open(self, kind: Condition, now: float, score: Optional[float] = None) -> int:
        if self._resolve(kind) is not None:
            raise RuntimeError(f"{kind.value} already has an open interval")
        iv = ViolationInterval(
            kind=kind,
            violation_time=now,
            start_time=now - self.context_window,
            end_time=now + self.context_window,
            score=score,
        )
        self._intervals.append(iv)
        idx = len(self._intervals) - 1
        self._active[kind] = idx
        return idx

    def extend(self, kind: Condition, now: float, score: Optional[float] = None) -> Optional[int]:
        idx = self._resolve(kind)
        if idx is None:
            return None
        iv = self._intervals[idx]
        # end_time never moves backwards while the interval is open
        iv.end_time = max(iv.end_time, now)
        if score is not None:
            iv.score = score
        return idx

    def close(self, kind: Condition, now: float) -> Optional[int]:
        """Close the open interval of kind. No-op when nothing is open."""
        idx = self._resolve(kind)
        if idx is None:
            return None
        iv = self._intervals[idx]
        iv.end_time = now
        iv.closed = True
        self._active[kind] = None
        return idx

    def get(self, index: int) -> ViolationInterval:
        """Copy of the interval at index."""
        return replace(self._intervals[index])

    def snapshot(self) -> List[ViolationInterval]:
        return [replace(iv) for iv in self._intervals]

    def export(self) -> List[Dict]:
        """Full violation log in append (chronological) order."""
        return [iv.to_dict() for iv in self._intervals]

    def clear(self) -> None:
        self._intervals = []
        self._active = {c: None for c in Condition}
