# inference/temporal_validator.py
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from inference.types import Condition


@dataclass
class ConditionState:
    active_kind: Optional[Condition] = None
    consecutive_count: int = 0


class ConsecutiveRunTracker:
    """
    Counts how many ticks in a row the same candidate condition was observed.

    Only one candidate is tracked at a time. A different candidate (or none)
    restarts the run; the caller closes whatever the previous kind had open.
    """

    def __init__(self, required: Dict[Condition, int]):
        self.required = dict(required)
        self.state = ConditionState()

    def observe(self, candidate: Optional[Condition]) -> Tuple[Optional[Condition], bool]:
        """Returns (previous active kind, whether the active kind changed)."""
        previous = self.state.active_kind
        if candidate is not None and candidate == previous:
            self.state.consecutive_count += 1
            return previous, False
        self.state = ConditionState(candidate, 1 if candidate is not None else 0)
        return previous, True

    def is_confirmed(self, kind: Optional[Condition]) -> bool:
        if kind is None or kind != self.state.active_kind:
            return False
        return self.state.consecutive_count >= self.required[kind]

    def reset(self) -> None:
        self.state = ConditionState()


class DebounceGate:
    """Minimum spacing between newly opened intervals of the same kind."""

    def __init__(self, window: float, kinds: Iterable[Condition]):
        self.window = window
        self.kinds = frozenset(kinds)
        self._last_opened_at: Dict[Condition, float] = {}

    def allows(self, kind: Condition, now: float, has_open: bool) -> bool:
        # never gates an interval that is already open
        if has_open or kind not in self.kinds:
            return True
        last = self._last_opened_at.get(kind)
        if last is None:
            return True
        return now - last >= self.window

    def record_open(self, kind: Condition, now: float) -> None:
        if kind in self.kinds:
            self._last_opened_at[kind] = now

    def last_opened_at(self, kind: Condition) -> Optional[float]:
        return self._last_opened_at.get(kind)

    def reset(self) -> None:
        self._last_opened_at.clear()
