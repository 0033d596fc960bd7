"""Tests for the consecutive-run tracker and debounce gate."""

from inference.temporal_validator import ConsecutiveRunTracker, DebounceGate
from inference.types import Condition

REQ = {Condition.RESTRICTED_OBJECT: 2, Condition.SECONDARY_SUBJECT: 3, Condition.SUBJECT_ABSENT: 4}


class TestConsecutiveRunTracker:
    def test_counts_same_candidate(self):
        tr = ConsecutiveRunTracker(REQ)
        assert tr.observe(Condition.SUBJECT_ABSENT) == (None, True)
        assert tr.observe(Condition.SUBJECT_ABSENT) == (Condition.SUBJECT_ABSENT, False)
        assert tr.state.consecutive_count == 2
        assert not tr.is_confirmed(Condition.SUBJECT_ABSENT)
        tr.observe(Condition.SUBJECT_ABSENT)
        tr.observe(Condition.SUBJECT_ABSENT)
        assert tr.is_confirmed(Condition.SUBJECT_ABSENT)

    def test_change_restarts_run(self):
        tr = ConsecutiveRunTracker(REQ)
        tr.observe(Condition.SECONDARY_SUBJECT)
        tr.observe(Condition.SECONDARY_SUBJECT)
        prev, changed = tr.observe(Condition.RESTRICTED_OBJECT)
        assert prev == Condition.SECONDARY_SUBJECT and changed
        assert tr.state.active_kind == Condition.RESTRICTED_OBJECT
        assert tr.state.consecutive_count == 1

    def test_none_clears(self):
        tr = ConsecutiveRunTracker(REQ)
        tr.observe(Condition.RESTRICTED_OBJECT)
        prev, changed = tr.observe(None)
        assert prev == Condition.RESTRICTED_OBJECT and changed
        assert tr.state.active_kind is None and tr.state.consecutive_count == 0
        assert tr.observe(None) == (None, True)

    def test_confirmation_only_for_active_kind(self):
        tr = ConsecutiveRunTracker(REQ)
        tr.observe(Condition.RESTRICTED_OBJECT)
        tr.observe(Condition.RESTRICTED_OBJECT)
        assert tr.is_confirmed(Condition.RESTRICTED_OBJECT)
        assert not tr.is_confirmed(Condition.SUBJECT_ABSENT)
        assert not tr.is_confirmed(None)


class TestDebounceGate:
    def test_first_open_allowed(self):
        gate = DebounceGate(5.0, [Condition.RESTRICTED_OBJECT])
        assert gate.allows(Condition.RESTRICTED_OBJECT, 0.0, has_open=False)

    def test_window(self):
        gate = DebounceGate(5.0, [Condition.RESTRICTED_OBJECT])
        gate.record_open(Condition.RESTRICTED_OBJECT, 10.0)
        assert not gate.allows(Condition.RESTRICTED_OBJECT, 14.9, has_open=False)
        assert gate.allows(Condition.RESTRICTED_OBJECT, 15.0, has_open=False)

    def test_open_interval_never_gated(self):
        gate = DebounceGate(5.0, [Condition.RESTRICTED_OBJECT])
        gate.record_open(Condition.RESTRICTED_OBJECT, 10.0)
        assert gate.allows(Condition.RESTRICTED_OBJECT, 11.0, has_open=True)

    def test_other_kinds_ungated(self):
        gate = DebounceGate(5.0, [Condition.RESTRICTED_OBJECT])
        gate.record_open(Condition.SUBJECT_ABSENT, 10.0)
        assert gate.last_opened_at(Condition.SUBJECT_ABSENT) is None
        assert gate.allows(Condition.SUBJECT_ABSENT, 10.5, has_open=False)

    def test_reset(self):
        gate = DebounceGate(5.0, [Condition.RESTRICTED_OBJECT])
        gate.record_open(Condition.RESTRICTED_OBJECT, 10.0)
        gate.reset()
        assert gate.allows(Condition.RESTRICTED_OBJECT, 10.1, has_open=False)
