"""Tests for the violation interval store."""

import pytest

from inference.intervals import ViolationIntervalStore
from inference.types import Condition

PHONE = Condition.RESTRICTED_OBJECT
ABSENT = Condition.SUBJECT_ABSENT


@pytest.fixture
def store():
    return ViolationIntervalStore(context_window=10.0)


class TestOpenExtendClose:
    def test_open_brackets_confirmation(self, store):
        idx = store.open(PHONE, 50.0, score=0.8)
        iv = store.get(idx)
        assert (iv.violation_time, iv.start_time, iv.end_time) == (50.0, 40.0, 60.0)
        assert iv.score == 0.8 and not iv.closed
        assert store.active_index(PHONE) == idx

    def test_open_twice_raises(self, store):
        store.open(PHONE, 1.0)
        with pytest.raises(RuntimeError):
            store.open(PHONE, 2.0)

    def test_kinds_are_independent(self, store):
        a = store.open(PHONE, 1.0)
        b = store.open(ABSENT, 2.0)
        assert a != b
        assert store.open_kinds() == [PHONE, ABSENT]

    def test_extend_never_moves_end_backwards(self, store):
        store.open(PHONE, 1.0)
        store.extend(PHONE, 3.0, score=0.9)
        iv = store.get(0)
        assert iv.end_time == 11.0
        assert iv.score == 0.9
        store.extend(PHONE, 20.0)
        assert store.get(0).end_time == 20.0
        assert store.get(0).score == 0.9

    def test_extend_without_open_is_noop(self, store):
        assert store.extend(PHONE, 3.0) is None
        assert len(store) == 0

    def test_close_sets_end_and_is_idempotent(self, store):
        store.open(PHONE, 5.0)
        assert store.close(PHONE, 6.0) == 0
        assert store.close(PHONE, 9.0) is None
        iv = store.get(0)
        assert iv.closed and iv.end_time == 6.0
        assert not store.is_open(PHONE)

    def test_reopen_appends_fresh_interval(self, store):
        store.open(PHONE, 5.0)
        store.close(PHONE, 6.0)
        idx = store.open(PHONE, 20.0)
        assert idx == 1
        assert store.get(0).end_time == 6.0
        assert store.get(1).start_time == 10.0


class TestIntegrity:
    def test_stale_pointer_is_cleared(self, store):
        store._active[PHONE] = 5
        assert store.active_index(PHONE) is None
        assert store._active[PHONE] is None
        # and opening works afterwards
        assert store.open(PHONE, 1.0) == 0

    def test_pointer_to_wrong_kind_is_cleared(self, store):
        store.open(ABSENT, 1.0)
        store._active[PHONE] = 0
        assert not store.is_open(PHONE)
        assert store.is_open(ABSENT)

    def test_get_returns_copy(self, store):
        store.open(PHONE, 1.0)
        copy = store.get(0)
        copy.end_time = 999.0
        copy.closed = True
        assert store.get(0).end_time == 11.0
        assert store.is_open(PHONE)

    def test_snapshot_is_independent(self, store):
        store.open(PHONE, 1.0)
        snap = store.snapshot()
        store.extend(PHONE, 30.0)
        assert snap[0].end_time == 11.0

    def test_export_order_and_format(self, store):
        store.open(ABSENT, 1.0)
        store.open(PHONE, 2.0, score=0.7)
        store.close(ABSENT, 3.0)
        out = store.export()
        assert [d["kind"] for d in out] == ["subject_absent", "restricted_object"]
        assert set(out[0]) == {"kind", "violation_time", "start_time", "end_time", "score", "closed"}
        assert out[0]["closed"] is True and out[1]["closed"] is False

    def test_clear(self, store):
        store.open(PHONE, 1.0)
        store.clear()
        assert len(store) == 0
        assert store.open_kinds() == []
