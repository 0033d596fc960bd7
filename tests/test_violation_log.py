"""Tests for persisting violation logs and evidence with SQLAlchemy (in-memory sqlite)."""

import os

import pytest

from db.models import NotificationLog
from db.session import make_session_factory
from db.violation_log import (
    list_violations,
    save_artifact,
    save_session_log,
    session_artifacts,
    session_violations,
)
from inference.recording import Artifact
from alerts.mock_sms import send_sms


@pytest.fixture
def factory():
    return make_session_factory("sqlite://")


def interval(kind, t, closed=True, score=None):
    return {"kind": kind, "violation_time": t, "start_time": t - 10, "end_time": t + 1,
            "score": score, "closed": closed}


class TestSessionLog:
    def test_save_and_read_back_in_order(self, factory):
        log = [interval("subject_absent", 20.0), interval("restricted_object", 30.0, score=0.8, closed=False)]
        assert save_session_log("abc", log, video_source="exam.mp4", session_factory=factory) == 2
        rows = session_violations("abc", session_factory=factory)
        assert [r["kind"] for r in rows] == ["subject_absent", "restricted_object"]
        assert [r["sequence"] for r in rows] == [0, 1]
        assert rows[1]["score"] == pytest.approx(0.8)
        assert rows[1]["closed"] is False
        assert rows[0]["video_source"] == "exam.mp4"

    def test_save_replaces_previous_log(self, factory):
        save_session_log("abc", [interval("subject_absent", 1.0)] * 3, session_factory=factory)
        save_session_log("abc", [interval("secondary_subject", 5.0)], session_factory=factory)
        rows = session_violations("abc", session_factory=factory)
        assert len(rows) == 1 and rows[0]["kind"] == "secondary_subject"

    def test_list_filters_and_limits(self, factory):
        save_session_log("a", [interval("subject_absent", 1.0), interval("restricted_object", 2.0)],
                         session_factory=factory)
        save_session_log("b", [interval("restricted_object", 3.0)], session_factory=factory)
        phones = list_violations(kind="restricted_object", session_factory=factory)
        assert [r["session_id"] for r in phones] == ["b", "a"]
        assert len(list_violations(limit=1, session_factory=factory)) == 1

    def test_unknown_session_is_empty(self, factory):
        assert session_violations("nope", session_factory=factory) == []

    def test_database_error_returns_zero(self):
        broken = make_session_factory("sqlite://", create_tables=False)
        assert save_session_log("abc", [interval("subject_absent", 1.0)], session_factory=broken) == 0
        assert list_violations(session_factory=broken) == []


class TestArtifacts:
    def test_save_artifact_writes_file_and_row(self, factory, tmp_path):
        art = Artifact(b"\x00\x01video", "evidence_20261017T094501Z.mp4", 2.0, 32.0, "video/mp4")
        path = save_artifact("abc", art, str(tmp_path), session_factory=factory)
        assert os.path.basename(path) == "abc_evidence_20261017T094501Z.mp4"
        with open(path, "rb") as fh:
            assert fh.read() == b"\x00\x01video"
        rows = session_artifacts("abc", session_factory=factory)
        assert len(rows) == 1
        assert rows[0]["size_bytes"] == 7
        assert rows[0]["mime_type"] == "video/mp4"
        assert rows[0]["stopped_at"] == 32.0

    def test_traversal_in_filename_rejected(self, factory, tmp_path):
        art = Artifact(b"x", "../../escape.mp4", 0.0, 1.0)
        assert save_artifact("..", art, str(tmp_path / "ev"), session_factory=factory) is None


class TestMockSms:
    def test_logs_notification(self, factory):
        assert send_sms("+15550100", "hello", session_factory=factory) is True
        session = factory()
        try:
            rows = session.query(NotificationLog).all()
            assert len(rows) == 1 and rows[0].mock is True
        finally:
            session.close()


class TestNotificationFlag:
    def test_marks_only_notified_intervals(self, factory):
        log = [interval("subject_absent", 1.0), interval("restricted_object", 5.0)]
        save_session_log("n1", log, session_factory=factory, notified={1})
        rows = session_violations("n1", session_factory=factory)
        assert [r["notification_sent"] for r in rows] == [False, True]

    def test_default_is_not_sent(self, factory):
        save_session_log("n2", [interval("subject_absent", 1.0)], session_factory=factory)
        assert session_violations("n2", session_factory=factory)[0]["notification_sent"] is False
