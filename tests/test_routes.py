"""Tests for the Flask endpoints."""

import pytest

from db.session import make_session_factory
from db.violation_log import save_session_log
from inference.pipeline import ACTIVE_SESSIONS
from inference.sampler import DetectorRunner
from inference.session import MonitoringSession
from web_app.app import create_app
from web_app.routes import _parse_video_source


class FakePipeline:
    def __init__(self):
        self.sources = []

    def process_video(self, src):
        self.sources.append(src)
        yield b"jpeg-1"
        yield b"jpeg-2"


@pytest.fixture
def factory():
    return make_session_factory("sqlite://")


@pytest.fixture
def pipeline():
    return FakePipeline()


@pytest.fixture
def client(tmp_path, factory, pipeline):
    app = create_app(pipeline_factory=lambda: pipeline, session_factory=factory, evidence_dir=str(tmp_path))
    app.config["TESTING"] = True
    return app.test_client()


class TestParseVideoSource:
    @pytest.mark.parametrize("raw,expected", [
        ("0", 0),
        (" 2 ", 2),
        ("camera:1", 1),
        ("exam.mp4", "exam.mp4"),
        ("rtsp://cam/1", "rtsp://cam/1"),
        (None, None),
    ])
    def test_parse(self, raw, expected):
        assert _parse_video_source(raw) == expected


class TestStream:
    def test_streams_multipart_frames(self, client, pipeline):
        resp = client.get("/stream?src=camera:0")
        assert resp.status_code == 200
        assert resp.mimetype == "multipart/x-mixed-replace"
        assert resp.data.count(b"--frame") == 2
        assert b"jpeg-2" in resp.data
        assert pipeline.sources == [0]

    def test_missing_source(self, client):
        assert client.get("/stream").status_code == 400


class TestViolations:
    def test_lists_stored_violations(self, client, factory):
        save_session_log("s1", [
            {"kind": "subject_absent", "violation_time": 20.0, "start_time": 10.0, "end_time": 25.0,
             "score": None, "closed": True},
        ], session_factory=factory)
        data = client.get("/violations").get_json()
        assert len(data) == 1 and data[0]["kind"] == "subject_absent"
        assert client.get("/violations?kind=restricted_object").get_json() == []

    def test_stored_session_log(self, client, factory):
        save_session_log("s2", [
            {"kind": "restricted_object", "violation_time": 2.0, "start_time": -8.0, "end_time": 3.0,
             "score": 0.7, "closed": True},
        ], session_factory=factory)
        data = client.get("/sessions/s2/violations").get_json()
        assert data["live"] is False
        assert data["violations"][0]["start_time"] == -8.0
        assert data["artifacts"] == []

    def test_live_session_log(self, client, monkeypatch):
        session = MonitoringSession(runner=DetectorRunner(None, None), session_id="live1")
        monkeypatch.setitem(ACTIVE_SESSIONS, "live1", session)
        data = client.get("/sessions/live1/violations").get_json()
        assert data == {"session_id": "live1", "live": True, "violations": []}
        status = client.get("/status").get_json()
        assert any(s["session_id"] == "live1" and s["degraded"] for s in status)


class TestDownload:
    def test_download_existing(self, client, tmp_path):
        (tmp_path / "s1_evidence.mp4").write_bytes(b"video-bytes")
        resp = client.get("/download?file=s1_evidence.mp4")
        assert resp.status_code == 200
        assert resp.data == b"video-bytes"

    def test_traversal_forbidden(self, client):
        assert client.get("/download?file=../../etc/passwd").status_code == 403

    def test_missing_file(self, client):
        assert client.get("/download?file=nope.mp4").status_code == 404

    def test_missing_param(self, client):
        assert client.get("/download").status_code == 400
