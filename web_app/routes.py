# web_app/routes.py
import os
from typing import Optional

from flask import Blueprint, Response, abort, current_app, jsonify, request, send_file

from alerts.notification_service import NotificationService
from db.violation_log import list_violations, session_artifacts, session_violations
from inference.pipeline import ACTIVE_SESSIONS, InferencePipeline
from utils.fileops import safe_join
from utils.logger import get_logger

bp = Blueprint("main", __name__)
logger = get_logger("web.routes")


# ----------- Helper functions -----------

def _parse_video_source(src: Optional[str]):
    """
    Convert numeric strings like '0' -> int(0) so OpenCV opens camera devices.
    Also supports 'camera:0' syntax. File paths and URLs are returned unchanged.
    """
    if src is None:
        return None
    s = str(src).strip()
    if s.isdigit():
        return int(s)
    if s.lower().startswith("camera:") and s[7:].strip().isdigit():
        return int(s[7:].strip())
    return s


def _alerts_enabled() -> bool:
    return os.getenv("ALERTS_ENABLED", "false").strip().lower() in ("1", "true", "yes")


def _make_pipeline() -> InferencePipeline:
    factory = current_app.config.get("PIPELINE_FACTORY")
    if factory is not None:
        return factory()
    notifier = None
    if _alerts_enabled():
        try:
            notifier = NotificationService.from_env()
        except RuntimeError as e:
            logger.error("Alerts disabled: %s", e)
    return InferencePipeline(detector_device="cpu", notifier=notifier,
                             session_factory=current_app.config.get("SESSION_FACTORY"),
                             evidence_dir=current_app.config["EVIDENCE_DIR"])


def stream_generator(pipeline: InferencePipeline, video_source):
    """Yields frames as byte-mjpeg to the UI stream."""
    logger.info("[WEB STREAM] Starting inference on: %s", video_source)
    for frame_bytes in pipeline.process_video(video_source):
        yield (
            b"--frame\r\n"
            b"Content-Type: image/jpeg\r\n\r\n" + frame_bytes + b"\r\n"
        )


# ----------- Routes -----------

@bp.route("/stream")
def stream():
    """Real-time MJPEG stream of an annotated monitoring session."""
    src = _parse_video_source(request.args.get("src"))
    if src is None or src == "":
        return "Missing video source", 400
    pipeline = _make_pipeline()
    return Response(stream_generator(pipeline, src),
                    mimetype="multipart/x-mixed-replace; boundary=frame")


@bp.route("/violations")
def violations():
    """Most recent stored violations as JSON."""
    limit = request.args.get("limit", default=50, type=int)
    kind = request.args.get("kind")
    records = list_violations(limit=limit, kind=kind, session_factory=current_app.config.get("SESSION_FACTORY"))
    return jsonify(records)


@bp.route("/sessions/<session_id>/violations")
def session_log(session_id):
    """Full log of one session: live snapshot if running here, else the stored copy."""
    live = ACTIVE_SESSIONS.get(session_id)
    if live is not None and not live.ended:
        return jsonify({"session_id": session_id, "live": True, "violations": live.export()})
    factory = current_app.config.get("SESSION_FACTORY")
    return jsonify({
        "session_id": session_id,
        "live": False,
        "violations": session_violations(session_id, session_factory=factory),
        "artifacts": session_artifacts(session_id, session_factory=factory),
    })


@bp.route("/status")
def status():
    """Degraded/recording status of every session started by this process."""
    return jsonify([s.status() for s in ACTIVE_SESSIONS.values()])


@bp.route("/download")
def download():
    """Download an evidence file by name (?file=<name relative to the evidence dir>)."""
    name = request.args.get("file")
    if not name:
        abort(400)
    try:
        path = safe_join(current_app.config["EVIDENCE_DIR"], name)
    except ValueError:
        abort(403)
    if not os.path.isfile(path):
        return "File not found", 404
    return send_file(path, as_attachment=True)
