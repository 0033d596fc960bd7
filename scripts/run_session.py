#!/usr/bin/env python3
"""
scripts/run_session.py

Headless monitoring session over a video file or camera. Prints the violation
log as JSON when the source ends (or on Ctrl-C for cameras).

Usage:
    python scripts/run_session.py exam.mp4
    python scripts/run_session.py 0 --live --no-record
"""
import argparse
import json
import sys
import time

sys.path.insert(0, ".")

import cv2
from dotenv import find_dotenv, load_dotenv

load_dotenv(find_dotenv())

from alerts.notification_service import NotificationService
from db import main as db_init_main
from inference.config import EngineConfig
from inference.errors import InvalidConfiguration
from inference.pipeline import InferencePipeline
from utils.logger import get_logger

logger = get_logger("scripts.run_session")


def run_live(pipeline: InferencePipeline, camera: int) -> dict:
    """Timer-driven ticks against a camera until interrupted."""
    cap = cv2.VideoCapture(camera)
    if not cap.isOpened():
        logger.error("Unable to open camera %s", camera)
        return {}
    fps = cap.get(cv2.CAP_PROP_FPS) or 10.0
    size = (int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)), int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)))
    session = pipeline.new_session(fps=fps, frame_size=size if all(size) else None, live=True)
    session.run_live(cap.read)
    try:
        while True:
            time.sleep(1.0)
    except KeyboardInterrupt:
        logger.info("Stopping session %s", session.session_id)
    finally:
        pipeline.finalize(session, time.time(), video_source=camera)
        cap.release()
    return {"status": session.status(), "violations": session.export(),
            "artifacts": [a.filename for a in session.recorder.artifacts]}


def main():
    parser = argparse.ArgumentParser(description="Run a headless monitoring session.")
    parser.add_argument("source", help="video path, stream URL or camera index")
    parser.add_argument("--device", default="cpu")
    parser.add_argument("--model", default="fasterrcnn_mobilenet")
    parser.add_argument("--live", action="store_true", help="timer-driven ticks (camera sources)")
    parser.add_argument("--no-record", action="store_true", help="disable evidence capture")
    parser.add_argument("--no-db", action="store_true", help="do not persist the log")
    parser.add_argument("--alerts", action="store_true", help="send alerts for opened violations")
    args = parser.parse_args()

    try:
        config = EngineConfig.from_env()
    except InvalidConfiguration as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    if not args.no_db:
        db_init_main()
    notifier = NotificationService.from_env() if args.alerts else None
    pipeline = InferencePipeline(config, detector_device=args.device, detector_name=args.model,
                                 record=not args.no_record, persist=not args.no_db, notifier=notifier)

    source = int(args.source) if args.source.isdigit() else args.source
    if args.live and isinstance(source, int):
        result = run_live(pipeline, source)
    else:
        result = pipeline.run(source)
    print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
