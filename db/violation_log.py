"""
db/violation_log.py
Persist and query the violation log of monitoring sessions.

All functions take an optional session_factory (defaults to SessionLocal) and
swallow database errors after logging them, returning a falsy value, so a
database outage never interrupts monitoring.
"""

import os
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from db.models import EvidenceArtifact, ViolationRecord
from db.session import SessionLocal
from utils.fileops import ensure_dir, safe_join
from utils.logger import get_logger

logger = get_logger("db.violation_log")


def save_session_log(session_id: str, intervals: Iterable[Dict], video_source: Optional[str] = None,
                     session_factory=None, notified: Iterable[int] = ()) -> int:
    """
    Replace the stored log of session_id with intervals (export format, append order).
    notified holds the indices of intervals whose alert was delivered.

    Returns:
        number of records written (0 on failure)
    """
    factory = session_factory or SessionLocal
    session = factory()
    notified = set(notified)
    try:
        session.query(ViolationRecord).filter(ViolationRecord.session_id == session_id).delete()
        n = 0
        for seq, iv in enumerate(intervals):
            session.add(ViolationRecord(
                session_id=session_id,
                sequence=seq,
                kind=iv["kind"],
                violation_time=iv["violation_time"],
                start_time=iv["start_time"],
                end_time=iv["end_time"],
                score=iv.get("score"),
                closed=bool(iv.get("closed")),
                notification_sent=seq in notified,
                video_source=str(video_source) if video_source is not None else None,
            ))
            n += 1
        session.commit()
        logger.info("Saved %d violation records for session %s", n, session_id)
        return n
    except SQLAlchemyError as e:
        logger.exception("Failed to save violation log for session %s: %s", session_id, e)
        session.rollback()
        return 0
    finally:
        session.close()


def save_artifact(session_id: str, artifact, evidence_dir: str, session_factory=None) -> Optional[str]:
    """Write artifact bytes under evidence_dir and record them. Returns the file path."""
    ensure_dir(evidence_dir)
    try:
        path = safe_join(evidence_dir, f"{session_id}_{artifact.filename}")
        with open(path, "wb") as fh:
            fh.write(artifact.data)
    except (OSError, ValueError) as e:
        logger.exception("Failed to write evidence %s: %s", artifact.filename, e)
        return None

    factory = session_factory or SessionLocal
    session = factory()
    try:
        session.add(EvidenceArtifact(
            session_id=session_id,
            filename=os.path.basename(path),
            path=path,
            size_bytes=artifact.size,
            mime_type=artifact.mime_type,
            started_at=artifact.started_at,
            stopped_at=artifact.stopped_at,
        ))
        session.commit()
    except SQLAlchemyError as e:
        logger.exception("Failed to record evidence %s: %s", path, e)
        session.rollback()
    finally:
        session.close()
    return path


def list_violations(limit: int = 50, kind: Optional[str] = None, session_factory=None) -> List[Dict]:
    """Most recent violation records first."""
    factory = session_factory or SessionLocal
    session = factory()
    try:
        q = session.query(ViolationRecord)
        if kind:
            q = q.filter(ViolationRecord.kind == kind)
        rows = q.order_by(ViolationRecord.id.desc()).limit(limit).all()
        return [r.to_dict() for r in rows]
    except SQLAlchemyError as e:
        logger.exception("Failed to list violations: %s", e)
        return []
    finally:
        session.close()


def session_violations(session_id: str, session_factory=None) -> List[Dict]:
    """One session's log in its original append order."""
    factory = session_factory or SessionLocal
    session = factory()
    try:
        rows = (
            session.query(ViolationRecord)
            .filter(ViolationRecord.session_id == session_id)
            .order_by(ViolationRecord.sequence.asc())
            .all()
        )
        return [r.to_dict() for r in rows]
    except SQLAlchemyError as e:
        logger.exception("Failed to load session %s: %s", session_id, e)
        return []
    finally:
        session.close()


def session_artifacts(session_id: str, session_factory=None) -> List[Dict]:
    factory = session_factory or SessionLocal
    session = factory()
    try:
        rows = (
            session.query(EvidenceArtifact)
            .filter(EvidenceArtifact.session_id == session_id)
            .order_by(EvidenceArtifact.id.asc())
            .all()
        )
        return [r.to_dict() for r in rows]
    except SQLAlchemyError as e:
        logger.exception("Failed to load artifacts for session %s: %s", session_id, e)
        return []
    finally:
        session.close()
