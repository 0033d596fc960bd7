"""
db/models.py
SQLAlchemy ORM models for:
- ViolationRecord: one exported violation interval of a monitoring session
- EvidenceArtifact: a stored evidence capture
- NotificationLog: record of sent alerts (mock/real)
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, Float
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class ViolationRecord(Base):
    __tablename__ = "violations"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String(64), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)  # index in the session's append order
    kind = Column(String(32), nullable=False, index=True)
    violation_time = Column(Float, nullable=False)
    start_time = Column(Float, nullable=False)
    end_time = Column(Float, nullable=False)
    score = Column(Float, nullable=True)
    closed = Column(Boolean, default=False)
    video_source = Column(String(256), nullable=True)
    notification_sent = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "session_id": self.session_id,
            "sequence": self.sequence,
            "kind": self.kind,
            "violation_time": self.violation_time,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "score": self.score,
            "closed": bool(self.closed),
            "video_source": self.video_source,
            "notification_sent": bool(self.notification_sent),
        }

    def __repr__(self):
        return (
            f"<ViolationRecord(id={self.id} session={self.session_id} kind={self.kind}"
            f" t={self.violation_time:.2f} closed={self.closed})>"
        )


class EvidenceArtifact(Base):
    __tablename__ = "evidence_artifacts"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String(64), nullable=False, index=True)
    filename = Column(String(256), nullable=False)
    path = Column(String(512), nullable=False)
    size_bytes = Column(Integer, nullable=False, default=0)
    mime_type = Column(String(64), nullable=True)
    started_at = Column(Float, nullable=True)
    stopped_at = Column(Float, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "session_id": self.session_id,
            "filename": self.filename,
            "path": self.path,
            "size_bytes": self.size_bytes,
            "mime_type": self.mime_type,
            "started_at": self.started_at,
            "stopped_at": self.stopped_at,
        }

    def __repr__(self):
        return f"<EvidenceArtifact(id={self.id} file={self.filename} bytes={self.size_bytes})>"


class NotificationLog(Base):
    __tablename__ = "notification_logs"

    id = Column(Integer, primary_key=True, index=True)
    phone_number = Column(String(32), nullable=False)
    message = Column(Text, nullable=False)
    sent_at = Column(DateTime, default=datetime.utcnow)
    mock = Column(Boolean, default=True)

    def __repr__(self):
        return f"<NotificationLog(id={self.id} phone={self.phone_number} mock={self.mock})>"
