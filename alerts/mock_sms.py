"""
alerts/mock_sms.py

Mock SMS provider for development:
- Logs the message
- Persists a NotificationLog entry in DB with mock=True
"""

from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from db.session import SessionLocal
from db.models import NotificationLog
from utils.logger import get_logger

logger = get_logger("alerts.mock_sms")


def send_sms(phone_number: str, message: str, session_factory=None) -> bool:
    """
    Send a mock SMS: log it and write NotificationLog to DB.

    Returns True on success, False on failure.
    """
    logger.info("[MOCK SMS] To %s: %s", phone_number, message)
    session = (session_factory or SessionLocal)()
    try:
        session.add(NotificationLog(
            phone_number=str(phone_number),
            message=message,
            sent_at=datetime.utcnow(),
            mock=True,
        ))
        session.commit()
        return True
    except SQLAlchemyError as e:
        logger.exception("Failed to write mock SMS to DB: %s", e)
        session.rollback()
        return False
    finally:
        session.close()
