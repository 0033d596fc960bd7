"""
alerts/twilio_adapter.py

Twilio SMS adapter. Reads TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN and TWILIO_FROM_NUMBER
from environment variables.

Usage:
    from alerts.twilio_adapter import send_sms_twilio
    send_sms_twilio('+911234567890', 'Your message')
"""

import os
from datetime import datetime

from twilio.rest import Client

from db.session import SessionLocal
from db.models import NotificationLog
from utils.logger import get_logger

logger = get_logger("alerts.twilio_adapter")


def _client():
    sid = os.getenv("TWILIO_ACCOUNT_SID")
    token = os.getenv("TWILIO_AUTH_TOKEN")
    if not (sid and token and os.getenv("TWILIO_FROM_NUMBER")):
        raise RuntimeError("Twilio credentials missing. Set TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_FROM_NUMBER env vars.")
    return Client(sid, token)


def send_sms_twilio(phone_number: str, message: str, session_factory=None) -> bool:
    """
    Send SMS via Twilio and log NotificationLog in DB.

    Returns True on success, False on failure.
    """
    try:
        client = _client()
        resp = client.messages.create(body=message, from_=os.getenv("TWILIO_FROM_NUMBER"), to=phone_number)
        logger.info("Twilio sent message SID=%s to %s", getattr(resp, "sid", "unknown"), phone_number)
    except Exception as e:
        logger.exception("Failed to send SMS via Twilio: %s", e)
        return False

    session = (session_factory or SessionLocal)()
    try:
        session.add(NotificationLog(
            phone_number=str(phone_number),
            message=message,
            sent_at=datetime.utcnow(),
            mock=False,
        ))
        session.commit()
    except Exception as e:
        logger.exception("SMS sent but NotificationLog write failed: %s", e)
        session.rollback()
    finally:
        session.close()
    return True
