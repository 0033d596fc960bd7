"""
alerts/notification_service.py

NotificationService sends a short alert whenever a violation interval opens.
The provider is picked from the SMS_PROVIDER environment variable
("mock" by default, or "twilio"); the recipient is NOTIFY_ADMIN_NUMBER.

Use it as an engine event subscriber:

    service = NotificationService.from_env()
    bus.subscribe(service.on_event)
"""

import os
from typing import Callable, Optional

from inference.events import EngineEvent, EventType
from inference.types import Condition
from utils.logger import get_logger

logger = get_logger("alerts.notification_service")

SendImpl = Callable[[str, str], bool]

MESSAGES = {
    Condition.RESTRICTED_OBJECT: "Prohibited object detected: {label}. Please remove all unauthorized items from your workspace.",
    Condition.SECONDARY_SUBJECT: "Another person detected ({count} faces in view). Only the candidate may be present.",
    Condition.SUBJECT_ABSENT: "Face not visible! Please ensure your face is clearly visible in the camera frame.",
}

TITLES = {
    Condition.RESTRICTED_OBJECT: "Prohibited Object Detected",
    Condition.SECONDARY_SUBJECT: "Additional Person Detected",
    Condition.SUBJECT_ABSENT: "Face Not Visible",
}

# a phone gets its own wording, separate from other prohibited items
PHONE_LABEL = "cell phone"
PHONE_TITLE = "Cell Phone Detected"
PHONE_MESSAGE = "Cell phone detected! Please remove any mobile devices from the exam area."


def _provider_from_env() -> Optional[SendImpl]:
    provider = os.getenv("SMS_PROVIDER", "mock").lower()
    if provider == "twilio":
        try:
            from alerts.twilio_adapter import send_sms_twilio
            return send_sms_twilio
        except ImportError as e:
            logger.exception("Failed to import Twilio adapter: %s", e)
            return None
    from alerts.mock_sms import send_sms
    return send_sms


def format_message(event: EngineEvent) -> str:
    kind = event.kind
    detail = event.detail or {}
    if kind == Condition.SECONDARY_SUBJECT:
        count = detail.get("count")
        if count is None and event.interval is not None and event.interval.score is not None:
            count = int(event.interval.score)
        body = MESSAGES[kind].format(count=count if count is not None else "several")
    elif kind == Condition.RESTRICTED_OBJECT:
        label = detail.get("label", "unknown item")
        if str(label).strip().lower() == PHONE_LABEL:
            return f"ALERT: {PHONE_TITLE}. {PHONE_MESSAGE}"
        body = MESSAGES[kind].format(label=label)
    else:
        body = MESSAGES[kind]
    return f"ALERT: {TITLES[kind]}. {body}"


class NotificationService:
    def __init__(self, provider_impl: Optional[SendImpl] = None, recipient: Optional[str] = None):
        self.send_impl = provider_impl
        self.recipient = recipient
        if self.send_impl is None:
            raise RuntimeError("No SMS provider available. Configure SMS_PROVIDER and install dependencies.")

    @classmethod
    def from_env(cls) -> "NotificationService":
        return cls(_provider_from_env(), os.getenv("NOTIFY_ADMIN_NUMBER"))

    def send_message(self, phone_number: str, message: str) -> bool:
        try:
            ok = self.send_impl(phone_number, message)
            if ok:
                logger.info("Message sent to %s", phone_number)
                return True
            logger.warning("Message NOT sent to %s", phone_number)
            return False
        except Exception as e:
            logger.exception("Exception while sending message: %s", e)
            return False

    def notify_opened(self, event: EngineEvent) -> bool:
        if event.type != EventType.OPENED or event.kind is None:
            return False
        if not self.recipient:
            logger.warning("No recipient configured for %s violation at %.2f", event.kind.value, event.timestamp)
            return False
        return self.send_message(self.recipient, format_message(event))

    def on_event(self, event: EngineEvent) -> None:
        """EventBus subscriber."""
        if event.type == EventType.OPENED:
            self.notify_opened(event)
