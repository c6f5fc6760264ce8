# File: app/services/notify_sms.py
"""SMS delivery through Twilio."""

import logging
from typing import Optional

from twilio.rest import Client

from app.core.config import settings
from app.services.notify_email import tracking_url

SMS_TEMPLATES = {
    "submitted": "Ijwi ry'Abaturage: Your complaint has been submitted successfully. Your tracking ID is {tracking_id}. Use this ID to check the status of your complaint at {url}",
    "statusUpdate": "Ijwi ry'Abaturage: Your complaint ({tracking_id}) status has been updated to \"{status}\". Check details at {url}",
    "resolved": "Ijwi ry'Abaturage: Your complaint ({tracking_id}) has been resolved. Please check the details and provide feedback at {url}",
    "rejected": "Ijwi ry'Abaturage: Your complaint ({tracking_id}) status has been updated. Please check the details at {url}",
    "newComment": "Ijwi ry'Abaturage: A new comment has been added to your complaint ({tracking_id}). View it at {url}",
}


def normalize_phone(phone_number: str) -> str:
    phone_number = phone_number.strip()
    return phone_number if phone_number.startswith("+") else f"+{phone_number}"


def render_sms(kind: str, tracking_id: str, status: Optional[str] = None) -> str:
    if kind not in SMS_TEMPLATES:
        raise ValueError(f"Invalid notification type: {kind}")
    return SMS_TEMPLATES[kind].format(tracking_id=tracking_id, status=status or "", url=tracking_url())


def send_sms(phone_number: str, body: str) -> bool:
    sid, token, sender = settings.twilio_account_sid, settings.twilio_auth_token, settings.twilio_from_number
    if not phone_number or not (sid and token and sender):
        return False
    try:
        message = Client(sid, token).messages.create(body=body, from_=sender, to=normalize_phone(phone_number))
        logging.info(f"SMS sent to {normalize_phone(phone_number)}: {message.sid}")
        return True
    except Exception as e:
        logging.error(f"Failed to send SMS: {e}", exc_info=True)
        return False
