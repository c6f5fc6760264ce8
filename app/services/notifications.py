# File: app/services/notifications.py
"""
Notification intents and their delivery.

The lifecycle engine never sends anything itself. It returns a
NotificationIntent; routers enqueue ``dispatch`` on BackgroundTasks so
delivery happens after the response, outside the database transaction.
"""

import logging
from typing import Literal, Optional

from pydantic import BaseModel

from app.models.complaint import Complaint, ComplaintStatus
from app.services import notify_email, notify_sms

NotificationType = Literal["submitted", "statusUpdate", "resolved", "rejected", "newComment"]

log = logging.getLogger(__name__)


class Contact(BaseModel):
    email: Optional[str] = None
    phone_number: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.email or self.phone_number)


class NotificationData(BaseModel):
    tracking_id: str
    category: Optional[str] = None
    status: Optional[str] = None
    comment: Optional[str] = None
    reason: Optional[str] = None


class NotificationIntent(BaseModel):
    contact: Contact
    type: NotificationType
    data: NotificationData


def notification_type_for_status(status) -> NotificationType:
    value = status.value if isinstance(status, ComplaintStatus) else status
    if value == ComplaintStatus.resolved.value:
        return "resolved"
    if value == ComplaintStatus.rejected.value:
        return "rejected"
    return "statusUpdate"


def contact_for(complaint: Complaint) -> Contact:
    # authenticated reports carry no contact triple; use the linked account
    if complaint.user_id is not None and complaint.submitter is not None:
        return Contact(email=complaint.submitter.email, phone_number=complaint.submitter.phone_number)
    return Contact(email=complaint.email, phone_number=complaint.phone_number)


def intent_for(complaint: Complaint, kind: NotificationType, **data) -> Optional[NotificationIntent]:
    """Build an intent, or None when the submitter cannot or must not be reached."""
    if complaint.is_anonymous:
        return None
    contact = contact_for(complaint)
    if contact.is_empty():
        return None
    return NotificationIntent(
        contact=contact,
        type=kind,
        data=NotificationData(tracking_id=complaint.tracking_id, **data),
    )


def _send_email_notification(email: str, kind: NotificationType, data: NotificationData) -> bool:
    if kind == "submitted":
        return notify_email.send_complaint_submitted(email, data.tracking_id, data.category or "")
    if kind == "statusUpdate":
        return notify_email.send_status_update(email, data.tracking_id, data.status or "", data.comment)
    if kind == "resolved":
        return notify_email.send_complaint_resolved(email, data.tracking_id, data.comment)
    if kind == "rejected":
        return notify_email.send_complaint_rejected(email, data.tracking_id, data.reason or "")
    if kind == "newComment":
        return notify_email.send_new_comment(email, data.tracking_id, data.comment or "")
    raise ValueError(f"Invalid notification type: {kind}")


def send_notifications(contact: Contact, kind: NotificationType, data: NotificationData) -> dict:
    """Email and SMS each attempted independently. Never raises."""
    results = {"email": False, "sms": False}

    if contact.email:
        try:
            results["email"] = _send_email_notification(contact.email, kind, data)
        except Exception as e:
            logging.error(f"Email notification error for {data.tracking_id}: {e}", exc_info=True)

    if contact.phone_number:
        try:
            body = notify_sms.render_sms(kind, data.tracking_id, data.status)
            results["sms"] = notify_sms.send_sms(contact.phone_number, body)
        except Exception as e:
            logging.error(f"SMS notification error for {data.tracking_id}: {e}", exc_info=True)

    return results


def dispatch(intent: Optional[NotificationIntent]) -> Optional[dict]:
    if intent is None:
        return None
    results = send_notifications(intent.contact, intent.type, intent.data)
    log.info("Notification %s for %s: %s", intent.type, intent.data.tracking_id, results)
    return results
