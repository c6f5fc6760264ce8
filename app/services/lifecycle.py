# File: app/services/lifecycle.py
"""
Complaint lifecycle.

Every status-changing operation follows the same shape: validate, mutate the
complaint, append one status_history row, commit once, and hand a
NotificationIntent back to the caller. Transitions are permissive: any of the
six states may move to any other.
"""

import logging
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from app.core.errors import AssigneeNotFound, InvalidPriority, InvalidStatus, MissingRejectionReason
from app.models.complaint import Complaint, ComplaintPriority, ComplaintStatus
from app.models.status_history import StatusHistoryEntry
from app.models.user import User, UserRole
from app.schemas.auth import Actor
from app.services.notifications import NotificationIntent, intent_for, notification_type_for_status

ASSIGNED_FOR_REVIEW = "Complaint assigned for review"
ASSIGNED_NOTICE = "Your complaint has been assigned to an administrator for review."

log = logging.getLogger(__name__)


class TransitionPlan(BaseModel):
    target: ComplaintStatus
    stamp_field: Optional[Literal["resolved_at", "closed_at"]] = None
    comment: Optional[str] = None
    rejection_reason: Optional[str] = None


class TransitionOutcome(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    complaint: Complaint
    entry: Optional[StatusHistoryEntry] = None
    intent: Optional[NotificationIntent] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_status(value) -> ComplaintStatus:
    if isinstance(value, ComplaintStatus):
        return value
    try:
        return ComplaintStatus(value)
    except ValueError:
        raise InvalidStatus(f"Invalid status value: {value}")


def parse_priority(value) -> ComplaintPriority:
    if isinstance(value, ComplaintPriority):
        return value
    try:
        return ComplaintPriority(value)
    except ValueError:
        raise InvalidPriority(f"Invalid priority value: {value}")


def validate_transition(complaint: Complaint, target_status, comment: Optional[str] = None,
                        rejection_reason: Optional[str] = None) -> TransitionPlan:
    """Pure check of a requested transition. Nothing is written."""
    target = parse_status(target_status)
    reason = (rejection_reason or "").strip() or None
    if target == ComplaintStatus.rejected and not reason:
        raise MissingRejectionReason()

    stamp = None
    if target == ComplaintStatus.resolved:
        stamp = "resolved_at"
    elif target == ComplaintStatus.closed:
        stamp = "closed_at"

    return TransitionPlan(
        target=target,
        stamp_field=stamp,
        comment=(comment or "").strip() or reason,
        rejection_reason=reason if target == ComplaintStatus.rejected else None,
    )


def _append_entry(db: Session, complaint: Complaint, previous: Optional[ComplaintStatus],
                  new: ComplaintStatus, comment: Optional[str], actor: Optional[Actor],
                  now: datetime) -> StatusHistoryEntry:
    entry = StatusHistoryEntry(
        complaint_id=complaint.id,
        previous_status=previous.value if previous else None,
        new_status=new.value,
        comment=comment,
        changed_by=actor.id if actor else None,
        created_at=now,
    )
    db.add(entry)
    return entry


def apply_transition(db: Session, complaint: Complaint, plan: TransitionPlan, actor: Actor,
                     now: Optional[datetime] = None) -> TransitionOutcome:
    now = now or _utcnow()
    previous = complaint.status

    complaint.status = plan.target
    if plan.stamp_field:
        # stamped on every entry into the state
        setattr(complaint, plan.stamp_field, now)
    complaint.rejection_reason = plan.rejection_reason
    complaint.updated_at = now
    entry = _append_entry(db, complaint, previous, plan.target, plan.comment, actor, now)

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(complaint)

    log.info("Complaint %s: %s -> %s by user %s",
             complaint.tracking_id, previous.value if previous else None, plan.target.value, actor.id)

    intent = intent_for(
        complaint,
        notification_type_for_status(plan.target),
        status=plan.target.value,
        comment=plan.comment,
        reason=plan.rejection_reason,
    )
    return TransitionOutcome(complaint=complaint, entry=entry, intent=intent)


def change_status(db: Session, complaint: Complaint, target_status, actor: Actor,
                  comment: Optional[str] = None, rejection_reason: Optional[str] = None) -> TransitionOutcome:
    plan = validate_transition(complaint, target_status, comment, rejection_reason)
    return apply_transition(db, complaint, plan, actor)


def assign(db: Session, complaint: Complaint, assignee_id: Optional[int], actor: Actor,
           now: Optional[datetime] = None) -> TransitionOutcome:
    """
    Set or clear the assignee.

    Only assigning a previously unassigned complaint moves it to under_review,
    and only that status change is recorded in the ledger and notified.
    """
    if assignee_id is not None:
        assignee = db.get(User, assignee_id)
        if not assignee or assignee.role != UserRole.admin:
            raise AssigneeNotFound()

    if assignee_id is None and complaint.assigned_to_id is None:
        return TransitionOutcome(complaint=complaint)

    now = now or _utcnow()
    was_unassigned = complaint.assigned_to_id is None
    previous = complaint.status
    complaint.assigned_to_id = assignee_id
    complaint.updated_at = now

    entry = None
    status_changed = False
    if assignee_id is not None and was_unassigned:
        complaint.status = ComplaintStatus.under_review
        complaint.rejection_reason = None
        status_changed = previous != ComplaintStatus.under_review
        if status_changed:
            entry = _append_entry(db, complaint, previous, ComplaintStatus.under_review,
                                  ASSIGNED_FOR_REVIEW, actor, now)

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(complaint)

    log.info("Complaint %s assigned to %s by user %s", complaint.tracking_id, assignee_id, actor.id)

    intent = None
    if status_changed:
        intent = intent_for(
            complaint,
            notification_type_for_status(ComplaintStatus.under_review),
            status=ComplaintStatus.under_review.value,
            comment=ASSIGNED_NOTICE,
        )
    return TransitionOutcome(complaint=complaint, entry=entry, intent=intent)


def set_priority(db: Session, complaint: Complaint, priority) -> Complaint:
    complaint.priority = parse_priority(priority)
    complaint.updated_at = _utcnow()
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(complaint)
    return complaint
