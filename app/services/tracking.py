# File: app/services/tracking.py
"""Read-side projections of a complaint for the public tracking pages."""

import re
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import ComplaintNotFound, InvalidTrackingIdFormat
from app.models.complaint import Complaint, ComplaintStatus
from app.models.status_history import StatusHistoryEntry
from app.models.user import User

TRACKING_ID_RE = re.compile(r"^IJW-\d{4}-\d{5}$")
NOT_FOUND_MESSAGE = "No complaint found with this tracking ID. Please check and try again."
SUBMITTED_DESCRIPTION = "Your complaint has been successfully submitted."

# main line of the timeline; rejected sits off to the side
CHECKPOINTS = [
    ("Submitted", ComplaintStatus.pending),
    ("Under Review", ComplaintStatus.under_review),
    ("In Progress", ComplaintStatus.in_progress),
    ("Resolved", ComplaintStatus.resolved),
    ("Closed", ComplaintStatus.closed),
]
_RANK = {status: i for i, (_, status) in enumerate(CHECKPOINTS)}


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def display_name(user: Optional[User]) -> Optional[str]:
    return user.full_name if user else None


def ensure_tracking_id_format(tracking_id: Optional[str]) -> str:
    if not tracking_id or not TRACKING_ID_RE.fullmatch(tracking_id):
        raise InvalidTrackingIdFormat()
    return tracking_id


def find_by_tracking_id(db: Session, tracking_id: Optional[str]) -> Complaint:
    tracking_id = ensure_tracking_id_format(tracking_id)
    complaint = db.query(Complaint).filter(Complaint.tracking_id == tracking_id).first()
    if not complaint:
        raise ComplaintNotFound(NOT_FOUND_MESSAGE)
    return complaint


def validate_tracking_id(db: Session, tracking_id: Optional[str]) -> dict:
    if not tracking_id:
        raise InvalidTrackingIdFormat("Please enter a tracking ID")
    complaint = find_by_tracking_id(db, tracking_id)
    return {"valid": True, "tracking_id": complaint.tracking_id}


def build_status_timeline(complaint: Complaint) -> Optional[list[dict]]:
    """Five fixed checkpoints; None for rejected complaints."""
    status = complaint.status
    if status == ComplaintStatus.rejected:
        return None
    rank = _RANK[status]

    dates = {
        ComplaintStatus.pending: complaint.created_at,
        ComplaintStatus.under_review: complaint.updated_at if rank >= 1 else None,
        ComplaintStatus.in_progress: complaint.updated_at if rank >= 2 else None,
        ComplaintStatus.resolved: complaint.resolved_at,
        ComplaintStatus.closed: complaint.closed_at,
    }
    return [
        {
            "status": label,
            "date": _iso(dates[checkpoint]),
            "completed": rank >= _RANK[checkpoint],
            "current": status == checkpoint,
        }
        for label, checkpoint in CHECKPOINTS
    ]


def ledger_for(db: Session, complaint_id: int) -> list[StatusHistoryEntry]:
    return (
        db.query(StatusHistoryEntry)
        .filter(StatusHistoryEntry.complaint_id == complaint_id)
        .order_by(StatusHistoryEntry.created_at.desc(), StatusHistoryEntry.id.desc())
        .all()
    )


def status_history(db: Session, complaint: Complaint) -> list[dict]:
    history = [{
        "status": "Submitted",
        "date": _iso(complaint.created_at),
        "description": SUBMITTED_DESCRIPTION,
        "changed_by": None,
    }]
    for entry in ledger_for(db, complaint.id):
        history.append({
            "status": entry.new_status,
            "date": _iso(entry.created_at),
            "description": entry.comment or f"Status changed from {entry.previous_status} to {entry.new_status}",
            "changed_by": display_name(entry.changed_by_user),
        })
    return history


def history_view(db: Session, tracking_id: Optional[str]) -> dict:
    complaint = find_by_tracking_id(db, tracking_id)
    return {
        "tracking_id": complaint.tracking_id,
        "current_status": complaint.status.value,
        "status_history": status_history(db, complaint),
    }


def attachment_view(a) -> dict:
    return {
        "id": a.id,
        "file_name": a.file_name,
        "file_type": a.file_type,
        "file_size": a.file_size,
        "file_url": a.file_url,
        "created_at": _iso(a.created_at),
    }


def comment_view(c) -> dict:
    author = c.author
    return {
        "id": c.id,
        "content": c.content,
        "is_internal": c.is_internal,
        "created_at": _iso(c.created_at),
        "user": {"id": author.id, "name": author.full_name, "role": author.role.value} if author else None,
    }


def public_view(complaint: Complaint) -> dict:
    """Citizen-facing view. Contact details are never included."""
    category = complaint.category
    subcategory = complaint.subcategory
    is_rejected = complaint.status == ComplaintStatus.rejected
    comments = sorted(
        (c for c in complaint.comments if not c.is_internal),
        key=lambda c: (c.created_at, c.id),
        reverse=True,
    )
    return {
        "id": complaint.id,
        "tracking_id": complaint.tracking_id,
        "title": complaint.title or f"{category.name if category else 'Complaint'} Issue",
        "description": complaint.description,
        "location": complaint.location,
        "status": complaint.status.value,
        "priority": complaint.priority.value,
        "category": {"id": category.id, "name": category.name} if category else None,
        "subcategory": {"id": subcategory.id, "name": subcategory.name} if subcategory else None,
        "is_anonymous": complaint.is_anonymous,
        "submitted_at": _iso(complaint.created_at),
        "updated_at": _iso(complaint.updated_at),
        "resolved_at": _iso(complaint.resolved_at),
        "closed_at": _iso(complaint.closed_at),
        "attachments": [attachment_view(a) for a in complaint.attachments],
        "comments": [comment_view(c) for c in comments],
        "assigned_user": {"name": complaint.assignee.full_name} if complaint.assignee else None,
        "status_timeline": None if is_rejected else build_status_timeline(complaint),
        "is_rejected": is_rejected,
        "rejection_reason": complaint.rejection_reason,
    }


def admin_view(db: Session, complaint: Complaint) -> dict:
    """Full record for the admin console, contact details and internal notes included."""
    view = public_view(complaint)
    submitter = complaint.submitter
    view.update({
        "full_name": complaint.full_name,
        "phone_number": complaint.phone_number,
        "email": complaint.email,
        "user": {
            "id": submitter.id,
            "name": submitter.full_name,
            "email": submitter.email,
            "phone_number": submitter.phone_number,
        } if submitter else None,
        "assigned_to_id": complaint.assigned_to_id,
        "comments": [comment_view(c) for c in sorted(complaint.comments, key=lambda c: c.id, reverse=True)],
        "status_history": [
            {
                "id": e.id,
                "previous_status": e.previous_status,
                "new_status": e.new_status,
                "comment": e.comment,
                "changed_by": display_name(e.changed_by_user),
                "created_at": _iso(e.created_at),
            }
            for e in ledger_for(db, complaint.id)
        ],
    })
    return view


def summary_view(complaint: Complaint) -> dict:
    return {
        "id": complaint.id,
        "tracking_id": complaint.tracking_id,
        "title": complaint.title or f"{complaint.category.name if complaint.category else 'Complaint'} Issue",
        "location": complaint.location,
        "status": complaint.status.value,
        "priority": complaint.priority.value,
        "category": {"id": complaint.category.id, "name": complaint.category.name} if complaint.category else None,
        "subcategory": {"id": complaint.subcategory.id, "name": complaint.subcategory.name} if complaint.subcategory else None,
        "is_anonymous": complaint.is_anonymous,
        "assigned_to_id": complaint.assigned_to_id,
        "created_at": _iso(complaint.created_at),
        "updated_at": _iso(complaint.updated_at),
    }
