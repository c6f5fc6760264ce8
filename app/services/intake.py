# File: app/services/intake.py
import logging
import random
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import CategoryNotFound, SubcategoryCategoryMismatch, ValidationError
from app.models.attachment import Attachment
from app.models.category import Category, Subcategory
from app.models.complaint import Complaint, ComplaintPriority, ComplaintStatus
from app.models.status_history import StatusHistoryEntry
from app.schemas.complaint import AnonymousSubmitter, AuthenticatedSubmitter, ComplaintSubmit, Submitter
from app.services import storage
from app.services.notifications import NotificationIntent, intent_for

SUBMITTED_COMMENT = "Complaint submitted"
TRACKING_PREFIX = "IJW"

log = logging.getLogger(__name__)


class IncomingFile(BaseModel):
    file_name: str
    content_type: str
    data: bytes


class Submission(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    complaint: Complaint
    attachments: list[Attachment] = []
    failed_attachments: list[dict] = []
    intent: Optional[NotificationIntent] = None


def generate_tracking_id(year: Optional[int] = None) -> str:
    year = year or datetime.now(timezone.utc).year
    return f"{TRACKING_PREFIX}-{year}-{random.randint(10000, 99999)}"


def unique_tracking_id(db: Session) -> str:
    while True:
        candidate = generate_tracking_id()
        if not db.query(Complaint.id).filter(Complaint.tracking_id == candidate).first():
            return candidate


def submitter_for(payload: ComplaintSubmit, user_id: Optional[int]) -> Submitter:
    """Signed-in, non-anonymous reports are tied to the account; all others keep the typed contact."""
    if user_id is not None and not payload.is_anonymous:
        return AuthenticatedSubmitter(user_id=user_id)
    return AnonymousSubmitter(
        full_name=payload.full_name,
        phone_number=payload.phone_number,
        email=payload.email,
    )


def validate_files(files: list[IncomingFile]) -> None:
    if len(files) > settings.max_upload_files:
        raise ValidationError(f"Too many files. Maximum is {settings.max_upload_files} files.")
    for f in files:
        if f.content_type not in storage.ALLOWED_TYPES:
            raise ValidationError(
                "Invalid file type. Only images, PDFs, Word, Excel, and text files are allowed.",
                errors=[{"field": "attachments", "message": f"{f.file_name}: {f.content_type} is not allowed"}],
            )
        if len(f.data) > settings.max_upload_bytes:
            raise ValidationError(
                f"File too large. Maximum size is {settings.max_upload_bytes // (1024 * 1024)}MB.",
                errors=[{"field": "attachments", "message": f"{f.file_name} is too large"}],
            )


def _store_attachment(db: Session, complaint: Complaint, f: IncomingFile) -> Attachment:
    uploaded = storage.upload(f.data, f.content_type, f.file_name)
    attachment = Attachment(
        complaint_id=complaint.id,
        file_name=f.file_name,
        file_type=f.content_type,
        file_size=len(f.data),
        file_url=uploaded["url"],
        public_id=uploaded["public_id"],
    )
    try:
        db.add(attachment)
        db.commit()
    except Exception:
        db.rollback()
        storage.delete(uploaded["public_id"])
        raise
    db.refresh(attachment)
    return attachment


def submit(db: Session, payload: ComplaintSubmit, submitter: Submitter,
           files: Optional[list[IncomingFile]] = None) -> Submission:
    files = files or []
    validate_files(files)

    category = db.get(Category, payload.category_id)
    if not category:
        raise CategoryNotFound()
    subcategory = (
        db.query(Subcategory)
        .filter(Subcategory.id == payload.subcategory_id, Subcategory.category_id == category.id)
        .first()
    )
    if not subcategory:
        raise SubcategoryCategoryMismatch()

    complaint = Complaint(
        tracking_id=unique_tracking_id(db),
        title=payload.title,
        description=payload.description,
        location=payload.location,
        category_id=category.id,
        subcategory_id=subcategory.id,
        is_anonymous=payload.is_anonymous,
        status=ComplaintStatus.pending,
        priority=ComplaintPriority.medium,
    )
    if isinstance(submitter, AuthenticatedSubmitter):
        complaint.user_id = submitter.user_id
    else:
        complaint.full_name = submitter.full_name
        complaint.phone_number = submitter.phone_number
        complaint.email = submitter.email

    try:
        db.add(complaint)
        db.flush()
        db.add(StatusHistoryEntry(
            complaint_id=complaint.id,
            previous_status=None,
            new_status=ComplaintStatus.pending.value,
            comment=SUBMITTED_COMMENT,
            created_at=datetime.now(timezone.utc),
        ))
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(complaint)
    log.info("Complaint %s submitted in category %s", complaint.tracking_id, category.name)

    # the complaint stands even when some files fail
    attachments, failed = [], []
    for f in files:
        try:
            attachments.append(_store_attachment(db, complaint, f))
        except Exception as e:
            logging.error(f"Attachment {f.file_name} failed for {complaint.tracking_id}: {e}", exc_info=True)
            failed.append({"file_name": f.file_name, "error": str(e)})

    intent = intent_for(complaint, "submitted", category=category.name)
    return Submission(complaint=complaint, attachments=attachments, failed_attachments=failed, intent=intent)
