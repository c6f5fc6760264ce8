# File: app/routers/complaints.py

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, Request, UploadFile
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.core.errors import AuthorizationError, ComplaintNotFound, ValidationError, field_errors
from app.core.ratelimit import SUBMIT_LIMIT, TRACKING_LIMIT, limiter
from app.core.security import get_admin_actor, get_optional_user, get_verified_actor, require_verified_user
from app.db.session import get_db
from app.models.category import Category
from app.models.comment import Comment
from app.models.complaint import Complaint, ComplaintPriority, ComplaintStatus
from app.models.user import User
from app.schemas.auth import Actor
from app.schemas.complaint import AssignIn, CommentIn, ComplaintSubmit, PriorityIn, StatusUpdateIn, SubmissionOut
from app.services import intake, lifecycle, tracking
from app.services.notifications import dispatch, intent_for

router = APIRouter(prefix="/complaints", tags=["complaints"])


def _get_complaint(db: Session, complaint_id: int) -> Complaint:
    complaint = db.get(Complaint, complaint_id)
    if not complaint:
        raise ComplaintNotFound()
    return complaint


def _enqueue(background_tasks: BackgroundTasks, intent) -> None:
    if intent is not None:
        background_tasks.add_task(dispatch, intent)


@router.post("", status_code=201)
@limiter.limit(SUBMIT_LIMIT)
def submit_complaint(
    request: Request,
    background_tasks: BackgroundTasks,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    category_id: Optional[str] = Form(None),
    subcategory_id: Optional[str] = Form(None),
    is_anonymous: Optional[str] = Form("false"),
    full_name: Optional[str] = Form(None),
    phone_number: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    attachments: List[UploadFile] | None = File(default=None),
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    raw = {
        "title": title,
        "description": description,
        "location": location,
        "category_id": category_id,
        "subcategory_id": subcategory_id,
        "is_anonymous": is_anonymous or "false",
        "full_name": full_name,
        "phone_number": phone_number,
        "email": email,
    }
    try:
        payload = ComplaintSubmit.model_validate(raw, context={"authenticated": user is not None})
    except PydanticValidationError as e:
        raise ValidationError(errors=field_errors(e.errors()))

    files = [
        intake.IncomingFile(
            file_name=f.filename or "attachment",
            content_type=f.content_type or "application/octet-stream",
            data=f.file.read(),
        )
        for f in (attachments or [])
        if f.filename
    ]

    result = intake.submit(db, payload, intake.submitter_for(payload, user.id if user else None), files)
    _enqueue(background_tasks, result.intent)

    complaint = result.complaint
    out = SubmissionOut(
        id=complaint.id,
        tracking_id=complaint.tracking_id,
        status=complaint.status.value,
        created_at=complaint.created_at.isoformat() if complaint.created_at else None,
        attachments=[
            {"id": a.id, "file_name": a.file_name, "file_type": a.file_type,
             "file_size": a.file_size, "file_url": a.file_url}
            for a in result.attachments
        ],
        failed_attachments=result.failed_attachments,
    )
    return {"message": "Complaint submitted successfully", "complaint": out.model_dump()}


@router.get("/track/{tracking_id}")
@limiter.limit(TRACKING_LIMIT)
def track_complaint(request: Request, tracking_id: str, db: Session = Depends(get_db)):
    return tracking.public_view(tracking.find_by_tracking_id(db, tracking_id))


@router.get("/user")
def my_complaints(db: Session = Depends(get_db), user: User = Depends(require_verified_user)):
    rows = (
        db.query(Complaint)
        .filter(Complaint.user_id == user.id)
        .order_by(Complaint.created_at.desc(), Complaint.id.desc())
        .all()
    )
    return {"results": len(rows), "complaints": [tracking.summary_view(c) for c in rows]}


@router.post("/{complaint_id}/comments", status_code=201)
def add_comment(
    complaint_id: int,
    body: CommentIn,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_verified_actor),
):
    complaint = _get_complaint(db, complaint_id)
    if body.is_internal and not actor.is_admin:
        raise AuthorizationError("You are not authorized to add internal comments")
    if not actor.is_admin and complaint.user_id != actor.id:
        raise AuthorizationError("You are not authorized to comment on this complaint")

    comment = Comment(complaint_id=complaint.id, user_id=actor.id, content=body.content, is_internal=body.is_internal)
    db.add(comment)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(comment)

    if actor.is_admin and not body.is_internal:
        _enqueue(background_tasks, intent_for(complaint, "newComment", comment=body.content))
    return tracking.comment_view(comment)


# ---------------- admin console ----------------

@router.get("/admin")
def list_complaints(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
    status: Optional[ComplaintStatus] = Query(default=None),
    priority: Optional[ComplaintPriority] = Query(default=None),
    category_id: Optional[int] = Query(default=None),
    subcategory_id: Optional[int] = Query(default=None),
    search: Optional[str] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
):
    q = db.query(Complaint)
    if status:
        q = q.filter(Complaint.status == status)
    if priority:
        q = q.filter(Complaint.priority == priority)
    if category_id:
        q = q.filter(Complaint.category_id == category_id)
    if subcategory_id:
        q = q.filter(Complaint.subcategory_id == subcategory_id)
    if search and search.strip():
        term = f"%{search.strip()}%"
        q = q.filter(or_(
            Complaint.tracking_id.ilike(term),
            Complaint.title.ilike(term),
            Complaint.description.ilike(term),
            Complaint.location.ilike(term),
        ))
    if start_date:
        q = q.filter(Complaint.created_at >= start_date)
    if end_date:
        q = q.filter(Complaint.created_at <= end_date)

    total = q.count()
    rows = (
        q.order_by(Complaint.created_at.desc(), Complaint.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "items": [tracking.summary_view(c) for c in rows],
        "total": total,
        "page": page,
        "limit": limit,
    }


@router.get("/admin/statistics")
def complaint_statistics(db: Session = Depends(get_db), actor: Actor = Depends(get_admin_actor)):
    total = db.query(func.count(Complaint.id)).scalar() or 0
    since = datetime.now(timezone.utc) - timedelta(days=30)
    recent = db.query(func.count(Complaint.id)).filter(Complaint.created_at >= since).scalar() or 0

    by_status = db.query(Complaint.status, func.count(Complaint.id)).group_by(Complaint.status).all()
    by_priority = db.query(Complaint.priority, func.count(Complaint.id)).group_by(Complaint.priority).all()
    by_category = (
        db.query(Category.id, Category.name, func.count(Complaint.id))
        .join(Complaint, Complaint.category_id == Category.id)
        .group_by(Category.id, Category.name)
        .order_by(Category.name)
        .all()
    )
    return {
        "total": total,
        "recent": recent,
        "by_status": {s.value: n for s, n in by_status},
        "by_priority": {p.value: n for p, n in by_priority},
        "by_category": [{"category_id": cid, "name": name, "count": n} for cid, name, n in by_category],
    }


@router.get("/admin/{complaint_id}")
def get_complaint(complaint_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_admin_actor)):
    return tracking.admin_view(db, _get_complaint(db, complaint_id))


@router.patch("/admin/{complaint_id}/status")
def update_status(
    complaint_id: int,
    body: StatusUpdateIn,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    complaint = _get_complaint(db, complaint_id)
    outcome = lifecycle.change_status(db, complaint, body.status, actor, body.comment, body.rejection_reason)
    _enqueue(background_tasks, outcome.intent)
    return tracking.summary_view(outcome.complaint)


@router.patch("/admin/{complaint_id}/assign")
def assign_complaint(
    complaint_id: int,
    body: AssignIn,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    complaint = _get_complaint(db, complaint_id)
    outcome = lifecycle.assign(db, complaint, body.assigned_to, actor)
    _enqueue(background_tasks, outcome.intent)
    return tracking.summary_view(outcome.complaint)


@router.patch("/admin/{complaint_id}/priority")
def update_priority(
    complaint_id: int,
    body: PriorityIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    complaint = _get_complaint(db, complaint_id)
    return tracking.summary_view(lifecycle.set_priority(db, complaint, body.priority))
