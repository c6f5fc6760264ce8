# File: app/routers/tracking.py

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.ratelimit import TRACKING_LIMIT, limiter
from app.db.session import get_db
from app.schemas.complaint import TrackingIdIn
from app.services import tracking

router = APIRouter(prefix="/tracking", tags=["tracking"])


@router.post("/validate")
@limiter.limit(TRACKING_LIMIT)
def validate_tracking_id(request: Request, body: TrackingIdIn, db: Session = Depends(get_db)):
    return tracking.validate_tracking_id(db, body.tracking_id)


@router.get("/{tracking_id}")
@limiter.limit(TRACKING_LIMIT)
def get_by_tracking_id(request: Request, tracking_id: str, db: Session = Depends(get_db)):
    return tracking.public_view(tracking.find_by_tracking_id(db, tracking_id))


@router.get("/{tracking_id}/history")
@limiter.limit(TRACKING_LIMIT)
def get_history(request: Request, tracking_id: str, db: Session = Depends(get_db)):
    return tracking.history_view(db, tracking_id)
