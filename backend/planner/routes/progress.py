"""Progress record routes."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from .. import services
from ..auth import RequestContext, require_user
from ..database import get_session
from ..schemas import ProgressIn
from ..utils.dates import iso
from . import envelope

router = APIRouter(prefix="/progress", tags=["progress"])


@router.get("")
def list_progress(start_date: Optional[datetime] = Query(None, alias="startDate"),
                  end_date: Optional[datetime] = Query(None, alias="endDate"),
                  subject: Optional[str] = None,
                  ctx: RequestContext = Depends(require_user), db: Session = Depends(get_session)):
    records = services.ProgressService(db).list(ctx.user_id, start_date, end_date, subject)
    return envelope({"progress": [r.public() for r in records], "count": len(records)})


@router.post("", status_code=status.HTTP_201_CREATED)
def create_progress(payload: ProgressIn, ctx: RequestContext = Depends(require_user),
                    db: Session = Depends(get_session)):
    record = services.ProgressService(db).create(ctx.user_id, payload.model_dump())
    return envelope({"progress": record.public()}, "Progress record created successfully")


@router.get("/stats/weekly")
def weekly_progress(ctx: RequestContext = Depends(require_user), db: Session = Depends(get_session)):
    """Last 7 days grouped by subject and week number."""
    stats, start, end = services.ProgressService(db).weekly_stats(ctx.user_id)
    return envelope({"stats": stats, "period": {"startDate": iso(start), "endDate": iso(end)}})
