"""Study session routes: start, end, list and weekly statistics."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from .. import services
from ..auth import RequestContext, require_user
from ..database import get_session
from ..schemas import StudySessionEndIn, StudySessionIn
from ..utils.dates import iso
from . import envelope

router = APIRouter(prefix="/study-sessions", tags=["study-sessions"])


@router.get("")
def list_sessions(start_date: Optional[datetime] = Query(None, alias="startDate"),
                  end_date: Optional[datetime] = Query(None, alias="endDate"),
                  ctx: RequestContext = Depends(require_user), db: Session = Depends(get_session)):
    """Sessions newest first; both `startDate` and `endDate` are needed to filter."""
    sessions = services.StudySessionService(db).list(ctx.user_id, start_date, end_date)
    return envelope({"sessions": [s.public() for s in sessions], "count": len(sessions)})


@router.post("", status_code=status.HTTP_201_CREATED)
def start_session(payload: StudySessionIn, ctx: RequestContext = Depends(require_user),
                  db: Session = Depends(get_session)):
    study = services.StudySessionService(db).start(ctx.user_id, payload.model_dump())
    return envelope({"session": study.public()}, "Study session started successfully")


@router.put("/{session_id}/end")
def end_session(session_id: str, payload: StudySessionEndIn, ctx: RequestContext = Depends(require_user),
                db: Session = Depends(get_session)):
    """Mark the session completed and derive its duration."""
    study = services.StudySessionService(db).end(ctx.user_id, session_id, payload.model_dump(exclude_unset=True))
    return envelope({"session": study.public()}, "Study session ended successfully")


@router.get("/stats/weekly")
def weekly_stats(ctx: RequestContext = Depends(require_user), db: Session = Depends(get_session)):
    stats, start, end = services.StudySessionService(db).weekly_stats(ctx.user_id)
    return envelope({"stats": stats, "period": {"startDate": iso(start), "endDate": iso(end)}})
