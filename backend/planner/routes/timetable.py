"""Weekly timetable routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from .. import services
from ..auth import RequestContext, require_user
from ..database import get_session
from ..schemas import DayOfWeek, TimetableIn, TimetableUpdateIn
from . import envelope

router = APIRouter(prefix="/timetable", tags=["timetable"])


@router.get("")
def list_timetable(day_of_week: Optional[DayOfWeek] = Query(None, alias="dayOfWeek"),
                   ctx: RequestContext = Depends(require_user), db: Session = Depends(get_session)):
    entries = services.TimetableService(db).list(ctx.user_id, day_of_week)
    return envelope({"timetable": [e.public() for e in entries], "count": len(entries)})


@router.get("/week/current")
def current_week(ctx: RequestContext = Depends(require_user), db: Session = Depends(get_session)):
    """Active entries grouped under every weekday, Monday first."""
    week = services.TimetableService(db).week(ctx.user_id)
    return envelope({"weekTimetable": {day: [e.public() for e in entries] for day, entries in week.items()}})


@router.get("/{entry_id}")
def get_entry(entry_id: str, ctx: RequestContext = Depends(require_user), db: Session = Depends(get_session)):
    entry = services.TimetableService(db).get(ctx.user_id, entry_id)
    return envelope({"entry": entry.public()})


@router.post("", status_code=status.HTTP_201_CREATED)
def create_entry(payload: TimetableIn, ctx: RequestContext = Depends(require_user),
                 db: Session = Depends(get_session)):
    entry = services.TimetableService(db).create(ctx.user_id, payload.model_dump())
    return envelope({"entry": entry.public()}, "Timetable entry created successfully")


@router.put("/{entry_id}")
def update_entry(entry_id: str, payload: TimetableUpdateIn, ctx: RequestContext = Depends(require_user),
                 db: Session = Depends(get_session)):
    entry = services.TimetableService(db).update(ctx.user_id, entry_id, payload.model_dump(exclude_unset=True))
    return envelope({"entry": entry.public()}, "Timetable entry updated successfully")


@router.delete("/{entry_id}")
def delete_entry(entry_id: str, ctx: RequestContext = Depends(require_user), db: Session = Depends(get_session)):
    services.TimetableService(db).delete(ctx.user_id, entry_id)
    return envelope(message="Timetable entry deleted successfully")
