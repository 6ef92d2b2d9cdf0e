"""Reminder routes."""

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from .. import services
from ..auth import RequestContext, require_user
from ..database import get_session
from ..schemas import ReminderIn, ReminderUpdateIn
from . import envelope

router = APIRouter(prefix="/reminders", tags=["reminders"])


def _many(reminders):
    return {"reminders": [r.public() for r in reminders], "count": len(reminders)}


@router.get("")
def list_reminders(ctx: RequestContext = Depends(require_user), db: Session = Depends(get_session)):
    """Active, not yet completed reminders, soonest first."""
    return envelope(_many(services.ReminderService(db).list_active(ctx.user_id)))


@router.get("/upcoming")
def upcoming_reminders(hours: int = Query(24, ge=1, le=24 * 30), ctx: RequestContext = Depends(require_user),
                       db: Session = Depends(get_session)):
    data = _many(services.ReminderService(db).upcoming(ctx.user_id, hours))
    data["timeframe"] = f"{hours} hours"
    return envelope(data)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_reminder(payload: ReminderIn, ctx: RequestContext = Depends(require_user),
                    db: Session = Depends(get_session)):
    reminder = services.ReminderService(db).create(ctx.user_id, payload.model_dump())
    return envelope({"reminder": reminder.public()}, "Reminder created successfully")


@router.put("/{reminder_id}")
def update_reminder(reminder_id: str, payload: ReminderUpdateIn, ctx: RequestContext = Depends(require_user),
                    db: Session = Depends(get_session)):
    reminder = services.ReminderService(db).update(ctx.user_id, reminder_id, payload.model_dump(exclude_unset=True))
    return envelope({"reminder": reminder.public()}, "Reminder updated successfully")


@router.delete("/{reminder_id}")
def delete_reminder(reminder_id: str, ctx: RequestContext = Depends(require_user),
                    db: Session = Depends(get_session)):
    services.ReminderService(db).delete(ctx.user_id, reminder_id)
    return envelope(message="Reminder deleted successfully")
