"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
tasks, timetable entries, study sessions, reminders, progress records).
Resource repositories take the owning `user_id` on every call and never
return another user's rows. Repositories return SQLModel objects and
perform commits/refreshes where appropriate.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, col, select

from . import models
from .errors import DuplicateResource, PersistenceFailure

logger = logging.getLogger("planner.db")


def _commit(session: Session, *instances):
    """Commit the session and refresh `instances`.

    Store errors are rolled back, logged with detail and re-raised as
    `PersistenceFailure`; the detail never reaches the client.
    """
    try:
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("commit failed")
        raise PersistenceFailure() from exc
    for obj in instances:
        session.refresh(obj)


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance.

        A concurrent registration that slips past the up-front email
        check still hits the unique index and becomes `DuplicateResource`.
        """
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise DuplicateResource("User already exists with this email") from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("user insert failed")
            raise PersistenceFailure() from exc
        self.session.refresh(user)
        return user

    def save(self, user: models.User) -> models.User:
        self.session.add(user)
        _commit(self.session, user)
        return user

    def get_by_email(self, email: str) -> Optional[models.User]:
        """Return a `User` by already-normalised email or `None`."""
        stmt = select(models.User).where(models.User.email == email)
        return self.session.exec(stmt).first()

    def get(self, user_id: str) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)


class _ScopedRepository:
    """Shared get/save/delete for rows owned by a user."""
    model = None

    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: str, record_id: str):
        """Fetch a row by id, or `None` if missing or owned by someone else."""
        stmt = select(self.model).where(self.model.id == record_id, self.model.user_id == user_id)
        return self.session.exec(stmt).first()

    def save(self, record):
        self.session.add(record)
        _commit(self.session, record)
        return record

    def delete(self, record):
        self.session.delete(record)
        _commit(self.session)


class TaskRepository(_ScopedRepository):
    model = models.Task

    def list(self, user_id: str, status: Optional[str] = None, subject: Optional[str] = None,
             priority: Optional[str] = None) -> List[models.Task]:
        """List tasks by due date, newest first within the same due date.

        `subject` is a case-insensitive substring filter.
        """
        stmt = select(models.Task).where(models.Task.user_id == user_id)
        if status:
            stmt = stmt.where(models.Task.status == status)
        if subject:
            stmt = stmt.where(func.lower(models.Task.subject).contains(subject.lower(), autoescape=True))
        if priority:
            stmt = stmt.where(models.Task.priority == priority)
        stmt = stmt.order_by(col(models.Task.due_date).asc(), col(models.Task.created_at).desc())
        return self.session.exec(stmt).all()

    def list_overdue(self, user_id: str, now: datetime) -> List[models.Task]:
        stmt = select(models.Task).where(
            models.Task.user_id == user_id,
            models.Task.due_date < now,
            models.Task.status != "Completed",
        ).order_by(col(models.Task.due_date).asc())
        return self.session.exec(stmt).all()


class TimetableRepository(_ScopedRepository):
    model = models.TimetableEntry

    def list_active(self, user_id: str, day_of_week: Optional[str] = None) -> List[models.TimetableEntry]:
        stmt = select(models.TimetableEntry).where(
            models.TimetableEntry.user_id == user_id,
            models.TimetableEntry.is_active == True,  # noqa: E712
        )
        if day_of_week:
            stmt = stmt.where(models.TimetableEntry.day_of_week == day_of_week)
        return self.session.exec(stmt).all()


class StudySessionRepository(_ScopedRepository):
    model = models.StudySession

    def list(self, user_id: str, start: Optional[datetime] = None,
             end: Optional[datetime] = None) -> List[models.StudySession]:
        """Sessions newest first, optionally those started within `[start, end]`."""
        stmt = select(models.StudySession).where(models.StudySession.user_id == user_id)
        if start is not None and end is not None:
            stmt = stmt.where(models.StudySession.start_time >= start, models.StudySession.start_time <= end)
        stmt = stmt.order_by(col(models.StudySession.start_time).desc())
        return self.session.exec(stmt).all()

    def list_completed_between(self, user_id: str, start: datetime, end: datetime) -> List[models.StudySession]:
        stmt = select(models.StudySession).where(
            models.StudySession.user_id == user_id,
            models.StudySession.status == "Completed",
            models.StudySession.start_time >= start,
            models.StudySession.start_time <= end,
        )
        return self.session.exec(stmt).all()


class ReminderRepository(_ScopedRepository):
    model = models.Reminder

    def _pending(self, user_id: str):
        return select(models.Reminder).where(
            models.Reminder.user_id == user_id,
            models.Reminder.is_active == True,  # noqa: E712
            models.Reminder.is_completed == False,  # noqa: E712
        )

    def list_active(self, user_id: str) -> List[models.Reminder]:
        stmt = self._pending(user_id).order_by(col(models.Reminder.reminder_date).asc())
        return self.session.exec(stmt).all()

    def list_upcoming(self, user_id: str, now: datetime, until: datetime) -> List[models.Reminder]:
        stmt = self._pending(user_id).where(
            models.Reminder.reminder_date >= now,
            models.Reminder.reminder_date <= until,
        ).order_by(col(models.Reminder.reminder_date).asc())
        return self.session.exec(stmt).all()


class ProgressRepository(_ScopedRepository):
    model = models.ProgressRecord

    def list(self, user_id: str, start: Optional[datetime] = None, end: Optional[datetime] = None,
             subject: Optional[str] = None) -> List[models.ProgressRecord]:
        """Records newest first, optionally by date range and subject substring."""
        stmt = select(models.ProgressRecord).where(models.ProgressRecord.user_id == user_id)
        if start is not None and end is not None:
            stmt = stmt.where(models.ProgressRecord.date >= start, models.ProgressRecord.date <= end)
        if subject:
            stmt = stmt.where(func.lower(models.ProgressRecord.subject).contains(subject.lower(), autoescape=True))
        stmt = stmt.order_by(col(models.ProgressRecord.date).desc())
        return self.session.exec(stmt).all()
