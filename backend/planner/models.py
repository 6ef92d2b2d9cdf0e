"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Every resource row carries the owning `user_id`; nested lists (subjects,
tags, breaks, goals) live in JSON columns so each row reads like a small
document. JSON columns are only ever reassigned, never mutated in place,
so SQLAlchemy notices the change. Datetime columns are declared as plain
`DateTime` and hold naive UTC values.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel

from .utils.dates import as_utc, iso, utcnow


def new_id() -> str:
    return uuid.uuid4().hex


def _timestamps():
    return Field(default_factory=utcnow, sa_type=DateTime, sa_column_kwargs={"onupdate": utcnow})


class User(SQLModel, table=True):
    """A registered student.

    Fields:
    - `email`: unique, stored trimmed and lowercased
    - `password_hash`: passlib hash string (never store plaintext)
    - `subjects`: ordered list of `{name, assignments, status}` dicts
    """
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    email: str = Field(index=True, nullable=False, unique=True)
    password_hash: str = Field(nullable=False)
    class_label: str
    subjects: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    is_active: bool = True
    last_login: Optional[datetime] = Field(default=None, sa_type=DateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = _timestamps()

    def public(self) -> dict:
        """Projection safe to send to clients; never includes the hash."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "class": self.class_label,
            "subjects": list(self.subjects or []),
            "isActive": self.is_active,
            "lastLogin": iso(self.last_login),
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


class Task(SQLModel, table=True):
    """A piece of homework or revision with a due date."""
    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    title: str
    description: Optional[str] = None
    subject: str = Field(index=True)
    priority: str = "Medium"
    status: str = Field(default="Pending", index=True)
    due_date: datetime = Field(index=True, sa_type=DateTime)
    estimated_time: Optional[int] = None
    actual_time: int = 0
    is_completed: bool = False
    completed_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = _timestamps()

    def sync_completion(self, now: Optional[datetime] = None):
        """Keep `is_completed`/`completed_at` consistent with `status`."""
        if self.status == "Completed":
            if not self.completed_at:
                self.completed_at = now or utcnow()
            self.is_completed = True
        else:
            self.completed_at = None
            self.is_completed = False

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        return as_utc(self.due_date) < (now or utcnow()) and self.status != "Completed"

    def public(self, now: Optional[datetime] = None) -> dict:
        return {
            "id": self.id,
            "user": self.user_id,
            "title": self.title,
            "description": self.description,
            "subject": self.subject,
            "priority": self.priority,
            "status": self.status,
            "dueDate": iso(self.due_date),
            "estimatedTime": self.estimated_time,
            "actualTime": self.actual_time,
            "isCompleted": self.is_completed,
            "completedAt": iso(self.completed_at),
            "tags": list(self.tags or []),
            "isOverdue": self.is_overdue(now),
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


class TimetableEntry(SQLModel, table=True):
    """A recurring weekly class slot."""
    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    subject: str
    day_of_week: str = Field(index=True)
    start_time: str
    end_time: str
    teacher: Optional[str] = None
    room: Optional[str] = None
    type: str = "Lecture"
    color: str = "#007bff"
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = _timestamps()

    def public(self) -> dict:
        return {
            "id": self.id,
            "user": self.user_id,
            "subject": self.subject,
            "dayOfWeek": self.day_of_week,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "teacher": self.teacher,
            "room": self.room,
            "type": self.type,
            "color": self.color,
            "isActive": self.is_active,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


class StudySession(SQLModel, table=True):
    """A timed block of study, optionally linked to a task.

    `duration` and `total_break_time` are in minutes and are derived
    once `end_time` is known.
    """
    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    subject: str = Field(index=True)
    task_id: Optional[str] = Field(default=None, foreign_key="task.id")
    start_time: datetime = Field(index=True, sa_type=DateTime)
    end_time: Optional[datetime] = Field(default=None, sa_type=DateTime)
    duration: int = 0
    notes: Optional[str] = None
    productivity: Optional[int] = None
    status: str = "Active"
    breaks: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    total_break_time: int = 0
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = _timestamps()

    @property
    def effective_study_time(self) -> int:
        return self.duration - self.total_break_time

    def public(self) -> dict:
        return {
            "id": self.id,
            "user": self.user_id,
            "subject": self.subject,
            "task": self.task_id,
            "startTime": iso(self.start_time),
            "endTime": iso(self.end_time),
            "duration": self.duration,
            "notes": self.notes,
            "productivity": self.productivity,
            "status": self.status,
            "breaks": list(self.breaks or []),
            "totalBreakTime": self.total_break_time,
            "effectiveStudyTime": self.effective_study_time,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


class Reminder(SQLModel, table=True):
    """A dated nudge about an assignment, exam or other event."""
    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    title: str
    description: Optional[str] = None
    reminder_date: datetime = Field(index=True, sa_type=DateTime)
    type: str = "Other"
    priority: str = "Medium"
    is_completed: bool = False
    is_active: bool = True
    task_id: Optional[str] = Field(default=None, foreign_key="task.id")
    subject: Optional[str] = None
    completed_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = _timestamps()

    def sync_completion(self, now: Optional[datetime] = None):
        if self.is_completed:
            if not self.completed_at:
                self.completed_at = now or utcnow()
        else:
            self.completed_at = None

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        return as_utc(self.reminder_date) < (now or utcnow()) and not self.is_completed

    def public(self, now: Optional[datetime] = None) -> dict:
        return {
            "id": self.id,
            "user": self.user_id,
            "title": self.title,
            "description": self.description,
            "reminderDate": iso(self.reminder_date),
            "type": self.type,
            "priority": self.priority,
            "isCompleted": self.is_completed,
            "isActive": self.is_active,
            "task": self.task_id,
            "subject": self.subject,
            "completedAt": iso(self.completed_at),
            "isOverdue": self.is_overdue(now),
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


class ProgressRecord(SQLModel, table=True):
    """A daily log of study time, completed tasks and goals for a subject.

    Each goal is a `{title, target, achieved, unit, isCompleted}` dict.
    """
    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    subject: str = Field(index=True)
    date: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)
    study_time: int = 0
    tasks_completed: int = 0
    productivity: Optional[int] = None
    goals: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    notes: Optional[str] = None
    mood: str = "Average"
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = _timestamps()

    @property
    def overall_progress(self) -> int:
        """Mean per-goal completion percentage, each goal capped at 100."""
        if not self.goals:
            return 0
        total = 0.0
        for goal in self.goals:
            target = goal.get("target")
            if target:
                total += min(goal.get("achieved", 0) / target * 100, 100)
        return round(total / len(self.goals))

    def public(self) -> dict:
        return {
            "id": self.id,
            "user": self.user_id,
            "subject": self.subject,
            "date": iso(self.date),
            "studyTime": self.study_time,
            "tasksCompleted": self.tasks_completed,
            "productivity": self.productivity,
            "goals": list(self.goals or []),
            "notes": self.notes,
            "mood": self.mood,
            "overallProgress": self.overall_progress,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
