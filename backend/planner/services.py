"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories
and the few derived-value rules of the planner (overdue detection,
session durations, weekly aggregation). They raise `planner.errors`
exceptions and never build HTTP responses.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from passlib.context import CryptContext
from sqlmodel import Session

from . import models, repositories
from .auth import TokenIssuer
from .errors import DuplicateResource, InvalidCredentials, NotFound, ValidationError
from .utils.dates import (DAYS_OF_WEEK, as_utc, hhmm_to_minutes, iso, last_week_window, minutes_between,
                          sunday_week_number, utcnow)

logger = logging.getLogger("planner.services")

PROFILE_FIELDS = ("name", "class_label", "subjects")


def build_password_context() -> CryptContext:
    """Deliberately slow salted hashing; passlib compares in constant time."""
    return CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _subject_dicts(subjects) -> List[dict]:
    out = []
    for s in subjects or []:
        if hasattr(s, "model_dump"):
            s = s.model_dump()
        out.append({"name": s["name"].strip(), "assignments": list(s.get("assignments") or []),
                    "status": s.get("status") or "Pending"})
    return out


def _ensure_unique_subjects(subjects: List[dict]):
    seen = set()
    for s in subjects:
        key = s["name"].lower()
        if key in seen:
            raise ValidationError.for_field("subjects", f"Duplicate subject: {s['name']}")
        seen.add(key)


class CredentialStore:
    """Owns user records and password hashes.

    Plaintext passwords only ever pass through `hash`/`verify` and are
    never stored or logged.
    """
    def __init__(self, session: Session, pwd_ctx: CryptContext):
        self.session = session
        self.pwd_ctx = pwd_ctx
        self.user_repo = repositories.UserRepository(session)

    def create(self, name: str, email: str, password: str, class_label: str, subjects=None) -> models.User:
        """Create a user, raising `DuplicateResource` if the email is taken."""
        email = normalize_email(email)
        if self.user_repo.get_by_email(email):
            raise DuplicateResource("User already exists with this email")
        subject_list = _subject_dicts(subjects)
        _ensure_unique_subjects(subject_list)
        user = models.User(
            name=name,
            email=email,
            password_hash=self.pwd_ctx.hash(password),
            class_label=class_label,
            subjects=subject_list,
        )
        return self.user_repo.create(user)

    def find_by_email(self, email: str) -> Optional[models.User]:
        return self.user_repo.get_by_email(normalize_email(email))

    def verify_password(self, user: Optional[models.User], password: str) -> bool:
        """Check `password` against the user's hash.

        With no user a dummy verification still runs, so an unknown
        email costs the same time as a wrong password.
        """
        if user is None or not user.password_hash:
            self.pwd_ctx.dummy_verify()
            return False
        try:
            return self.pwd_ctx.verify(password, user.password_hash)
        except (ValueError, TypeError):
            logger.warning("unreadable password hash for user %s", user.id)
            return False

    def change_password(self, user: models.User, new_password: str) -> models.User:
        user.password_hash = self.pwd_ctx.hash(new_password)
        return self.user_repo.save(user)

    def update_profile(self, user: models.User, fields: dict) -> models.User:
        """Apply name/class_label/subjects; any other key is ignored.

        Everything is validated before the user is touched.
        """
        changes = {key: fields[key] for key in PROFILE_FIELDS if fields.get(key) is not None}
        if "subjects" in changes:
            changes["subjects"] = _subject_dicts(changes["subjects"])
            _ensure_unique_subjects(changes["subjects"])
        for key, value in changes.items():
            setattr(user, key, value)
        return self.user_repo.save(user)

    def record_login(self, user: models.User, when: datetime) -> models.User:
        user.last_login = when
        return self.user_repo.save(user)


class AuthService:
    """Registration, login and password change flows."""
    def __init__(self, session: Session, pwd_ctx: CryptContext, tokens: TokenIssuer,
                 clock: Callable[[], datetime] = utcnow):
        self.credentials = CredentialStore(session, pwd_ctx)
        self.tokens = tokens
        self.clock = clock

    def register(self, name: str, email: str, password: str, class_label: str,
                 subjects=None) -> Tuple[models.User, str]:
        user = self.credentials.create(name, email, password, class_label, subjects)
        logger.info("user registered id=%s", user.id)
        return user, self.tokens.issue(user.id)

    def login(self, email: str, password: str) -> Tuple[models.User, str]:
        """Return `(user, token)` or raise `InvalidCredentials`.

        The password is verified before looking at `is_active` so every
        rejection takes one hash computation and carries the same message.
        """
        user = self.credentials.find_by_email(email)
        password_ok = self.credentials.verify_password(user, password)
        if user is None or not password_ok or not user.is_active:
            logger.info("login rejected")
            raise InvalidCredentials()
        user = self.credentials.record_login(user, self.clock())
        return user, self.tokens.issue(user.id)

    def change_password(self, user: models.User, current_password: str, new_password: str) -> models.User:
        if not self.credentials.verify_password(user, current_password):
            raise ValidationError.for_field("currentPassword", "Current password is incorrect")
        user = self.credentials.change_password(user, new_password)
        logger.info("password changed id=%s", user.id)
        return user


class SubjectService:
    """Subjects live on the user row as an ordered JSON list."""
    def __init__(self, session: Session):
        self.user_repo = repositories.UserRepository(session)

    @staticmethod
    def _find(user: models.User, name: str) -> Optional[int]:
        for idx, s in enumerate(user.subjects or []):
            if s["name"].lower() == name.strip().lower():
                return idx
        return None

    def list(self, user: models.User) -> List[dict]:
        return list(user.subjects or [])

    def add(self, user: models.User, subject) -> dict:
        new = _subject_dicts([subject])[0]
        if self._find(user, new["name"]) is not None:
            raise DuplicateResource("Subject already exists")
        user.subjects = list(user.subjects or []) + [new]
        self.user_repo.save(user)
        return new

    def update(self, user: models.User, name: str, fields: dict) -> dict:
        idx = self._find(user, name)
        if idx is None:
            raise NotFound("Subject not found")
        subjects = [dict(s) for s in user.subjects]
        if fields.get("assignments") is not None:
            subjects[idx]["assignments"] = list(fields["assignments"])
        if fields.get("status") is not None:
            subjects[idx]["status"] = fields["status"]
        user.subjects = subjects
        self.user_repo.save(user)
        return subjects[idx]


def _present(fields: dict) -> dict:
    """Drop explicit nulls from a partial update; required columns stay set."""
    return {k: v for k, v in fields.items() if v is not None}


class TaskService:
    def __init__(self, session: Session, clock: Callable[[], datetime] = utcnow):
        self.repo = repositories.TaskRepository(session)
        self.clock = clock

    def get(self, user_id: str, task_id: str) -> models.Task:
        task = self.repo.get(user_id, task_id)
        if not task:
            raise NotFound("Task not found")
        return task

    def list(self, user_id: str, status=None, subject=None, priority=None) -> List[models.Task]:
        return self.repo.list(user_id, status=status, subject=subject, priority=priority)

    def overdue(self, user_id: str) -> List[models.Task]:
        return self.repo.list_overdue(user_id, self.clock())

    def create(self, user_id: str, fields: dict) -> models.Task:
        fields = _present(fields)
        fields["due_date"] = as_utc(fields["due_date"])
        task = models.Task(user_id=user_id, **fields)
        task.sync_completion(self.clock())
        return self.repo.save(task)

    def update(self, user_id: str, task_id: str, fields: dict) -> models.Task:
        task = self.get(user_id, task_id)
        for key, value in _present(fields).items():
            if key == "due_date":
                value = as_utc(value)
            setattr(task, key, value)
        task.sync_completion(self.clock())
        return self.repo.save(task)

    def complete(self, user_id: str, task_id: str) -> models.Task:
        return self.update(user_id, task_id, {"status": "Completed"})

    def delete(self, user_id: str, task_id: str):
        self.repo.delete(self.get(user_id, task_id))


def _check_slot(start_time: str, end_time: str):
    if hhmm_to_minutes(end_time) <= hhmm_to_minutes(start_time):
        raise ValidationError.for_field("endTime", "End time must be after start time")


class TimetableService:
    def __init__(self, session: Session):
        self.repo = repositories.TimetableRepository(session)

    @staticmethod
    def _sort_key(entry: models.TimetableEntry):
        return DAYS_OF_WEEK.index(entry.day_of_week), hhmm_to_minutes(entry.start_time)

    def list(self, user_id: str, day_of_week: Optional[str] = None) -> List[models.TimetableEntry]:
        """Active entries ordered Monday to Sunday, then by start time."""
        return sorted(self.repo.list_active(user_id, day_of_week), key=self._sort_key)

    def week(self, user_id: str) -> Dict[str, List[models.TimetableEntry]]:
        week = {day: [] for day in DAYS_OF_WEEK}
        for entry in self.list(user_id):
            week[entry.day_of_week].append(entry)
        return week

    def get(self, user_id: str, entry_id: str) -> models.TimetableEntry:
        entry = self.repo.get(user_id, entry_id)
        if not entry:
            raise NotFound("Timetable entry not found")
        return entry

    def create(self, user_id: str, fields: dict) -> models.TimetableEntry:
        fields = _present(fields)
        _check_slot(fields["start_time"], fields["end_time"])
        return self.repo.save(models.TimetableEntry(user_id=user_id, **fields))

    def update(self, user_id: str, entry_id: str, fields: dict) -> models.TimetableEntry:
        entry = self.get(user_id, entry_id)
        fields = _present(fields)
        _check_slot(fields.get("start_time", entry.start_time), fields.get("end_time", entry.end_time))
        for key, value in fields.items():
            setattr(entry, key, value)
        return self.repo.save(entry)

    def delete(self, user_id: str, entry_id: str):
        self.repo.delete(self.get(user_id, entry_id))


def _break_dicts(breaks) -> List[dict]:
    """Serialise breaks for the JSON column, deriving missing durations."""
    out = []
    for b in breaks or []:
        start, end = as_utc(b.get("start_time")), as_utc(b.get("end_time"))
        duration = b.get("duration")
        if duration is None and start and end:
            duration = max(0, minutes_between(start, end))
        out.append({"startTime": iso(start), "endTime": iso(end), "duration": duration})
    return out


class StudySessionService:
    def __init__(self, session: Session, clock: Callable[[], datetime] = utcnow):
        self.repo = repositories.StudySessionRepository(session)
        self.task_repo = repositories.TaskRepository(session)
        self.clock = clock

    @staticmethod
    def _derive(study: models.StudySession):
        """Recompute duration and break totals once the session has ended."""
        if study.end_time and study.start_time:
            if as_utc(study.end_time) < as_utc(study.start_time):
                raise ValidationError.for_field("endTime", "End time must be after start time")
            study.duration = minutes_between(study.start_time, study.end_time)
            study.total_break_time = sum(b.get("duration") or 0 for b in study.breaks or [])

    def get(self, user_id: str, session_id: str) -> models.StudySession:
        study = self.repo.get(user_id, session_id)
        if not study:
            raise NotFound("Study session not found")
        return study

    def list(self, user_id: str, start: Optional[datetime] = None,
             end: Optional[datetime] = None) -> List[models.StudySession]:
        start, end = as_utc(start), as_utc(end)
        if start and end and end < start:
            raise ValidationError.for_field("endDate", "endDate must not be before startDate")
        return self.repo.list(user_id, start, end)

    def start(self, user_id: str, fields: dict) -> models.StudySession:
        fields = _present(fields)
        task_id = fields.pop("task", None)
        if task_id and not self.task_repo.get(user_id, task_id):
            raise ValidationError.for_field("task", "Task not found")
        fields["start_time"] = as_utc(fields["start_time"])
        fields["breaks"] = _break_dicts(fields.get("breaks"))
        study = models.StudySession(user_id=user_id, task_id=task_id, **fields)
        self._derive(study)
        return self.repo.save(study)

    def end(self, user_id: str, session_id: str, fields: dict) -> models.StudySession:
        study = self.get(user_id, session_id)
        fields = _present(fields)
        study.end_time = as_utc(fields["end_time"])
        study.status = "Completed"
        if fields.get("productivity"):
            study.productivity = fields["productivity"]
        if fields.get("notes"):
            study.notes = fields["notes"]
        if "breaks" in fields:
            study.breaks = _break_dicts(fields["breaks"])
        self._derive(study)
        return self.repo.save(study)

    def weekly_stats(self, user_id: str) -> Tuple[List[dict], datetime, datetime]:
        """Per-subject totals for completed sessions started in the last 7 days."""
        start, end = last_week_window(self.clock())
        groups = defaultdict(list)
        for study in self.repo.list_completed_between(user_id, start, end):
            groups[study.subject].append(study)
        stats = []
        for subject in sorted(groups):
            sessions = groups[subject]
            ratings = [s.productivity for s in sessions if s.productivity is not None]
            stats.append({
                "subject": subject,
                "totalSessions": len(sessions),
                "totalTime": sum(s.duration for s in sessions),
                "avgProductivity": round(sum(ratings) / len(ratings), 2) if ratings else None,
            })
        return stats, start, end


class ReminderService:
    def __init__(self, session: Session, clock: Callable[[], datetime] = utcnow):
        self.repo = repositories.ReminderRepository(session)
        self.task_repo = repositories.TaskRepository(session)
        self.clock = clock

    def _check_task(self, user_id: str, fields: dict):
        task_id = fields.pop("task", None)
        if task_id is None:
            return
        if not self.task_repo.get(user_id, task_id):
            raise ValidationError.for_field("task", "Task not found")
        fields["task_id"] = task_id

    def get(self, user_id: str, reminder_id: str) -> models.Reminder:
        reminder = self.repo.get(user_id, reminder_id)
        if not reminder:
            raise NotFound("Reminder not found")
        return reminder

    def list_active(self, user_id: str) -> List[models.Reminder]:
        return self.repo.list_active(user_id)

    def upcoming(self, user_id: str, hours: int) -> List[models.Reminder]:
        now = self.clock()
        return self.repo.list_upcoming(user_id, now, now + timedelta(hours=hours))

    def create(self, user_id: str, fields: dict) -> models.Reminder:
        fields = _present(fields)
        self._check_task(user_id, fields)
        fields["reminder_date"] = as_utc(fields["reminder_date"])
        reminder = models.Reminder(user_id=user_id, **fields)
        reminder.sync_completion(self.clock())
        return self.repo.save(reminder)

    def update(self, user_id: str, reminder_id: str, fields: dict) -> models.Reminder:
        reminder = self.get(user_id, reminder_id)
        fields = _present(fields)
        self._check_task(user_id, fields)
        for key, value in fields.items():
            if key == "reminder_date":
                value = as_utc(value)
            setattr(reminder, key, value)
        reminder.sync_completion(self.clock())
        return self.repo.save(reminder)

    def delete(self, user_id: str, reminder_id: str):
        self.repo.delete(self.get(user_id, reminder_id))


def _goal_dicts(goals) -> List[dict]:
    out = []
    for g in goals or []:
        target = g.get("target")
        achieved = g.get("achieved") or 0
        out.append({
            "title": g["title"],
            "target": target,
            "achieved": achieved,
            "unit": g.get("unit") or "tasks",
            "isCompleted": target is not None and achieved >= target,
        })
    return out


class ProgressService:
    def __init__(self, session: Session, clock: Callable[[], datetime] = utcnow):
        self.repo = repositories.ProgressRepository(session)
        self.clock = clock

    def list(self, user_id: str, start: Optional[datetime] = None, end: Optional[datetime] = None,
             subject: Optional[str] = None) -> List[models.ProgressRecord]:
        start, end = as_utc(start), as_utc(end)
        if start and end and end < start:
            raise ValidationError.for_field("endDate", "endDate must not be before startDate")
        return self.repo.list(user_id, start, end, subject)

    def create(self, user_id: str, fields: dict) -> models.ProgressRecord:
        fields = _present(fields)
        fields["date"] = as_utc(fields.get("date")) or self.clock()
        fields["goals"] = _goal_dicts(fields.get("goals"))
        return self.repo.save(models.ProgressRecord(user_id=user_id, **fields))

    def weekly_stats(self, user_id: str) -> Tuple[List[dict], datetime, datetime]:
        """Totals for the last 7 days grouped by subject and Sunday-based week."""
        start, end = last_week_window(self.clock())
        groups = defaultdict(list)
        for record in self.repo.list(user_id, start, end):
            groups[(record.subject, sunday_week_number(record.date.date()))].append(record)
        stats = []
        for subject, week in sorted(groups, key=lambda k: (k[1], k[0])):
            records = groups[(subject, week)]
            ratings = [r.productivity for r in records if r.productivity is not None]
            stats.append({
                "subject": subject,
                "week": week,
                "totalStudyTime": sum(r.study_time for r in records),
                "totalTasksCompleted": sum(r.tasks_completed for r in records),
                "avgProductivity": round(sum(ratings) / len(ratings), 2) if ratings else None,
                "records": len(records),
            })
        return stats, start, end
