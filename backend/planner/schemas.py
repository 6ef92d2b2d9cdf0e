"""Pydantic request schemas used by the API.

Schemas keep API input shapes stable and provide validation for the
route handlers. The wire format is camelCase (`dueDate`, `class`,
`currentPassword`); Python attributes stay snake_case through aliases.
Validators raise `ValueError` with a human readable message, which the
validation handler in `planner.main` turns into `{field, message}` items.
"""

import re
from datetime import datetime
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator

NAME_RE = re.compile(r"^[a-zA-Z\s]+$")

Priority = Literal["Low", "Medium", "High"]
TaskStatus = Literal["Pending", "In Progress", "Completed", "Overdue"]
SubjectStatus = Literal["Pending", "In Progress", "Completed"]
DayOfWeek = Literal["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
ClassType = Literal["Lecture", "Lab", "Tutorial", "Study Session", "Break"]
SessionStatus = Literal["Active", "Completed", "Paused"]
ReminderType = Literal["Assignment", "Exam", "Meeting", "Study Session", "Break", "Other"]
GoalUnit = Literal["hours", "tasks", "pages", "chapters", "exercises"]
Mood = Literal["Excellent", "Good", "Average", "Poor", "Terrible"]

Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
SubjectName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]
HHMM = Annotated[str, StringConstraints(pattern=r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")]
HexColor = Annotated[str, StringConstraints(pattern=r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")]
Rating = Annotated[int, Field(ge=1, le=5)]


class _In(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


def _check_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not 2 <= len(value) <= 50:
        raise ValueError("Name must be between 2 and 50 characters")
    if not NAME_RE.match(value):
        raise ValueError("Name can only contain letters and spaces")
    return value


def _check_class_label(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not 1 <= len(value) <= 20:
        raise ValueError("Class/Grade is required and must be less than 20 characters")
    return value


def _check_unique_subjects(subjects):
    seen = set()
    for subject in subjects or []:
        key = subject.name.lower()
        if key in seen:
            raise ValueError(f"Duplicate subject: {subject.name}")
        seen.add(key)
    return subjects


class SubjectIn(_In):
    """A subject entry on the user profile."""
    name: SubjectName
    assignments: List[str] = Field(default_factory=list)
    status: SubjectStatus = "Pending"


class SubjectUpdateIn(_In):
    assignments: Optional[List[str]] = None
    status: Optional[SubjectStatus] = None


class RegisterIn(_In):
    """Payload for `POST /auth/register`."""
    name: str
    email: EmailStr
    password: str
    class_label: str = Field(alias="class")
    subjects: Optional[List[SubjectIn]] = None

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _check_name(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < 6:
            raise ValueError("Password must be at least 6 characters long")
        return value

    @field_validator("class_label")
    @classmethod
    def validate_class_label(cls, value: str) -> str:
        return _check_class_label(value)

    @field_validator("subjects")
    @classmethod
    def validate_subjects(cls, value):
        return _check_unique_subjects(value)


class LoginIn(_In):
    """Payload for `POST /auth/login`."""
    email: EmailStr
    password: str

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value:
            raise ValueError("Password is required")
        return value


class ProfileUpdateIn(_In):
    """Partial profile update; email and password are not accepted here."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    class_label: Optional[str] = Field(default=None, alias="class")
    subjects: Optional[List[SubjectIn]] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value):
        return _check_name(value)

    @field_validator("class_label")
    @classmethod
    def validate_class_label(cls, value):
        return _check_class_label(value)

    @field_validator("subjects")
    @classmethod
    def validate_subjects(cls, value):
        return _check_unique_subjects(value)


class ChangePasswordIn(_In):
    current_password: str = Field(alias="currentPassword")
    new_password: str = Field(alias="newPassword")

    @field_validator("current_password")
    @classmethod
    def validate_current(cls, value: str) -> str:
        if not value:
            raise ValueError("Current password is required")
        return value

    @field_validator("new_password")
    @classmethod
    def validate_new(cls, value: str) -> str:
        if len(value) < 6:
            raise ValueError("New password must be at least 6 characters long")
        return value


class TaskIn(_In):
    title: Title
    description: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=500)]] = None
    subject: SubjectName
    priority: Priority = "Medium"
    status: TaskStatus = "Pending"
    due_date: datetime = Field(alias="dueDate")
    estimated_time: Optional[Annotated[int, Field(ge=1, le=600)]] = Field(default=None, alias="estimatedTime")
    actual_time: Annotated[int, Field(ge=0)] = Field(default=0, alias="actualTime")
    tags: List[str] = Field(default_factory=list)


class TaskUpdateIn(_In):
    title: Optional[Title] = None
    description: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=500)]] = None
    subject: Optional[SubjectName] = None
    priority: Optional[Priority] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")
    estimated_time: Optional[Annotated[int, Field(ge=1, le=600)]] = Field(default=None, alias="estimatedTime")
    actual_time: Optional[Annotated[int, Field(ge=0)]] = Field(default=None, alias="actualTime")
    tags: Optional[List[str]] = None


class TimetableIn(_In):
    subject: SubjectName
    day_of_week: DayOfWeek = Field(alias="dayOfWeek")
    start_time: HHMM = Field(alias="startTime")
    end_time: HHMM = Field(alias="endTime")
    teacher: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=50)]] = None
    room: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=20)]] = None
    type: ClassType = "Lecture"
    color: HexColor = "#007bff"
    is_active: bool = Field(default=True, alias="isActive")


class TimetableUpdateIn(_In):
    subject: Optional[SubjectName] = None
    day_of_week: Optional[DayOfWeek] = Field(default=None, alias="dayOfWeek")
    start_time: Optional[HHMM] = Field(default=None, alias="startTime")
    end_time: Optional[HHMM] = Field(default=None, alias="endTime")
    teacher: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=50)]] = None
    room: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=20)]] = None
    type: Optional[ClassType] = None
    color: Optional[HexColor] = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")


class BreakIn(_In):
    start_time: Optional[datetime] = Field(default=None, alias="startTime")
    end_time: Optional[datetime] = Field(default=None, alias="endTime")
    duration: Optional[Annotated[int, Field(ge=0)]] = None


class StudySessionIn(_In):
    subject: SubjectName
    task: Optional[str] = None
    start_time: datetime = Field(alias="startTime")
    notes: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=1000)]] = None
    productivity: Optional[Rating] = None
    status: SessionStatus = "Active"
    breaks: List[BreakIn] = Field(default_factory=list)


class StudySessionEndIn(_In):
    end_time: datetime = Field(alias="endTime")
    productivity: Optional[Rating] = None
    notes: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=1000)]] = None
    breaks: Optional[List[BreakIn]] = None


class ReminderIn(_In):
    title: Title
    description: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=300)]] = None
    reminder_date: datetime = Field(alias="reminderDate")
    type: ReminderType = "Other"
    priority: Priority = "Medium"
    task: Optional[str] = None
    subject: Optional[SubjectName] = None
    is_active: bool = Field(default=True, alias="isActive")


class ReminderUpdateIn(_In):
    title: Optional[Title] = None
    description: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=300)]] = None
    reminder_date: Optional[datetime] = Field(default=None, alias="reminderDate")
    type: Optional[ReminderType] = None
    priority: Optional[Priority] = None
    task: Optional[str] = None
    subject: Optional[SubjectName] = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")
    is_completed: Optional[bool] = Field(default=None, alias="isCompleted")


class GoalIn(_In):
    title: Title
    target: Optional[Annotated[float, Field(gt=0)]] = None
    achieved: Annotated[float, Field(ge=0)] = 0
    unit: GoalUnit = "tasks"


class ProgressIn(_In):
    subject: SubjectName
    date: Optional[datetime] = None
    study_time: Annotated[int, Field(ge=0)] = Field(default=0, alias="studyTime")
    tasks_completed: Annotated[int, Field(ge=0)] = Field(default=0, alias="tasksCompleted")
    productivity: Optional[Rating] = None
    goals: List[GoalIn] = Field(default_factory=list)
    notes: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=500)]] = None
    mood: Mood = "Average"

