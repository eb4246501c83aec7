"""Planner data models: tasks, routines and the weekly timetable."""

import uuid
from datetime import date
from enum import StrEnum

from pydantic import BaseModel, Field


def new_id() -> str:
    return str(uuid.uuid4())


class Priority(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class Recurrence(StrEnum):
    NONE = "None"
    DAILY = "Daily"
    WEEKLY = "Weekly"


class Weekday(StrEnum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


class Subtask(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str
    is_completed: bool = False


class TaskItem(BaseModel):
    """A to-do item. ``id`` never changes once assigned."""

    id: str = Field(default_factory=new_id)
    title: str
    due_date: str = Field(default_factory=lambda: date.today().isoformat())
    is_completed: bool = False
    priority: Priority = Priority.MEDIUM
    subject_id: str | None = None
    duration_minutes: int | None = None
    recurrence: Recurrence = Recurrence.NONE
    subtasks: list[Subtask] = Field(default_factory=list)


class Routine(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str
    time: str = "Anytime"
    is_completed: bool = False
    duration_minutes: int | None = None


class TimetableEntry(BaseModel):
    """A weekly class slot. Overlapping entries are allowed."""

    id: str = Field(default_factory=new_id)
    day: Weekday
    subject: str
    start_time: str
    end_time: str
    location: str = ""


def entry_at(entries: list[TimetableEntry], day: Weekday, time: str) -> TimetableEntry | None:
    """Return the first entry on ``day`` whose slot contains ``time`` (HH:MM)."""
    for entry in entries:
        if entry.day == day and entry.start_time <= time < entry.end_time:
            return entry
    return None
