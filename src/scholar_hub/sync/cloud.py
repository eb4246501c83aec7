"""Best-effort Supabase sync of local collections.

Every call is a no-op without a signed-in user, and every failure is logged
and swallowed: local storage stays the source of truth.
"""

import structlog
from supabase import Client, create_client

from scholar_hub.config import Settings
from scholar_hub.models.planner import Routine, TaskItem, TimetableEntry
from scholar_hub.models.profile import ProfileRecord
from scholar_hub.models.study import Subject

logger = structlog.get_logger()

SYNC_TABLES = ("profiles", "tasks", "subjects", "timetable", "routines")


def task_row(task: TaskItem, user_id: str) -> dict:
    return {
        "id": task.id,
        "user_id": user_id,
        "title": task.title,
        "priority": task.priority.value,
        "due_date": task.due_date,
        "is_completed": task.is_completed,
    }


def subject_row(subject: Subject, user_id: str) -> dict:
    return {"id": subject.id, "user_id": user_id, "name": subject.name, "color": subject.color}


def timetable_row(entry: TimetableEntry, user_id: str) -> dict:
    return {
        "id": entry.id,
        "user_id": user_id,
        "day": entry.day.value,
        "subject": entry.subject,
        "start_time": entry.start_time,
        "end_time": entry.end_time,
        "location": entry.location,
    }


def routine_row(routine: Routine, user_id: str) -> dict:
    return {
        "id": routine.id,
        "user_id": user_id,
        "title": routine.title,
        "time": routine.time,
        "is_completed": routine.is_completed,
        "duration_minutes": routine.duration_minutes,
    }


class CloudSync:
    """Upserts local records for the authenticated Supabase user.

    Args:
        client: Supabase client.
    """

    def __init__(self, client: Client):
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "CloudSync | None":
        if not settings.sync_enabled:
            return None
        try:
            return cls(create_client(settings.supabase_url, settings.supabase_key))
        except Exception:
            logger.exception("cloud_sync_client_failed")
            return None

    # Auth

    def current_user_id(self) -> str | None:
        try:
            response = self.client.auth.get_user()
        except Exception:
            logger.warning("cloud_sync_no_session")
            return None
        if response is None or response.user is None:
            return None
        return response.user.id

    def sign_up(self, email: str, password: str) -> str | None:
        try:
            response = self.client.auth.sign_up({"email": email, "password": password})
        except Exception:
            logger.exception("cloud_sign_up_failed")
            return None
        return response.user.id if response.user else None

    def sign_in(self, email: str, password: str) -> str | None:
        try:
            response = self.client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except Exception:
            logger.exception("cloud_sign_in_failed")
            return None
        if response.user is None:
            return None
        logger.info("cloud_signed_in", user_id=response.user.id)
        return response.user.id

    def sign_out(self) -> None:
        try:
            self.client.auth.sign_out()
        except Exception:
            logger.exception("cloud_sign_out_failed")

    # Upserts

    def _upsert(self, table: str, rows: list[dict]) -> int | None:
        if not rows:
            return 0
        try:
            response = self.client.table(table).upsert(rows).execute()
        except Exception:
            logger.exception("cloud_upsert_failed", table=table, rows=len(rows))
            return None
        logger.info("cloud_upserted", table=table, rows=len(rows))
        return len(response.data or [])

    def sync_profile(self, profile: ProfileRecord) -> int | None:
        user_id = self.current_user_id()
        if user_id is None:
            return None
        return self._upsert("profiles", [{"id": user_id, **profile.model_dump(exclude_none=True)}])

    def save_tasks(self, tasks: list[TaskItem]) -> int | None:
        user_id = self.current_user_id()
        if user_id is None:
            return None
        return self._upsert("tasks", [task_row(t, user_id) for t in tasks])

    def save_subjects(self, subjects: list[Subject]) -> int | None:
        user_id = self.current_user_id()
        if user_id is None:
            return None
        return self._upsert("subjects", [subject_row(s, user_id) for s in subjects])

    def save_timetable(self, entries: list[TimetableEntry]) -> int | None:
        user_id = self.current_user_id()
        if user_id is None:
            return None
        return self._upsert("timetable", [timetable_row(e, user_id) for e in entries])

    def save_routines(self, routines: list[Routine]) -> int | None:
        user_id = self.current_user_id()
        if user_id is None:
            return None
        return self._upsert("routines", [routine_row(r, user_id) for r in routines])

    # Read-back

    def fetch(self, table: str) -> list[dict]:
        """Select every row of ``table`` visible to the current user."""
        if table not in SYNC_TABLES:
            raise ValueError(f"Unknown sync table: {table}")
        if self.current_user_id() is None:
            return []
        columns = "*, subtasks(*)" if table == "tasks" else "*"
        try:
            response = self.client.table(table).select(columns).execute()
        except Exception:
            logger.exception("cloud_fetch_failed", table=table)
            return []
        return response.data or []
