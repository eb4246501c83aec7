"""Versioned key-value persistence (JSON + fcntl.flock + atomic write).

Each storage key maps to one JSON file. Reads never raise: a missing file, a
``null`` value, invalid JSON or data that no longer matches the expected shape
all fall back to the caller's default. Old-shape data is reset, not migrated.
"""

import copy
import fcntl
import json
import os
import tempfile
from enum import StrEnum
from pathlib import Path
from typing import Any, TypeVar

import structlog
from pydantic import TypeAdapter, ValidationError
from pydantic_core import to_jsonable_python

logger = structlog.get_logger()

T = TypeVar("T")


class StorageKey(StrEnum):
    """One key per entity type. Bump the suffix when a shape changes."""

    TASKS = "sa_tasks_v2"
    TIMETABLE = "sa_timetable_v2"
    ROUTINES = "sa_routine_v2"
    POINTS = "sa_points_v2"
    PROFILE = "sa_profile_v2"
    SUBJECTS = "sa_subjects_v2"
    FLASHCARDS = "sa_flashcards_v2"
    QUIZZES = "sa_quizzes_v2"
    FORUM_POSTS = "sa_forum_posts_v2"
    DOC_RESOURCES = "sa_doc_resources_v2"
    ACHIEVEMENTS = "sa_achievements_v2"


class DurableStore:
    """Whole-value JSON store rooted at a directory.

    Args:
        root: Directory holding one ``<key>.json`` file per key.
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def get(self, key: str, default: T, shape: Any = None) -> T:
        """Load the value stored under ``key``.

        Args:
            key: Storage key.
            default: Returned (as a fresh copy) when nothing usable is stored.
            shape: Optional type the decoded value must validate against,
                e.g. ``list[TaskItem]``.

        Returns:
            The decoded value, or a copy of ``default``.
        """
        path = self.path_for(key)
        if not path.exists():
            return copy.deepcopy(default)
        try:
            with open(path, encoding="utf-8") as f:
                fcntl.flock(f, fcntl.LOCK_SH)
                raw = f.read()
                fcntl.flock(f, fcntl.LOCK_UN)
            data = json.loads(raw)
            if data is None:
                return copy.deepcopy(default)
            if shape is not None:
                return TypeAdapter(shape).validate_python(data)
            return data
        except (OSError, ValueError, RecursionError, ValidationError) as exc:
            # json.JSONDecodeError is a ValueError; deeply nested input raises RecursionError
            logger.warning("storage_decode_failed", key=key, error=str(exc))
            return copy.deepcopy(default)

    def set(self, key: str, value: Any) -> None:
        """Serialize ``value`` and overwrite whatever ``key`` held."""
        path = self.path_for(key)
        payload = to_jsonable_python(value)
        with tempfile.NamedTemporaryFile(
            "w", dir=self.root, delete=False, suffix=".json", encoding="utf-8"
        ) as tmp:
            json.dump(payload, tmp)
        os.replace(tmp.name, path)
        logger.debug("storage_written", key=key)

    def delete(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)
