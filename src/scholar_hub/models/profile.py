"""User profile model."""

from pydantic import BaseModel


class ProfileRecord(BaseModel):
    name: str = ""
    grade: str = ""
    school: str = ""
    goal: str = ""
    language: str = "English"
    avatar: str | None = None
