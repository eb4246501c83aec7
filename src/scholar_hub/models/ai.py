"""Result types returned by the AI gateway."""

from enum import StrEnum
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class AIErrorKind(StrEnum):
    MISSING_KEY = "missing_key"
    INVALID_KEY = "invalid_key"
    QUOTA = "quota"
    NETWORK = "network"
    UNPARSEABLE = "unparseable"
    GENERIC = "generic"


ERROR_MESSAGES: dict[AIErrorKind, str] = {
    AIErrorKind.MISSING_KEY: (
        "The AI coach is not configured yet. Add an API key in your settings to enable it."
    ),
    AIErrorKind.INVALID_KEY: (
        "The AI coach is having trouble accessing the academic gateway. "
        "Please verify your connection or API configuration."
    ),
    AIErrorKind.QUOTA: "The AI coach is handling too many requests. Please try again in a moment!",
    AIErrorKind.NETWORK: "Connection error. Check your internet connection and try again.",
    AIErrorKind.UNPARSEABLE: (
        "The AI coach returned something unexpected. Try rephrasing your request."
    ),
    AIErrorKind.GENERIC: (
        "The AI coach is currently busy analyzing new data. Please try again in a moment!"
    ),
}


class AIError(BaseModel):
    kind: AIErrorKind
    message: str

    @classmethod
    def of(cls, kind: AIErrorKind) -> "AIError":
        return cls(kind=kind, message=ERROR_MESSAGES[kind])


class AIResult(BaseModel, Generic[T]):
    """Either ``ok`` holds the value or ``error`` describes the failure."""

    ok: T | None = None
    error: AIError | None = None

    @property
    def is_ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "AIResult[T]":
        return cls(ok=value)

    @classmethod
    def failure(cls, kind: AIErrorKind) -> "AIResult[T]":
        return cls(error=AIError.of(kind))


class ChatReply(BaseModel):
    text: str


class StudyCard(BaseModel):
    front: str
    back: str


class StudyPack(BaseModel):
    summary: str
    flashcards: list[StudyCard] = Field(default_factory=list)


class PrioritySuggestion(BaseModel):
    task_id: str
    rationale: str


class HabitSuggestion(BaseModel):
    title: str
    time: str = "Anytime"
    duration_minutes: int = 30


class GKQuestion(BaseModel):
    question: str
    options: list[str]
    correct_answer_index: int


class FlowSuggestion(BaseModel):
    minutes: int = 25
    tip: str = "Focus on one small part first."


class CoachAnswer(BaseModel):
    """What the coach view shows after a paid question."""

    text: str
    points_spent: int = 0
    error: AIErrorKind | None = None
