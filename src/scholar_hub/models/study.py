"""Study material models: subjects, flashcards, quizzes, forum and badges."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from scholar_hub.models.planner import new_id


class Subject(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    color: str = "brand-blue"


class Flashcard(BaseModel):
    id: str = Field(default_factory=new_id)
    front: str
    back: str
    subject_id: str | None = None


class QuizQuestion(BaseModel):
    question: str
    options: list[str]
    correct_answer_index: int
    explanation: str | None = None


class Quiz(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str
    subject_id: str | None = None
    questions: list[QuizQuestion] = Field(default_factory=list)

    def score(self, answers: list[int]) -> int:
        """Count answers matching the correct option, position by position."""
        return sum(
            1
            for question, answer in zip(self.questions, answers)
            if answer == question.correct_answer_index
        )


class ForumPost(BaseModel):
    id: str = Field(default_factory=new_id)
    author: str
    title: str
    content: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)
    upvotes: int = 1
    comments_count: int = 0


class ResourceType(StrEnum):
    PDF = "pdf"
    VIDEO = "video"


class DocResource(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    type: ResourceType = ResourceType.PDF
    subject_id: str | None = None
    size: str = ""


class AchievementKind(StrEnum):
    TASKS = "tasks"
    POINTS = "points"
    ROUTINE = "routine"
    AI = "ai"
    CUSTOM = "custom"


class Achievement(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str
    description: str = ""
    icon: str = "Medal"
    requirement: int = 1
    type: AchievementKind = AchievementKind.CUSTOM
    is_unlocked: bool = False
    unlocked_at: datetime | None = None
