"""AI gateway: tutoring chat, quiz/flashcard generation and planning suggestions.

Each capability makes a single request and returns an :class:`AIResult`.
Failures never escape as exceptions; they are classified into an
:class:`AIErrorKind` carrying the message shown to the student.
"""

import base64
import json
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import openai
import structlog
from openai import AsyncOpenAI
from pydantic import TypeAdapter

from scholar_hub.ai import prompts
from scholar_hub.models.ai import (
    AIErrorKind,
    AIResult,
    ChatReply,
    FlowSuggestion,
    GKQuestion,
    HabitSuggestion,
    PrioritySuggestion,
    StudyPack,
)
from scholar_hub.models.planner import TaskItem, TimetableEntry
from scholar_hub.models.profile import ProfileRecord
from scholar_hub.models.study import ForumPost, Quiz

logger = structlog.get_logger()

T = TypeVar("T")

SILENT_REPLY = "Guru is currently silent. Try rephrasing your question!"


def classify_error(exc: BaseException) -> AIErrorKind:
    """Map an exception raised during a gateway call to an error kind."""
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return AIErrorKind.INVALID_KEY
    if isinstance(exc, openai.RateLimitError):
        return AIErrorKind.QUOTA
    # APITimeoutError is a subclass of APIConnectionError
    if isinstance(exc, openai.APIConnectionError):
        return AIErrorKind.NETWORK
    # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors
    if isinstance(exc, (ValueError, KeyError, TypeError)):
        return AIErrorKind.UNPARSEABLE
    return AIErrorKind.GENERIC


class AIGateway:
    """Thin request/response wrapper over the OpenAI chat completions API.

    Args:
        api_key: OpenAI API key. ``None`` makes every call return
            ``MISSING_KEY`` without touching the network.
        chat_model: Model for free-form tutoring replies.
        structured_model: Model for JSON-shaped capabilities.
        client: Pre-built client, mainly for tests.
    """

    def __init__(
        self,
        api_key: str | None,
        chat_model: str = "gpt-4o",
        structured_model: str = "gpt-4o-mini",
        client: AsyncOpenAI | None = None,
    ):
        if client is None and api_key:
            client = AsyncOpenAI(api_key=api_key)
        self.client = client
        self.chat_model = chat_model
        self.structured_model = structured_model

    async def _guard(self, capability: str, call: Callable[[], Awaitable[T]]) -> AIResult[T]:
        if self.client is None:
            logger.warning("ai_gateway_missing_key", capability=capability)
            return AIResult.failure(AIErrorKind.MISSING_KEY)
        try:
            value = await call()
        except Exception as exc:
            kind = classify_error(exc)
            logger.exception("ai_gateway_failed", capability=capability, kind=kind.value)
            return AIResult.failure(kind)
        logger.info("ai_gateway_complete", capability=capability)
        return AIResult.success(value)

    async def _complete_text(
        self, system: str, content: Any, temperature: float = 0.7, model: str | None = None
    ) -> str:
        response = await self.client.chat.completions.create(
            model=model or self.chat_model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": content},
            ],
            temperature=temperature,
        )
        return (response.choices[0].message.content or "").strip()

    async def _complete_json(self, system: str, user: str, temperature: float = 0.5) -> dict:
        response = await self.client.chat.completions.create(
            model=self.structured_model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            temperature=temperature,
            response_format={"type": "json_object"},
        )
        data = json.loads(response.choices[0].message.content or "")
        if not isinstance(data, dict):
            raise ValueError("Expected a JSON object")
        return data

    # Tutoring

    async def chat(
        self,
        prompt: str,
        image: bytes | None = None,
        grade: str = "",
        language: str = "English",
    ) -> AIResult[ChatReply]:
        """Answer a study question, optionally about an attached photo."""
        system = prompts.COACH_SYSTEM_PROMPT.format(grade=grade or "unspecified", language=language)
        content: Any = prompt
        if image is not None:
            encoded = base64.b64encode(image).decode("ascii")
            content = [
                {"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{encoded}"}},
                {"type": "text", "text": prompt or prompts.IMAGE_ONLY_PROMPT},
            ]

        async def call() -> ChatReply:
            text = await self._complete_text(system, content)
            return ChatReply(text=text or SILENT_REPLY)

        return await self._guard("chat", call)

    # Study material

    async def generate_quiz(self, topic: str, grade: str = "appropriate level") -> AIResult[Quiz]:
        async def call() -> Quiz:
            data = await self._complete_json(
                prompts.QUIZ_PROMPT.format(topic=topic[:500], grade=grade), f"Topic: {topic}"
            )
            return Quiz(
                title=data.get("title") or f"AI Quiz: {topic[:60]}",
                subject_id="ai_generated",
                questions=data["questions"],
            )

        return await self._guard("generate_quiz", call)

    async def summarize_and_flashcard(self, source_text: str) -> AIResult[StudyPack]:
        async def call() -> StudyPack:
            data = await self._complete_json(prompts.STUDY_PACK_PROMPT, source_text)
            return StudyPack.model_validate(data)

        return await self._guard("summarize_and_flashcard", call)

    async def generate_gk_question(self, language: str = "English") -> AIResult[GKQuestion]:
        async def call() -> GKQuestion:
            data = await self._complete_json(
                prompts.GK_PROMPT.format(language=language), "New question please.", temperature=0.9
            )
            return GKQuestion.model_validate(data)

        return await self._guard("generate_gk_question", call)

    # Planning

    async def suggest_priorities(self, tasks: list[TaskItem]) -> AIResult[list[PrioritySuggestion]]:
        """Rank open tasks. Suggestions naming unknown task ids are dropped."""
        known = {task.id for task in tasks}
        listing = json.dumps(
            [
                {"task_id": t.id, "title": t.title, "due_date": t.due_date, "priority": t.priority}
                for t in tasks
            ]
        )

        async def call() -> list[PrioritySuggestion]:
            data = await self._complete_json(prompts.PRIORITY_PROMPT, f"Tasks: {listing}")
            suggestions = TypeAdapter(list[PrioritySuggestion]).validate_python(data["priorities"])
            return [s for s in suggestions if s.task_id in known]

        return await self._guard("suggest_priorities", call)

    async def breakdown_task(self, title: str) -> AIResult[list[str]]:
        async def call() -> list[str]:
            data = await self._complete_json(prompts.BREAKDOWN_PROMPT, f'Break down: "{title}"')
            steps = TypeAdapter(list[str]).validate_python(data["steps"])
            return [step.strip() for step in steps if step.strip()]

        return await self._guard("breakdown_task", call)

    async def suggest_habits(
        self, grade: str, language: str = "English"
    ) -> AIResult[list[HabitSuggestion]]:
        async def call() -> list[HabitSuggestion]:
            data = await self._complete_json(
                prompts.HABITS_PROMPT.format(grade=grade or "unspecified", language=language),
                "Suggest habits.",
            )
            return TypeAdapter(list[HabitSuggestion]).validate_python(data["habits"])

        return await self._guard("suggest_habits", call)

    async def detect_burnout(self, entries: list[TimetableEntry]) -> AIResult[list[str]]:
        timetable = json.dumps([e.model_dump(mode="json", exclude={"id"}) for e in entries])

        async def call() -> list[str]:
            data = await self._complete_json(prompts.BURNOUT_PROMPT, f"Timetable: {timetable}")
            return TypeAdapter(list[str]).validate_python(data.get("risks", []))

        return await self._guard("detect_burnout", call)

    async def suggest_flow_state(self, task_title: str) -> AIResult[FlowSuggestion]:
        async def call() -> FlowSuggestion:
            data = await self._complete_json(prompts.FLOW_PROMPT, f'Task: "{task_title}"')
            return FlowSuggestion.model_validate(data)

        return await self._guard("suggest_flow_state", call)

    # Short free-text helpers

    async def forum_reply(self, post: ForumPost) -> AIResult[str]:
        async def call() -> str:
            text = await self._complete_text(
                prompts.FORUM_REPLY_PROMPT,
                f"{post.title}\n\n{post.content}",
                model=self.structured_model,
            )
            return text or "Great discussion!"

        return await self._guard("forum_reply", call)

    async def daily_insight(self, profile: ProfileRecord, total: int, done: int) -> AIResult[str]:
        async def call() -> str:
            text = await self._complete_text(
                prompts.INSIGHT_PROMPT.format(done=done, total=total),
                f"Student goal: {profile.goal or 'do well in school'}",
                model=self.structured_model,
            )
            return text or "Persistence is the key to success!"

        return await self._guard("daily_insight", call)
