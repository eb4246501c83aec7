"""Application hub: wires collections, the reward engine, the AI gateway and sync.

Views talk to a single :class:`ScholarHub`. Collection updates write through
the durable store; completions trigger the reward engine; AI results are
merged back into the relevant collection; sync pushes are fire-and-forget.
"""

import asyncio
import webbrowser
from collections.abc import Callable
from typing import Any

import structlog

from scholar_hub.ai.gateway import AIGateway
from scholar_hub.config import Settings
from scholar_hub.errors import InputValidationError, NotFoundError
from scholar_hub.models.ai import (
    AIResult,
    CoachAnswer,
    FlowSuggestion,
    GKQuestion,
    PrioritySuggestion,
    StudyPack,
)
from scholar_hub.models.app_state import AppState
from scholar_hub.models.planner import Routine, Subtask, TaskItem, TimetableEntry
from scholar_hub.models.profile import ProfileRecord
from scholar_hub.models.reward import RewardSession
from scholar_hub.models.study import (
    Achievement,
    AchievementKind,
    DocResource,
    Flashcard,
    ForumPost,
    Quiz,
    Subject,
)
from scholar_hub.rewards.achievements import unlock_achievements
from scholar_hub.rewards.completion import completion_happened, count_completed
from scholar_hub.rewards.engine import RewardEngine, Scheduler, loop_scheduler
from scholar_hub.storage.repositories import Collection, PointsLedger, ProfileRepository
from scholar_hub.storage.seeds import default_achievements, default_subjects
from scholar_hub.storage.store import DurableStore, StorageKey
from scholar_hub.sync.cloud import CloudSync

logger = structlog.get_logger()

# Reward for adding an item through the ad gate
GATED_ADD_POINTS = 5

ANONYMOUS_AUTHOR = "Anonymous Scholar"


def _require_text(value: str, field: str) -> str:
    if not value or not value.strip():
        raise InputValidationError(f"{field} must not be empty")
    return value.strip()


class ScholarHub:
    """Single-user state container for one device.

    Args:
        settings: Application settings.
        store: Durable store; defaults to one rooted at ``settings.storage_dir``.
        ai: AI gateway; defaults to one built from settings.
        sync: Cloud sync, or None to keep everything local.
        scheduler: Timer scheduler for the reward countdown.
        open_link: Verification-link side effect; defaults to logging the
            link and optionally opening a browser.
    """

    def __init__(
        self,
        settings: Settings,
        store: DurableStore | None = None,
        ai: AIGateway | None = None,
        sync: CloudSync | None = None,
        scheduler: Scheduler = loop_scheduler,
        open_link: Callable[[], None] | None = None,
    ):
        self.settings = settings
        self.store = store or DurableStore(settings.storage_dir)
        self.tasks = Collection(self.store, StorageKey.TASKS, TaskItem)
        self.routines = Collection(self.store, StorageKey.ROUTINES, Routine)
        self.timetable = Collection(self.store, StorageKey.TIMETABLE, TimetableEntry)
        self.subjects = Collection(self.store, StorageKey.SUBJECTS, Subject, default_subjects)
        self.flashcards = Collection(self.store, StorageKey.FLASHCARDS, Flashcard)
        self.quizzes = Collection(self.store, StorageKey.QUIZZES, Quiz)
        self.forum_posts = Collection(self.store, StorageKey.FORUM_POSTS, ForumPost)
        self.doc_resources = Collection(self.store, StorageKey.DOC_RESOURCES, DocResource)
        self.achievements = Collection(
            self.store, StorageKey.ACHIEVEMENTS, Achievement, default_achievements
        )
        self.profile = ProfileRepository(self.store)
        self.points = PointsLedger(self.store, settings.starting_points)
        self.ai = ai or AIGateway(
            settings.openai_api_key,
            chat_model=settings.chat_model,
            structured_model=settings.structured_model,
        )
        self.sync = sync
        self.rewards = RewardEngine(
            self.points,
            open_link=open_link or self._open_verification_link,
            scheduler=scheduler,
            verification_seconds=settings.verification_seconds,
        )
        self.rewards.on_claimed(
            lambda balance: self.check_achievements(AchievementKind.POINTS, balance)
        )
        self.unlocked_badge: Achievement | None = None
        self._pushes: set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScholarHub":
        return cls(settings, sync=CloudSync.from_settings(settings))

    def state(self) -> AppState:
        return AppState(
            points=self.points.balance,
            profile=self.profile.load(),
            reward=self.rewards.session,
            unlocked_badge=self.unlocked_badge,
            signed_in=self.sync is not None and self.sync.current_user_id() is not None,
        )

    # Sync

    def _push(self, method: str, payload: Any) -> None:
        """Hand ``payload`` to a sync method without waiting for it."""
        if self.sync is None:
            return
        fn = getattr(self.sync, method)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            fn(payload)
            return
        task = loop.create_task(asyncio.to_thread(fn, payload))
        self._pushes.add(task)
        task.add_done_callback(self._pushes.discard)

    # Rewards

    def _open_verification_link(self) -> None:
        logger.info("verification_link_opened", url=self.settings.verification_url)
        if self.settings.open_links_in_browser:
            webbrowser.open(self.settings.verification_url, new=2)

    def watch_ad(self) -> RewardSession:
        return self.rewards.trigger(self.settings.ad_reward_points)

    def gate(self, action: Callable[[], None], reward_points: int = 0) -> RewardSession:
        """Run ``action`` only once the student claims a verified reward session."""
        return self.rewards.trigger(reward_points, on_claim=action)

    def click_verify(self) -> RewardSession:
        return self.rewards.click_verify()

    def claim(self) -> int:
        return self.rewards.claim()

    def dismiss(self) -> RewardSession:
        return self.rewards.dismiss()

    def check_achievements(self, kind: AchievementKind, value: int) -> list[Achievement]:
        updated, unlocked = unlock_achievements(self.achievements.list(), kind, value)
        if unlocked:
            self.achievements.update(updated)
            self.unlocked_badge = unlocked[-1]
        return unlocked

    def add_achievement(
        self, achievement: Achievement, gated: bool = False
    ) -> RewardSession | list[Achievement]:
        _require_text(achievement.title, "title")
        if gated:
            return self.gate(lambda: self.achievements.add(achievement))
        return self.achievements.add(achievement)

    # Profile

    def save_profile(self, profile: ProfileRecord, gated: bool = False) -> RewardSession | None:
        """Persist the profile, or hold it until a zero-point gate is claimed."""
        if gated:
            return self.gate(lambda: self._store_profile(profile))
        self._store_profile(profile)
        return None

    def _store_profile(self, profile: ProfileRecord) -> None:
        self.profile.save(profile)
        self._push("sync_profile", profile)

    # Tasks

    def update_tasks(self, tasks: list[TaskItem]) -> bool:
        """Replace the task list; fire the task reward if a completion happened.

        Returns:
            True if a reward session was triggered.
        """
        for task in tasks:
            _require_text(task.title, "title")
        before = self.tasks.list()
        self.tasks.update(tasks)
        self._push("save_tasks", tasks)
        if not completion_happened(before, tasks, self.settings.completion_diff):
            return False
        self.rewards.trigger(self.settings.task_reward_points)
        self.check_achievements(AchievementKind.TASKS, count_completed(tasks))
        return True

    def add_task(self, task: TaskItem, gated: bool = False) -> RewardSession | list[TaskItem]:
        _require_text(task.title, "title")
        if gated:
            return self.gate(lambda: self._append_task(task), GATED_ADD_POINTS)
        return self._append_task(task)

    def _append_task(self, task: TaskItem) -> list[TaskItem]:
        tasks = self.tasks.add(task)
        self._push("save_tasks", tasks)
        return tasks

    def edit_task(self, task: TaskItem) -> bool:
        _require_text(task.title, "title")
        tasks = self.tasks.list()
        if not any(t.id == task.id for t in tasks):
            raise NotFoundError(task.id)
        return self.update_tasks([task if t.id == task.id else t for t in tasks])

    def toggle_task(self, task_id: str) -> bool:
        tasks = self.tasks.list()
        if not any(t.id == task_id for t in tasks):
            raise NotFoundError(task_id)
        return self.update_tasks(
            [
                t.model_copy(update={"is_completed": not t.is_completed}) if t.id == task_id else t
                for t in tasks
            ]
        )

    def remove_task(self, task_id: str) -> list[TaskItem]:
        tasks = self.tasks.remove(task_id)
        self._push("save_tasks", tasks)
        return tasks

    async def breakdown_task(self, task_id: str) -> AIResult[list[str]]:
        """Ask the AI for steps and append them to the task as subtasks."""
        task = self.tasks.get(task_id)
        if task is None:
            raise NotFoundError(task_id)
        result = await self.ai.breakdown_task(task.title)
        if result.is_ok and result.ok:
            # Re-read: the list may have changed while the request was in flight
            current = self.tasks.get(task_id)
            if current is not None:
                subtasks = current.subtasks + [Subtask(title=step) for step in result.ok]
                tasks = self.tasks.update(
                    [
                        t.model_copy(update={"subtasks": subtasks}) if t.id == task_id else t
                        for t in self.tasks.list()
                    ]
                )
                self._push("save_tasks", tasks)
        return result

    async def prioritize_tasks(self) -> AIResult[list[PrioritySuggestion]]:
        open_tasks = [t for t in self.tasks.list() if not t.is_completed]
        return await self.ai.suggest_priorities(open_tasks)

    async def suggest_flow_state(self, task_id: str) -> AIResult[FlowSuggestion]:
        task = self.tasks.get(task_id)
        if task is None:
            raise NotFoundError(task_id)
        return await self.ai.suggest_flow_state(task.title)

    # Routines

    def update_routines(self, routines: list[Routine]) -> bool:
        for routine in routines:
            _require_text(routine.title, "title")
        before = self.routines.list()
        self.routines.update(routines)
        self._push("save_routines", routines)
        if not completion_happened(before, routines, self.settings.completion_diff):
            return False
        self.rewards.trigger(self.settings.routine_reward_points)
        self.check_achievements(AchievementKind.ROUTINE, count_completed(routines))
        return True

    def add_routine(self, routine: Routine, gated: bool = False) -> RewardSession | list[Routine]:
        _require_text(routine.title, "title")
        if gated:
            return self.gate(lambda: self._append_routine(routine), GATED_ADD_POINTS)
        return self._append_routine(routine)

    def _append_routine(self, routine: Routine) -> list[Routine]:
        routines = self.routines.add(routine)
        self._push("save_routines", routines)
        return routines

    def toggle_routine(self, routine_id: str) -> bool:
        routines = self.routines.list()
        if not any(r.id == routine_id for r in routines):
            raise NotFoundError(routine_id)
        return self.update_routines(
            [
                r.model_copy(update={"is_completed": not r.is_completed})
                if r.id == routine_id
                else r
                for r in routines
            ]
        )

    def reset_routines(self) -> list[Routine]:
        routines = [r.model_copy(update={"is_completed": False}) for r in self.routines.list()]
        self.update_routines(routines)
        return routines

    def remove_routine(self, routine_id: str) -> list[Routine]:
        routines = self.routines.remove(routine_id)
        self._push("save_routines", routines)
        return routines

    async def suggest_habits(self) -> AIResult[list[Routine]]:
        """Ask the AI for habits and add them as routines."""
        profile = self.profile.load()
        result = await self.ai.suggest_habits(profile.grade, profile.language)
        if not result.is_ok:
            return AIResult(error=result.error)
        added = [
            Routine(title=h.title, time=h.time, duration_minutes=h.duration_minutes)
            for h in result.ok or []
        ]
        if added:
            routines = self.routines.update(self.routines.list() + added)
            self._push("save_routines", routines)
        return AIResult(ok=added)

    # Timetable

    def add_timetable_entry(
        self, entry: TimetableEntry, gated: bool = False
    ) -> RewardSession | list[TimetableEntry]:
        _require_text(entry.subject, "subject")
        if gated:
            return self.gate(lambda: self._append_entry(entry), GATED_ADD_POINTS)
        return self._append_entry(entry)

    def _append_entry(self, entry: TimetableEntry) -> list[TimetableEntry]:
        entries = self.timetable.add(entry)
        self._push("save_timetable", entries)
        return entries

    def update_timetable(self, entries: list[TimetableEntry]) -> list[TimetableEntry]:
        for entry in entries:
            _require_text(entry.subject, "subject")
        entries = self.timetable.update(entries)
        self._push("save_timetable", entries)
        return entries

    def remove_timetable_entry(self, entry_id: str) -> list[TimetableEntry]:
        entries = self.timetable.remove(entry_id)
        self._push("save_timetable", entries)
        return entries

    async def check_burnout(self) -> AIResult[list[str]]:
        return await self.ai.detect_burnout(self.timetable.list())

    # Subjects and study material

    def add_subject(self, subject: Subject) -> list[Subject]:
        _require_text(subject.name, "name")
        subjects = self.subjects.add(subject)
        self._push("save_subjects", subjects)
        return subjects

    def add_flashcard(self, card: Flashcard) -> list[Flashcard]:
        _require_text(card.front, "front")
        _require_text(card.back, "back")
        return self.flashcards.add(card)

    def add_doc_resource(self, resource: DocResource) -> list[DocResource]:
        _require_text(resource.name, "name")
        return self.doc_resources.add(resource)

    def remove_doc_resource(self, resource_id: str) -> list[DocResource]:
        return self.doc_resources.remove(resource_id)

    async def build_study_pack(
        self, source_text: str, subject_id: str | None = None
    ) -> AIResult[StudyPack]:
        """Summarize notes and store the generated flashcards."""
        _require_text(source_text, "source text")
        result = await self.ai.summarize_and_flashcard(source_text)
        if result.is_ok and result.ok and result.ok.flashcards:
            cards = [
                Flashcard(front=c.front, back=c.back, subject_id=subject_id)
                for c in result.ok.flashcards
            ]
            self.flashcards.update(self.flashcards.list() + cards)
        return result

    async def generate_quiz(self, topic: str) -> AIResult[Quiz]:
        _require_text(topic, "topic")
        grade = self.profile.load().grade or "appropriate level"
        result = await self.ai.generate_quiz(topic, grade)
        if result.is_ok and result.ok:
            self.quizzes.add(result.ok)
        return result

    async def quiz_from_summary(self, summary: str) -> AIResult[Quiz]:
        _require_text(summary, "summary")
        return await self.generate_quiz(f"Quiz based on this content: {summary[:500]}")

    def score_quiz(self, quiz_id: str, answers: list[int]) -> int:
        quiz = self.quizzes.get(quiz_id)
        if quiz is None:
            raise NotFoundError(quiz_id)
        return quiz.score(answers)

    async def gk_question(self) -> AIResult[GKQuestion]:
        return await self.ai.generate_gk_question(self.profile.load().language)

    # Forum

    def add_forum_post(self, title: str, content: str = "") -> ForumPost:
        post = ForumPost(
            author=self.profile.load().name or ANONYMOUS_AUTHOR,
            title=_require_text(title, "title"),
            content=content.strip(),
        )
        self.forum_posts.add(post)
        return post

    async def suggest_forum_reply(self, post_id: str) -> AIResult[str]:
        post = self.forum_posts.get(post_id)
        if post is None:
            raise NotFoundError(post_id)
        return await self.ai.forum_reply(post)

    # AI coach

    async def ask_coach(self, prompt: str, image: bytes | None = None) -> CoachAnswer:
        """Answer a paid coaching question.

        The cost is deducted before the request is sent and is not refunded
        when the request fails.
        """
        if not (prompt and prompt.strip()) and image is None:
            raise InputValidationError("ask a question or attach an image")
        cost = self.settings.ai_query_cost
        if not self.points.spend(cost):
            return CoachAnswer(
                text=f"You need {cost} points for a query. Watch an ad to earn more!"
            )
        profile = self.profile.load()
        result = await self.ai.chat(prompt.strip(), image, profile.grade, profile.language)
        if not result.is_ok:
            return CoachAnswer(
                text=result.error.message, points_spent=cost, error=result.error.kind
            )
        self.check_achievements(AchievementKind.AI, 1)
        return CoachAnswer(text=result.ok.text, points_spent=cost)

    async def daily_insight(self) -> AIResult[str]:
        tasks = self.tasks.list()
        return await self.ai.daily_insight(self.profile.load(), len(tasks), count_completed(tasks))
