"""REST API exposing the hub to a local client."""

import asyncio
import base64
import binascii
import functools
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from scholar_hub.config import get_settings
from scholar_hub.errors import InputValidationError, NotFoundError
from scholar_hub.hub import ScholarHub
from scholar_hub.models.ai import CoachAnswer
from scholar_hub.models.app_state import AppState
from scholar_hub.models.planner import Routine, TaskItem, TimetableEntry
from scholar_hub.models.profile import ProfileRecord
from scholar_hub.models.reward import RewardSession
from scholar_hub.models.study import (
    Achievement,
    DocResource,
    Flashcard,
    ForumPost,
    Quiz,
    Subject,
)
from scholar_hub.reminders import upcoming_reminders
from scholar_hub.sync.cloud import CloudSync

logger = structlog.get_logger()
router = APIRouter(prefix="/api")


@functools.lru_cache
def get_hub() -> ScholarHub:
    """Process-wide hub built from settings."""
    return ScholarHub.from_settings(get_settings())


@contextmanager
def _http_errors() -> Iterator[None]:
    try:
        yield
    except InputValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=f"Not found: {exc}")
    except ValueError as exc:
        # Duplicate ids and negative reward amounts
        raise HTTPException(status_code=409, detail=str(exc))


def _added(result) -> dict:
    """Shape the response of a possibly gated add."""
    if isinstance(result, RewardSession):
        return {"gated": True, "reward": result.model_dump()}
    return {"gated": False, "items": [item.model_dump(mode="json") for item in result]}


class ForumPostIn(BaseModel):
    title: str
    content: str = ""


class StudyPackIn(BaseModel):
    text: str
    subject_id: str | None = None


class QuizTopicIn(BaseModel):
    topic: str


class QuizAnswersIn(BaseModel):
    answers: list[int]


class CoachQuestionIn(BaseModel):
    prompt: str = ""
    image_base64: str | None = None


class CredentialsIn(BaseModel):
    email: str
    password: str


def _cloud(hub: ScholarHub) -> CloudSync:
    if hub.sync is None:
        raise HTTPException(status_code=503, detail="Cloud sync is not configured")
    return hub.sync


@router.get("/health")
async def health_check() -> dict:
    return {"status": "ok"}


@router.get("/state")
async def get_state(hub: ScholarHub = Depends(get_hub)) -> AppState:
    # Reading the signed-in user is a blocking network call
    return await asyncio.to_thread(hub.state)


# Profile and points


@router.get("/profile")
async def get_profile(hub: ScholarHub = Depends(get_hub)) -> ProfileRecord:
    return hub.profile.load()


@router.put("/profile")
async def put_profile(
    profile: ProfileRecord, gated: bool = False, hub: ScholarHub = Depends(get_hub)
) -> dict:
    session = hub.save_profile(profile, gated=gated)
    if session is not None:
        return {"gated": True, "reward": session.model_dump()}
    return {"gated": False, "profile": profile.model_dump(mode="json")}


@router.get("/points")
async def get_points(hub: ScholarHub = Depends(get_hub)) -> dict:
    return {"points": hub.points.balance}


# Rewards


@router.get("/rewards")
async def get_reward(hub: ScholarHub = Depends(get_hub)) -> RewardSession:
    return hub.rewards.session


@router.post("/rewards/watch-ad")
async def watch_ad(hub: ScholarHub = Depends(get_hub)) -> RewardSession:
    return hub.watch_ad()


@router.post("/rewards/verify")
async def verify_reward(hub: ScholarHub = Depends(get_hub)) -> dict:
    session = hub.click_verify()
    return {"reward": session.model_dump(), "verification_url": hub.settings.verification_url}


@router.post("/rewards/claim")
async def claim_reward(hub: ScholarHub = Depends(get_hub)) -> dict:
    credited = hub.claim()
    return {
        "credited": credited,
        "points": hub.points.balance,
        "reward": hub.rewards.session.model_dump(),
    }


@router.post("/rewards/dismiss")
async def dismiss_reward(hub: ScholarHub = Depends(get_hub)) -> RewardSession:
    return hub.dismiss()


# Tasks


@router.get("/tasks")
async def list_tasks(hub: ScholarHub = Depends(get_hub)) -> list[TaskItem]:
    return hub.tasks.list()


@router.post("/tasks")
async def add_task(task: TaskItem, gated: bool = False, hub: ScholarHub = Depends(get_hub)) -> dict:
    with _http_errors():
        return _added(hub.add_task(task, gated=gated))


@router.put("/tasks")
async def replace_tasks(tasks: list[TaskItem], hub: ScholarHub = Depends(get_hub)) -> dict:
    with _http_errors():
        fired = hub.update_tasks(tasks)
    return {"reward_triggered": fired, "reward": hub.rewards.session.model_dump()}


@router.post("/tasks/{task_id}/toggle")
async def toggle_task(task_id: str, hub: ScholarHub = Depends(get_hub)) -> dict:
    with _http_errors():
        fired = hub.toggle_task(task_id)
    return {"reward_triggered": fired, "reward": hub.rewards.session.model_dump()}


@router.delete("/tasks/{task_id}")
async def delete_task(task_id: str, hub: ScholarHub = Depends(get_hub)) -> list[TaskItem]:
    return hub.remove_task(task_id)


@router.post("/tasks/{task_id}/breakdown")
async def breakdown_task(task_id: str, hub: ScholarHub = Depends(get_hub)) -> dict:
    with _http_errors():
        result = await hub.breakdown_task(task_id)
    return result.model_dump(mode="json")


@router.get("/tasks/priorities")
async def task_priorities(hub: ScholarHub = Depends(get_hub)) -> dict:
    result = await hub.prioritize_tasks()
    return result.model_dump(mode="json")


@router.get("/tasks/reminders")
async def task_reminders(hub: ScholarHub = Depends(get_hub)) -> list[dict]:
    return [
        {"task_id": task.id, "title": task.title, "at": at.isoformat()}
        for task, at in upcoming_reminders(hub.tasks.list())
    ]


@router.get("/tasks/{task_id}/flow")
async def task_flow(task_id: str, hub: ScholarHub = Depends(get_hub)) -> dict:
    with _http_errors():
        result = await hub.suggest_flow_state(task_id)
    return result.model_dump(mode="json")


# Routines


@router.get("/routines")
async def list_routines(hub: ScholarHub = Depends(get_hub)) -> list[Routine]:
    return hub.routines.list()


@router.post("/routines")
async def add_routine(
    routine: Routine, gated: bool = False, hub: ScholarHub = Depends(get_hub)
) -> dict:
    with _http_errors():
        return _added(hub.add_routine(routine, gated=gated))


@router.put("/routines")
async def replace_routines(routines: list[Routine], hub: ScholarHub = Depends(get_hub)) -> dict:
    with _http_errors():
        fired = hub.update_routines(routines)
    return {"reward_triggered": fired, "reward": hub.rewards.session.model_dump()}


@router.post("/routines/{routine_id}/toggle")
async def toggle_routine(routine_id: str, hub: ScholarHub = Depends(get_hub)) -> dict:
    with _http_errors():
        fired = hub.toggle_routine(routine_id)
    return {"reward_triggered": fired, "reward": hub.rewards.session.model_dump()}


@router.post("/routines/reset")
async def reset_routines(hub: ScholarHub = Depends(get_hub)) -> list[Routine]:
    return hub.reset_routines()


@router.delete("/routines/{routine_id}")
async def delete_routine(routine_id: str, hub: ScholarHub = Depends(get_hub)) -> list[Routine]:
    return hub.remove_routine(routine_id)


@router.post("/routines/suggest")
async def suggest_routines(hub: ScholarHub = Depends(get_hub)) -> dict:
    result = await hub.suggest_habits()
    return result.model_dump(mode="json")


# Timetable


@router.get("/timetable")
async def list_timetable(hub: ScholarHub = Depends(get_hub)) -> list[TimetableEntry]:
    return hub.timetable.list()


@router.post("/timetable")
async def add_timetable_entry(
    entry: TimetableEntry, gated: bool = False, hub: ScholarHub = Depends(get_hub)
) -> dict:
    with _http_errors():
        return _added(hub.add_timetable_entry(entry, gated=gated))


@router.put("/timetable")
async def replace_timetable(
    entries: list[TimetableEntry], hub: ScholarHub = Depends(get_hub)
) -> list[TimetableEntry]:
    with _http_errors():
        return hub.update_timetable(entries)


@router.delete("/timetable/{entry_id}")
async def delete_timetable_entry(
    entry_id: str, hub: ScholarHub = Depends(get_hub)
) -> list[TimetableEntry]:
    return hub.remove_timetable_entry(entry_id)


@router.get("/timetable/burnout")
async def timetable_burnout(hub: ScholarHub = Depends(get_hub)) -> dict:
    result = await hub.check_burnout()
    return result.model_dump(mode="json")


# Study material


@router.get("/subjects")
async def list_subjects(hub: ScholarHub = Depends(get_hub)) -> list[Subject]:
    return hub.subjects.list()


@router.post("/subjects")
async def add_subject(subject: Subject, hub: ScholarHub = Depends(get_hub)) -> list[Subject]:
    with _http_errors():
        return hub.add_subject(subject)


@router.get("/flashcards")
async def list_flashcards(
    subject_id: str | None = None, hub: ScholarHub = Depends(get_hub)
) -> list[Flashcard]:
    cards = hub.flashcards.list()
    if subject_id is not None:
        cards = [c for c in cards if c.subject_id == subject_id]
    return cards


@router.post("/flashcards")
async def add_flashcard(card: Flashcard, hub: ScholarHub = Depends(get_hub)) -> list[Flashcard]:
    with _http_errors():
        return hub.add_flashcard(card)


@router.post("/flashcards/generate")
async def generate_flashcards(body: StudyPackIn, hub: ScholarHub = Depends(get_hub)) -> dict:
    with _http_errors():
        result = await hub.build_study_pack(body.text, body.subject_id)
    return result.model_dump(mode="json")


@router.get("/documents")
async def list_documents(
    subject_id: str | None = None, hub: ScholarHub = Depends(get_hub)
) -> list[DocResource]:
    documents = hub.doc_resources.list()
    if subject_id is not None:
        documents = [d for d in documents if d.subject_id == subject_id]
    return documents


@router.post("/documents")
async def add_document(
    resource: DocResource, hub: ScholarHub = Depends(get_hub)
) -> list[DocResource]:
    with _http_errors():
        return hub.add_doc_resource(resource)


@router.delete("/documents/{resource_id}")
async def delete_document(
    resource_id: str, hub: ScholarHub = Depends(get_hub)
) -> list[DocResource]:
    return hub.remove_doc_resource(resource_id)


@router.get("/quizzes")
async def list_quizzes(hub: ScholarHub = Depends(get_hub)) -> list[Quiz]:
    return hub.quizzes.list()


@router.post("/quizzes/generate")
async def generate_quiz(body: QuizTopicIn, hub: ScholarHub = Depends(get_hub)) -> dict:
    with _http_errors():
        result = await hub.generate_quiz(body.topic)
    return result.model_dump(mode="json")


@router.post("/quizzes/{quiz_id}/score")
async def score_quiz(
    quiz_id: str, body: QuizAnswersIn, hub: ScholarHub = Depends(get_hub)
) -> dict:
    with _http_errors():
        score = hub.score_quiz(quiz_id, body.answers)
    return {"score": score}


@router.get("/gk-question")
async def gk_question(hub: ScholarHub = Depends(get_hub)) -> dict:
    result = await hub.gk_question()
    return result.model_dump(mode="json")


# Forum and achievements


@router.get("/forum")
async def list_forum_posts(hub: ScholarHub = Depends(get_hub)) -> list[ForumPost]:
    return hub.forum_posts.list()


@router.post("/forum")
async def add_forum_post(body: ForumPostIn, hub: ScholarHub = Depends(get_hub)) -> ForumPost:
    with _http_errors():
        return hub.add_forum_post(body.title, body.content)


@router.post("/forum/{post_id}/reply-suggestion")
async def forum_reply_suggestion(post_id: str, hub: ScholarHub = Depends(get_hub)) -> dict:
    with _http_errors():
        result = await hub.suggest_forum_reply(post_id)
    return result.model_dump(mode="json")


@router.get("/achievements")
async def list_achievements(hub: ScholarHub = Depends(get_hub)) -> list[Achievement]:
    return hub.achievements.list()


@router.post("/achievements")
async def add_achievement(
    achievement: Achievement, gated: bool = False, hub: ScholarHub = Depends(get_hub)
) -> dict:
    with _http_errors():
        return _added(hub.add_achievement(achievement, gated=gated))


# AI coach


@router.post("/coach")
async def ask_coach(body: CoachQuestionIn, hub: ScholarHub = Depends(get_hub)) -> CoachAnswer:
    image = None
    if body.image_base64:
        data = body.image_base64.split(",", 1)[-1]
        try:
            image = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError):
            logger.warning("coach_image_invalid")
            raise HTTPException(status_code=422, detail="Invalid image encoding")
    with _http_errors():
        return await hub.ask_coach(body.prompt, image)


@router.get("/insight")
async def daily_insight(hub: ScholarHub = Depends(get_hub)) -> dict:
    result = await hub.daily_insight()
    return result.model_dump(mode="json")


# Cloud account


@router.post("/auth/sign-up")
async def sign_up(body: CredentialsIn, hub: ScholarHub = Depends(get_hub)) -> dict:
    user_id = await asyncio.to_thread(_cloud(hub).sign_up, body.email, body.password)
    if user_id is None:
        raise HTTPException(status_code=400, detail="Sign up failed")
    return {"user_id": user_id}


@router.post("/auth/sign-in")
async def sign_in(body: CredentialsIn, hub: ScholarHub = Depends(get_hub)) -> dict:
    user_id = await asyncio.to_thread(_cloud(hub).sign_in, body.email, body.password)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return {"user_id": user_id}


@router.post("/auth/sign-out")
async def sign_out(hub: ScholarHub = Depends(get_hub)) -> dict:
    await asyncio.to_thread(_cloud(hub).sign_out)
    return {"signed_in": False}


@router.get("/auth/me")
async def current_user(hub: ScholarHub = Depends(get_hub)) -> dict:
    return {"user_id": await asyncio.to_thread(_cloud(hub).current_user_id)}


@router.get("/sync/{table}")
async def fetch_synced(table: str, hub: ScholarHub = Depends(get_hub)) -> list[dict]:
    cloud = _cloud(hub)
    try:
        return await asyncio.to_thread(cloud.fetch, table)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
