"""Shared fixtures: isolated store, controllable countdown timer, hub."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from scholar_hub.ai.gateway import AIGateway
from scholar_hub.config import Settings
from scholar_hub.hub import ScholarHub
from scholar_hub.storage.store import DurableStore


class FakeTimer:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Records scheduled callbacks; tests fire them to simulate elapsed seconds."""

    def __init__(self):
        self.timers: list[FakeTimer] = []

    def __call__(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, seconds: int = 1) -> None:
        for _ in range(seconds):
            pending = self.pending
            if not pending:
                return
            timer = pending[0]
            timer.fired = True
            timer.callback()


@pytest.fixture
def store(tmp_path):
    return DurableStore(tmp_path / "store")


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        openai_api_key=None,
        supabase_url=None,
        supabase_key=None,
        data_dir=tmp_path / "store",
        starting_points=50,
        task_reward_points=10,
        routine_reward_points=5,
        ad_reward_points=10,
        ai_query_cost=10,
        verification_seconds=5,
        completion_diff="count",
    )


@pytest.fixture
def fake_ai():
    ai = MagicMock(spec=AIGateway)
    for name in (
        "chat",
        "generate_quiz",
        "summarize_and_flashcard",
        "suggest_priorities",
        "breakdown_task",
        "suggest_habits",
        "generate_gk_question",
        "detect_burnout",
        "suggest_flow_state",
        "forum_reply",
        "daily_insight",
    ):
        setattr(ai, name, AsyncMock())
    return ai


@pytest.fixture
def link_opener():
    return MagicMock()


@pytest.fixture
def hub(settings, store, fake_ai, scheduler, link_opener):
    return ScholarHub(
        settings,
        store=store,
        ai=fake_ai,
        scheduler=scheduler,
        open_link=link_opener,
    )
