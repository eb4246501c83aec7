"""Smoke tests for API routes."""

import asyncio
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from scholar_hub.api.routes import get_hub, router
from scholar_hub.models.ai import AIResult, ChatReply
from scholar_hub.storage.store import StorageKey
from scholar_hub.sync.cloud import CloudSync


@pytest.fixture
def client(hub):
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_hub] = lambda: hub
    with TestClient(app) as c:
        yield c


class TestHealthCheck:
    def test_health_returns_ok(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_state_starts_with_default_points(self, client):
        data = client.get("/api/state").json()
        assert data["points"] == 50
        assert data["reward"]["state"] == "idle"
        assert data["reward"]["is_open"] is False


class TestTasks:
    def test_add_then_list(self, client):
        response = client.post("/api/tasks", json={"id": "t1", "title": "Essay"})
        assert response.status_code == 200
        assert response.json()["gated"] is False

        tasks = client.get("/api/tasks").json()
        assert [t["id"] for t in tasks] == ["t1"]

    def test_blank_title_rejected(self, client):
        response = client.post("/api/tasks", json={"title": "  "})
        assert response.status_code == 422
        assert client.get("/api/tasks").json() == []

    def test_duplicate_id_conflicts(self, client):
        client.post("/api/tasks", json={"id": "t1", "title": "Essay"})
        response = client.post("/api/tasks", json={"id": "t1", "title": "Again"})
        assert response.status_code == 409

    def test_replace_with_blank_title_rejected(self, client, store):
        response = client.put("/api/tasks", json=[{"id": "x", "title": "   "}])
        assert response.status_code == 422
        assert not store.path_for(StorageKey.TASKS).exists()

    def test_replace_with_repeated_id_conflicts(self, client):
        client.post("/api/tasks", json={"id": "t0", "title": "Keep"})
        response = client.put(
            "/api/tasks", json=[{"id": "t1", "title": "A"}, {"id": "t1", "title": "B"}]
        )
        assert response.status_code == 409
        assert [t["id"] for t in client.get("/api/tasks").json()] == ["t0"]

    def test_replace_routines_and_timetable_validated(self, client):
        assert client.put("/api/routines", json=[{"title": ""}]).status_code == 422
        entry = {
            "id": "e1",
            "day": "Monday",
            "subject": "Math",
            "start_time": "09:00",
            "end_time": "10:00",
        }
        assert client.put("/api/timetable", json=[entry, entry]).status_code == 409

    def test_toggle_unknown_task(self, client):
        response = client.post("/api/tasks/missing/toggle")
        assert response.status_code == 404

    def test_gated_add_returns_session(self, client):
        response = client.post("/api/tasks?gated=true", json={"title": "Essay"})
        body = response.json()
        assert body["gated"] is True
        assert body["reward"]["state"] == "pending"
        assert client.get("/api/tasks").json() == []


class TestRewardFlow:
    def test_complete_task_verify_and_claim(self, client, scheduler, link_opener):
        client.post("/api/tasks", json={"id": "t1", "title": "Essay"})

        toggled = client.post("/api/tasks/t1/toggle").json()
        assert toggled["reward_triggered"] is True
        assert toggled["reward"]["pending_points"] == 10

        verify = client.post("/api/rewards/verify").json()
        assert verify["reward"]["state"] == "verifying"
        assert verify["verification_url"].startswith("https://")
        link_opener.assert_called_once()

        early = client.post("/api/rewards/claim").json()
        assert early["credited"] == 0
        assert early["points"] == 50

        scheduler.advance(5)
        claimed = client.post("/api/rewards/claim").json()
        assert claimed["credited"] == 10
        assert claimed["points"] == 60
        assert claimed["reward"]["state"] == "idle"

    def test_dismiss(self, client):
        client.post("/api/rewards/watch-ad")
        response = client.post("/api/rewards/dismiss")
        assert response.json()["state"] == "idle"
        assert client.get("/api/points").json() == {"points": 50}


class TestCoach:
    def test_invalid_image_rejected(self, client, hub):
        response = client.post("/api/coach", json={"prompt": "", "image_base64": "***"})
        assert response.status_code == 422
        assert hub.points.balance == 50

    def test_empty_question_rejected(self, client):
        response = client.post("/api/coach", json={"prompt": "  "})
        assert response.status_code == 422

    def test_answer_spends_points(self, client, fake_ai):
        fake_ai.chat.return_value = AIResult.success(ChatReply(text="Photosynthesis is ..."))
        response = client.post("/api/coach", json={"prompt": "Explain photosynthesis"})
        body = response.json()
        assert body["text"] == "Photosynthesis is ..."
        assert body["points_spent"] == 10
        assert client.get("/api/points").json() == {"points": 40}


class TestStudy:
    def test_default_subjects(self, client):
        names = [s["name"] for s in client.get("/api/subjects").json()]
        assert names == ["Mathematics", "Science", "History"]

    def test_forum_post_gets_author(self, client):
        post = client.post("/api/forum", json={"title": "SN1 vs SN2?"}).json()
        assert post["author"] == "Anonymous Scholar"
        assert post["upvotes"] == 1

    def test_score_unknown_quiz(self, client):
        response = client.post("/api/quizzes/nope/score", json={"answers": [0]})
        assert response.status_code == 404


class TestCloudAccount:
    def test_unconfigured_sync(self, client):
        response = client.post("/api/auth/sign-in", json={"email": "a@b.c", "password": "pw"})
        assert response.status_code == 503

    def test_sign_in(self, client, hub):
        hub.sync = MagicMock(spec=CloudSync)
        hub.sync.sign_in.return_value = "user-1"
        response = client.post("/api/auth/sign-in", json={"email": "a@b.c", "password": "pw"})
        assert response.json() == {"user_id": "user-1"}

    def test_bad_credentials(self, client, hub):
        hub.sync = MagicMock(spec=CloudSync)
        hub.sync.sign_in.return_value = None
        response = client.post("/api/auth/sign-in", json={"email": "a@b.c", "password": "x"})
        assert response.status_code == 401

    def test_unknown_sync_table(self, client, hub):
        hub.sync = MagicMock(spec=CloudSync)
        hub.sync.fetch.side_effect = ValueError("Unknown sync table: secrets")
        assert client.get("/api/sync/secrets").status_code == 404

    def test_cloud_calls_leave_the_event_loop(self, client, hub):
        where = []

        def record(*args):
            try:
                asyncio.get_running_loop()
                where.append("loop")
            except RuntimeError:
                where.append("worker")
            return "user-1"

        hub.sync = MagicMock(spec=CloudSync)
        hub.sync.sign_in.side_effect = record
        hub.sync.current_user_id.side_effect = record

        client.post("/api/auth/sign-in", json={"email": "a@b.c", "password": "pw"})
        assert client.get("/api/state").json()["signed_in"] is True
        client.get("/api/auth/me")

        assert where == ["worker", "worker", "worker"]


class TestProfileAndBadges:
    def test_gated_profile_save(self, client, scheduler):
        body = client.put("/api/profile?gated=true", json={"name": "Meera"}).json()
        assert body["gated"] is True
        assert body["reward"]["pending_points"] == 0
        assert client.get("/api/profile").json()["name"] == ""

        client.post("/api/rewards/verify")
        scheduler.advance(5)
        client.post("/api/rewards/claim")
        assert client.get("/api/profile").json()["name"] == "Meera"

    def test_profile_save(self, client):
        body = client.put("/api/profile", json={"name": "Meera"}).json()
        assert body == {"gated": False, "profile": client.get("/api/profile").json()}

    def test_gated_achievement(self, client):
        body = client.post("/api/achievements?gated=true", json={"title": "Night Owl"}).json()
        assert body["gated"] is True
        titles = [a["title"] for a in client.get("/api/achievements").json()]
        assert "Night Owl" not in titles


class TestDocuments:
    def test_add_filter_and_delete(self, client):
        client.post("/api/documents", json={"id": "d1", "name": "Notes.pdf", "subject_id": "1"})
        client.post("/api/documents", json={"id": "d2", "name": "Lecture", "type": "video"})

        assert [d["id"] for d in client.get("/api/documents?subject_id=1").json()] == ["d1"]
        remaining = client.delete("/api/documents/d1").json()
        assert [d["id"] for d in remaining] == ["d2"]

    def test_blank_name_rejected(self, client):
        assert client.post("/api/documents", json={"name": " "}).status_code == 422
