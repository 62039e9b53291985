"""Integration tests for the FastAPI channel surface"""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from src.api import main
from src.core.config import settings
from src.core.exceptions import StoreFailure


@pytest.fixture
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    """App wired to a temporary database and the in-process collaborators"""
    monkeypatch.setattr(settings, "DB_PATH", tmp_path / "api.db")
    monkeypatch.setattr(settings, "CLASSIFIER_ENDPOINT", "")
    monkeypatch.setattr(settings, "QNA_ENDPOINT", "")

    with TestClient(main.app) as client:
        yield client


class TestAPI:
    """Test HTTP endpoints"""

    def test_health(self, client: TestClient) -> None:
        assert client.get("/health").json() == {"status": "healthy"}

    def test_members_added_welcomes(self, client: TestClient) -> None:
        resp = client.post("/conversations/c1/members", json={"member_ids": ["st-bot", "u1"]})

        assert resp.status_code == 200
        assert resp.json()["replies"] == [settings.WELCOME_TEXT]

    def test_message_then_finish(self, client: TestClient) -> None:
        """A finish postback ends the session and stores the summary"""
        client.post("/conversations/c1/members", json={"member_ids": ["u1"]})

        resp = client.post(
            "/conversations/c1/messages",
            json={"user_id": "u1", "text": "I feel anxious"},
        )
        body = resp.json()
        assert resp.status_code == 200
        assert body["replies"] == [settings.FALLBACK_TEXT]
        assert body["suggested_actions"] == ["finish"]
        assert body["record"]["intensity"] == 5

        resp = client.post(
            "/conversations/c1/messages",
            json={"user_id": "u1", "text": "finish", "postback": True},
        )
        body = resp.json()
        assert body["end_of_session"] is True
        assert body["replies"] == []

        summary = client.get("/summaries/u1").json()
        assert summary["keywords"] == ["I feel anxious"]
        assert summary["avg_intensity"] == 5

    def test_typed_finish_is_a_normal_turn(self, client: TestClient) -> None:
        """Without the postback marker 'finish' is just text"""
        resp = client.post(
            "/conversations/c1/messages",
            json={"user_id": "u1", "text": "finish"},
        )

        assert resp.json()["end_of_session"] is False

    def test_missing_summary(self, client: TestClient) -> None:
        assert client.get("/summaries/nobody").status_code == 404

    def test_summary_store_failure_is_503(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def broken(user_id: str):
            raise StoreFailure("Document store not connected")

        monkeypatch.setattr(main.pipeline.merger, "get_summary", broken)

        assert client.get("/summaries/u1").status_code == 503

    def test_stats(self, client: TestClient) -> None:
        client.post("/conversations/c1/messages", json={"user_id": "u1", "text": "hello"})

        stats = client.get("/stats").json()

        assert stats["turns_processed"] == 1
        assert stats["records_persisted"] == 1
        assert stats["total_documents"] == 1
