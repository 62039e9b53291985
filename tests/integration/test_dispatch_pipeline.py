"""
Integration tests for the dispatch pipeline:
welcome -> turns -> termination -> summary merge.
"""

import asyncio
from pathlib import Path

import pytest

from src.core.models import SummaryAggregate, TurnEvent
from src.pipeline.dispatch_pipeline import DispatchPipeline
from src.services.answer_service import StaticAnswerService
from src.services.intent_classifier import DEFAULT_KEYWORDS, StaticIntentClassifier
from src.storage.document_store import SQLiteDocumentStore
from src.storage.record_cipher import RecordCipher

FALLBACK = "Sorry, could not find an answer in the Q and A system."


@pytest.fixture
async def store(tmp_path: Path) -> SQLiteDocumentStore:
    store = SQLiteDocumentStore(tmp_path / "test_dispatch.db")
    await store.connect()
    yield store
    await store.close()


@pytest.fixture
def cipher() -> RecordCipher:
    return RecordCipher("test-secret")


@pytest.fixture
def pipeline(store: SQLiteDocumentStore, cipher: RecordCipher) -> DispatchPipeline:
    return DispatchPipeline(
        store,
        cipher,
        StaticIntentClassifier(DEFAULT_KEYWORDS, score=0.9, fallback_score=0.3),
        StaticAnswerService({"sleep": "Keep a regular bedtime."}),
    )


def turn(text: str, conversation_id: str = "c1", user_id: str = "u1") -> TurnEvent:
    return TurnEvent(text=text, conversation_id=conversation_id, user_id=user_id)


def finish(conversation_id: str = "c1", user_id: str = "u1") -> TurnEvent:
    return TurnEvent(
        text="finish",
        is_termination_signal=True,
        conversation_id=conversation_id,
        user_id=user_id,
    )


class TestMembersAdded:
    """Session start"""

    @pytest.mark.asyncio
    async def test_welcome_each_member_but_bot(self, pipeline: DispatchPipeline) -> None:
        outcome = await pipeline.on_members_added("c1", ["st-bot", "u1", "u2"])

        assert outcome.replies == ["Hello, this is ST Bot! How are you today?"] * 2
        assert pipeline.sessions.exists("c1")

    @pytest.mark.asyncio
    async def test_marks_profile_active(
        self, pipeline: DispatchPipeline, store: SQLiteDocumentStore
    ) -> None:
        await store.set("users", "u1", {"name": "Ann", "active": False})

        await pipeline.on_members_added("c1", ["u1", "ghost"])

        assert (await store.get("users", "u1"))["active"] is True
        assert await store.get("users", "ghost") is None


class TestTurns:
    """Non-termination turns"""

    @pytest.mark.asyncio
    async def test_open_domain_answer_and_finish_action(self, pipeline: DispatchPipeline) -> None:
        await pipeline.on_members_added("c1", ["u1"])

        outcome = await pipeline.process_turn(turn("I can't sleep at night"))

        assert outcome.replies == ["Keep a regular bedtime."]
        assert outcome.suggested_actions == ["finish"]
        assert outcome.end_of_session is False
        assert outcome.intent_summary is None
        assert outcome.record.intent == "None"

    @pytest.mark.asyncio
    async def test_fallback_reply_when_no_answer(self, pipeline: DispatchPipeline) -> None:
        outcome = await pipeline.process_turn(turn("what is the capital of France"))

        assert outcome.replies == [FALLBACK]

    @pytest.mark.asyncio
    async def test_structured_intent_still_answers_open_domain(
        self, pipeline: DispatchPipeline
    ) -> None:
        """Structured matches add telemetry but the reply is the open-domain one"""
        outcome = await pipeline.process_turn(turn("I am so stressed and cannot sleep"))

        assert outcome.record.intent == "Stressed"
        assert outcome.record.intensity == 4
        assert outcome.intent_summary.startswith("Top intent Stressed")
        assert outcome.replies == ["Keep a regular bedtime."]

    @pytest.mark.asyncio
    async def test_each_turn_persisted(
        self, pipeline: DispatchPipeline, store: SQLiteDocumentStore, cipher: RecordCipher
    ) -> None:
        await pipeline.process_turn(turn("I feel happy"))
        await pipeline.process_turn(turn("I feel so depressed"))

        docs = await store.list_all("interactions")
        intents = [cipher.unwrap(d.record["payload"])["intent"] for d in docs]
        assert intents == ["Depressed", "Happy"]

    @pytest.mark.asyncio
    async def test_classifier_failure_aborts_turn(
        self, store: SQLiteDocumentStore, cipher: RecordCipher
    ) -> None:
        class BrokenClassifier(StaticIntentClassifier):
            async def classify(self, text):
                raise RuntimeError("classifier down")

        pipeline = DispatchPipeline(
            store, cipher, BrokenClassifier({}), StaticAnswerService({})
        )

        with pytest.raises(RuntimeError):
            await pipeline.process_turn(turn("hello"))

        assert pipeline.sessions.records("c1") == []
        assert await store.count("interactions") == 0


class TestTermination:
    """Session end and summary merge"""

    @pytest.mark.asyncio
    async def test_full_session_summary(self, pipeline: DispatchPipeline) -> None:
        await pipeline.on_members_added("c1", ["u1"])
        await pipeline.process_turn(turn("I feel great"))
        await pipeline.process_turn(turn("tell me about X"))

        outcome = await pipeline.process_turn(finish())

        assert outcome.end_of_session is True
        assert outcome.replies == []
        assert outcome.summary.keywords == ["I feel great", "tell me about X"]
        assert outcome.summary.avg_intensity == pytest.approx(0.5)
        assert outcome.summary.avg_score == pytest.approx(0.6)

        stored = await pipeline.merger.get_summary("u1")
        assert stored == outcome.summary
        assert pipeline.sessions.exists("c1")
        assert pipeline.sessions.records("c1") == []

    @pytest.mark.asyncio
    async def test_empty_session_writes_no_summary(
        self, pipeline: DispatchPipeline, store: SQLiteDocumentStore
    ) -> None:
        await pipeline.on_members_added("c1", ["u1"])

        outcome = await pipeline.process_turn(finish())

        assert outcome.end_of_session is True
        assert outcome.summary is None
        assert await store.count("summaries") == 0

    @pytest.mark.asyncio
    async def test_second_session_overwrites_summary(
        self, pipeline: DispatchPipeline, store: SQLiteDocumentStore
    ) -> None:
        await pipeline.process_turn(turn("I am angry"))
        await pipeline.process_turn(finish())

        await pipeline.process_turn(turn("I feel happy", conversation_id="c2"))
        await pipeline.process_turn(finish(conversation_id="c2"))

        assert await store.count("summaries") == 1
        summary = await pipeline.merger.get_summary("u1")
        assert summary.keywords == ["I feel happy"]
        assert summary.avg_intensity == 1

    @pytest.mark.asyncio
    async def test_turns_after_termination_start_fresh(self, pipeline: DispatchPipeline) -> None:
        await pipeline.process_turn(turn("I am tired"))
        await pipeline.process_turn(finish())

        await pipeline.process_turn(turn("I am bored"))
        outcome = await pipeline.process_turn(finish())

        assert outcome.summary.keywords == ["I am bored"]

    @pytest.mark.asyncio
    async def test_marks_profile_inactive(
        self, pipeline: DispatchPipeline, store: SQLiteDocumentStore
    ) -> None:
        await store.set("users", "u1", {"active": True})

        await pipeline.process_turn(finish())

        assert (await store.get("users", "u1"))["active"] is False

    @pytest.mark.asyncio
    async def test_concurrent_sessions_one_summary_per_user(
        self, pipeline: DispatchPipeline, store: SQLiteDocumentStore, cipher: RecordCipher
    ) -> None:
        """Parallel conversations of the same user collapse into one summary"""

        async def session(conversation_id: str) -> None:
            await pipeline.process_turn(turn("I feel lonely", conversation_id=conversation_id))
            await pipeline.process_turn(finish(conversation_id=conversation_id))

        await asyncio.gather(*(session(f"c{i}") for i in range(4)))

        docs = await store.list_all("summaries")
        users = [SummaryAggregate(**cipher.unwrap(d.record["payload"])).user_id for d in docs]
        assert users == ["u1"]

    @pytest.mark.asyncio
    async def test_presence_failure_does_not_abort(
        self, pipeline: DispatchPipeline
    ) -> None:
        async def broken(user_id: str, active: bool) -> bool:
            raise RuntimeError("profile store down")

        pipeline.presence.set_active = broken
        await pipeline.process_turn(turn("I feel happy"))

        outcome = await pipeline.process_turn(finish())

        assert outcome.summary is not None

    @pytest.mark.asyncio
    async def test_stats(self, pipeline: DispatchPipeline) -> None:
        await pipeline.process_turn(turn("I feel happy"))
        await pipeline.process_turn(finish())

        stats = pipeline.get_stats()

        assert stats["turns_processed"] == 2
        assert stats["records_persisted"] == 1
        assert stats["sessions_reduced"] == 1
        assert stats["summaries"] == {"inserted": 1, "updated": 0}
        assert stats["routes"]["structured"] == 1
