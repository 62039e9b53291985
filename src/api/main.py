"""FastAPI channel surface for the dispatch bot"""

from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI, HTTPException
from loguru import logger
from pydantic import BaseModel

from src.core.config import configure_logging, settings
from src.core.exceptions import AnswerServiceFailure, ClassifierFailure, StoreFailure
from src.core.models import SummaryAggregate, TurnEvent, TurnOutcome
from src.pipeline.dispatch_pipeline import DispatchPipeline
from src.services.answer_service import AnswerService, HTTPAnswerService, StaticAnswerService
from src.services.intent_classifier import (
    DEFAULT_KEYWORDS,
    HTTPIntentClassifier,
    IntentClassifier,
    StaticIntentClassifier,
)
from src.session.turn_router import is_termination
from src.storage.document_store import SQLiteDocumentStore
from src.storage.record_cipher import RecordCipher


# Global state
store: SQLiteDocumentStore = None
pipeline: DispatchPipeline = None


def build_classifier() -> IntentClassifier:
    if not settings.CLASSIFIER_ENDPOINT:
        logger.warning("CLASSIFIER_ENDPOINT not set, using keyword classifier")
        return StaticIntentClassifier(DEFAULT_KEYWORDS)
    return HTTPIntentClassifier(
        settings.CLASSIFIER_ENDPOINT,
        settings.CLASSIFIER_APP_ID,
        settings.CLASSIFIER_KEY,
        timeout=settings.HTTP_TIMEOUT,
    )


def build_answer_service() -> AnswerService:
    if not settings.QNA_ENDPOINT:
        logger.warning("QNA_ENDPOINT not set, answer service will find no answers")
        return StaticAnswerService({})
    return HTTPAnswerService(
        settings.QNA_ENDPOINT,
        settings.QNA_KNOWLEDGE_BASE_ID,
        settings.QNA_KEY,
        top=settings.QNA_TOP,
        timeout=settings.HTTP_TIMEOUT,
    )


def build_pipeline(store: SQLiteDocumentStore) -> DispatchPipeline:
    return DispatchPipeline(
        store,
        RecordCipher(settings.CIPHER_SECRET),
        build_classifier(),
        build_answer_service(),
        bot_id=settings.BOT_ID,
        welcome_text=settings.WELCOME_TEXT,
        fallback_text=settings.FALLBACK_TEXT,
        finish_action=settings.TERMINATION_KEYWORD,
        structured_prefix=settings.STRUCTURED_INTENT_PREFIX,
        interactions_collection=settings.INTERACTIONS_COLLECTION,
        summaries_collection=settings.SUMMARIES_COLLECTION,
        users_collection=settings.USERS_COLLECTION,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan (startup/shutdown)"""
    global store, pipeline

    # Startup
    configure_logging()
    store = SQLiteDocumentStore(settings.DB_PATH)
    await store.connect()

    pipeline = build_pipeline(store)

    yield

    # Shutdown
    await store.close()


app = FastAPI(
    title="ST Bot Dispatcher",
    description="Intent dispatch with per-session summaries",
    version="0.1.0",
    lifespan=lifespan,
)


# Request/Response models
class MembersAddedRequest(BaseModel):
    """Members joining a conversation"""
    member_ids: List[str]


class MessageRequest(BaseModel):
    """One inbound message"""
    user_id: str
    text: str
    postback: bool = False


class StatsResponse(BaseModel):
    """System statistics"""
    turns_processed: int
    records_persisted: int
    sessions_reduced: int
    total_documents: int


def _require_pipeline() -> DispatchPipeline:
    if not pipeline:
        raise HTTPException(status_code=503, detail="Pipeline not initialized")
    return pipeline


# Endpoints
@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": "ST Bot Dispatcher",
        "version": "0.1.0",
        "status": "running",
    }


@app.post("/conversations/{conversation_id}/members", response_model=TurnOutcome)
async def members_added(conversation_id: str, request: MembersAddedRequest):
    """Open the conversation's session and greet new members"""
    dispatcher = _require_pipeline()
    try:
        return await dispatcher.on_members_added(conversation_id, request.member_ids)
    except StoreFailure as e:
        raise HTTPException(status_code=503, detail=str(e))


@app.post("/conversations/{conversation_id}/messages", response_model=TurnOutcome)
async def post_message(conversation_id: str, request: MessageRequest):
    """
    Process one turn.

    A postback whose text is the termination keyword ends the session
    and stores the user's summary.
    """
    dispatcher = _require_pipeline()

    event = TurnEvent(
        text=request.text,
        is_termination_signal=is_termination(
            request.text, request.postback, settings.TERMINATION_KEYWORD
        ),
        conversation_id=conversation_id,
        user_id=request.user_id,
    )

    try:
        return await dispatcher.process_turn(event)
    except (ClassifierFailure, AnswerServiceFailure) as e:
        raise HTTPException(status_code=502, detail=str(e))
    except StoreFailure as e:
        raise HTTPException(status_code=503, detail=str(e))


@app.get("/summaries/{user_id}", response_model=SummaryAggregate)
async def get_summary(user_id: str):
    """Latest session summary for a user"""
    dispatcher = _require_pipeline()

    try:
        summary = await dispatcher.merger.get_summary(user_id)
    except StoreFailure as e:
        raise HTTPException(status_code=503, detail=str(e))

    if summary is None:
        raise HTTPException(status_code=404, detail=f"No summary for user {user_id}")
    return summary


@app.get("/stats", response_model=StatsResponse)
async def get_stats():
    """Get system statistics"""
    if not pipeline or not store:
        raise HTTPException(status_code=503, detail="System not initialized")

    pipeline_stats = pipeline.get_stats()
    storage_stats = await store.get_stats()

    return StatsResponse(
        turns_processed=pipeline_stats["turns_processed"],
        records_persisted=pipeline_stats["records_persisted"],
        sessions_reduced=pipeline_stats["sessions_reduced"],
        total_documents=storage_stats.get("total_documents", 0),
    )


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    if not pipeline or not store or not store.connected:
        raise HTTPException(status_code=503, detail="System not ready")

    return {"status": "healthy"}
