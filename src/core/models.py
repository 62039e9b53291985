"""Core data models for the dispatch service"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class RouteAction(str, Enum):
    """What the turn does to the session"""

    CONTINUE = "continue"
    TERMINATE = "terminate"


class RoutePath(str, Enum):
    """Which handler a classified turn belongs to"""

    STRUCTURED = "structured"
    OPEN_DOMAIN = "open_domain"
    NONE = "none"


class TurnEvent(BaseModel):
    """One inbound message within a conversation"""

    text: str
    is_termination_signal: bool = False
    conversation_id: str
    user_id: str


class Entity(BaseModel):
    """Named entity reported by the intent classifier"""

    name: str
    value: str = ""


class IntentScore(BaseModel):
    """One ranked intent from the classifier"""

    intent: str
    score: float = Field(default=0.0, ge=0.0, le=1.0)


class Classification(BaseModel):
    """
    Result of classifying one utterance.

    `intent` and `confidence_score` describe the top-scoring intent;
    `intents` keeps the full ranking when the classifier reports it.
    """

    utterance: str
    intent: str
    confidence_score: float = Field(ge=0.0, le=1.0)
    entities: list[Entity] = Field(default_factory=list)
    intents: list[IntentScore] = Field(default_factory=list)


class Answer(BaseModel):
    """Candidate answer from the open-domain responder"""

    answer: str
    score: float = 0.0


class InteractionRecord(BaseModel):
    """A single processed turn. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    utterance: str
    intent: str
    confidence_score: float = Field(ge=0.0, le=1.0)
    intensity: int = 0
    user_id: str


class SummaryAggregate(BaseModel):
    """
    Reduction of one session's interaction log.

    At most one of these is persisted per user_id; newer sessions
    overwrite the previous summary in place.
    """

    model_config = ConfigDict(frozen=True)

    avg_intensity: float
    avg_score: float
    keywords: list[str] = Field(default_factory=list)
    user_id: str


class RoutingDecision(BaseModel):
    """Outcome of routing one turn"""

    action: RouteAction
    path: RoutePath = RoutePath.NONE
    classification: Optional[Classification] = None
    answers: list[Answer] = Field(default_factory=list)


class TurnOutcome(BaseModel):
    """Everything the channel needs to reply to a turn"""

    conversation_id: str
    replies: list[str] = Field(default_factory=list)
    suggested_actions: list[str] = Field(default_factory=list)
    end_of_session: bool = False
    intent_summary: Optional[str] = None
    record: Optional[InteractionRecord] = None
    summary: Optional[SummaryAggregate] = None


class StoredDocument(BaseModel):
    """A document as returned by the record store"""

    id: str
    record: dict[str, Any]
