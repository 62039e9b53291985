"""Core data models and configuration"""

from src.core.models import (
    Answer,
    Classification,
    Entity,
    InteractionRecord,
    RouteAction,
    RoutePath,
    RoutingDecision,
    SummaryAggregate,
    TurnEvent,
    TurnOutcome,
)
from src.core.config import settings

__all__ = [
    "Answer",
    "Classification",
    "Entity",
    "InteractionRecord",
    "RouteAction",
    "RoutePath",
    "RoutingDecision",
    "SummaryAggregate",
    "TurnEvent",
    "TurnOutcome",
    "settings",
]
