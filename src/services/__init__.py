"""Clients for the language-understanding collaborators"""

from src.services.intent_classifier import (
    HTTPIntentClassifier,
    IntentClassifier,
    StaticIntentClassifier,
)
from src.services.answer_service import (
    AnswerService,
    HTTPAnswerService,
    StaticAnswerService,
)

__all__ = [
    "IntentClassifier",
    "HTTPIntentClassifier",
    "StaticIntentClassifier",
    "AnswerService",
    "HTTPAnswerService",
    "StaticAnswerService",
]
