"""Intent classifier collaborator"""

import re
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

import httpx
from loguru import logger
from pydantic import ValidationError

from src.core.exceptions import ClassifierFailure
from src.core.models import Classification, Entity, IntentScore

NONE_INTENT = "None"


class IntentClassifier(ABC):
    """Given an utterance, returns the ranked intent, its confidence and entities"""

    def __init__(self, name: str) -> None:
        self.name = name
        self.classification_count = 0

    @abstractmethod
    async def classify(self, text: str) -> Classification:
        pass

    def get_stats(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "classifications": self.classification_count,
        }


class HTTPIntentClassifier(IntentClassifier):
    """
    Client for a LUIS-style prediction endpoint.

    Expects a JSON body with `topScoringIntent`, optionally the full
    `intents` ranking and `entities` (`entity` text plus `type`).
    """

    def __init__(
        self,
        endpoint: str,
        app_id: str,
        key: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__("HTTPIntentClassifier")
        self.url = f"{endpoint.rstrip('/')}/luis/v2.0/apps/{app_id}"
        self.key = key
        self.timeout = timeout
        self._client = client
        logger.info(f"{self.name} initialized ({self.url})")

    async def classify(self, text: str) -> Classification:
        params = {"q": text, "verbose": "true"}
        headers = {"Ocp-Apim-Subscription-Key": self.key}

        try:
            if self._client is not None:
                resp = await self._client.get(self.url, params=params, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.get(self.url, params=params, headers=headers)
            resp.raise_for_status()
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ClassifierFailure(f"Intent classification failed: {e}") from e

        classification = self.parse_prediction(text, payload)
        self.classification_count += 1

        logger.debug(
            "Classified utterance as {intent} ({score:.2f})",
            intent=classification.intent,
            score=classification.confidence_score,
        )
        return classification

    @staticmethod
    def parse_prediction(text: str, payload: Mapping[str, Any]) -> Classification:
        """Map a prediction payload onto a Classification"""
        if not isinstance(payload, Mapping):
            raise ClassifierFailure("Prediction payload is not a JSON object")

        top = payload.get("topScoringIntent")
        if not isinstance(top, Mapping) or "intent" not in top:
            raise ClassifierFailure("Prediction payload has no topScoringIntent")

        try:
            return Classification(
                utterance=payload.get("query") or text,
                intent=top["intent"],
                confidence_score=top.get("score", 0.0),
                intents=[
                    IntentScore(intent=i["intent"], score=i.get("score", 0.0))
                    for i in payload.get("intents", [])
                ],
                entities=[
                    Entity(name=e.get("type", ""), value=e.get("entity", ""))
                    for e in payload.get("entities", [])
                ],
            )
        except (AttributeError, KeyError, TypeError, ValidationError) as e:
            raise ClassifierFailure(f"Malformed prediction payload: {e}") from e


class StaticIntentClassifier(IntentClassifier):
    """
    In-process classifier driven by a keyword table.

    The first intent with a keyword present in the utterance wins;
    otherwise the utterance is classified as "None".
    """

    def __init__(
        self,
        keywords: Mapping[str, list[str]],
        score: float = 0.9,
        fallback_score: float = 0.3,
    ) -> None:
        super().__init__("StaticIntentClassifier")
        self.keywords = {intent: [w.lower() for w in words] for intent, words in keywords.items()}
        self.score = score
        self.fallback_score = fallback_score

    async def classify(self, text: str) -> Classification:
        self.classification_count += 1
        lowered = text.lower()
        tokens = set(re.findall(r"[\w']+", lowered))

        for intent, words in self.keywords.items():
            # Multi-word keywords match as phrases, single words as whole tokens
            hits = [w for w in words if (w in lowered if " " in w else w in tokens)]
            if hits:
                return Classification(
                    utterance=text,
                    intent=intent,
                    confidence_score=self.score,
                    intents=[IntentScore(intent=intent, score=self.score)],
                    entities=[Entity(name="keyword", value=w) for w in hits],
                )

        return Classification(
            utterance=text,
            intent=NONE_INTENT,
            confidence_score=self.fallback_score,
            intents=[IntentScore(intent=NONE_INTENT, score=self.fallback_score)],
        )


# Keyword table for running without a prediction endpoint.
DEFAULT_KEYWORDS: dict[str, list[str]] = {
    "SelfHarm": ["suicide", "suicidal", "hurt myself"],
    "Depressed": ["depressed", "hopeless", "worthless"],
    "Lonely": ["lonely", "alone", "isolated"],
    "Anxious": ["anxious", "worried", "nervous", "panic"],
    "Angry": ["angry", "furious", "mad"],
    "Stressed": ["stressed", "overwhelmed", "pressure"],
    "Tired": ["tired", "exhausted", "sleepy"],
    "Bored": ["bored", "boring"],
    "Happy": ["happy", "great", "good", "glad"],
    "Greeting": ["hello", "hi", "hey"],
}
