"""Turn classification and routing"""

from typing import Optional

from loguru import logger

from src.core.intensity import IntensityTable
from src.core.models import (
    Classification,
    RouteAction,
    RoutePath,
    RoutingDecision,
    TurnEvent,
)
from src.services.answer_service import AnswerService
from src.services.intent_classifier import IntentClassifier


def is_termination(text: str, postback: bool, keyword: str) -> bool:
    """A turn ends the session only when it is a postback carrying the keyword"""
    return postback and text.strip().lower() == keyword.strip().lower()


def describe_classification(classification: Classification) -> str:
    """Human readable summary of a structured-intent match"""
    lines = [
        f"Top intent {classification.intent}. Score {classification.confidence_score}"
    ]
    if classification.intents:
        detected = "\n\n".join(i.intent for i in classification.intents)
        lines.append(f"Intents detected: {detected}.")
    if classification.entities:
        found = "\n\n".join(e.value for e in classification.entities)
        lines.append(f"Entities were found in the message: {found}.")
    return "\n".join(lines)


class TurnRouter:
    """
    Decides what a turn does.

    Termination turns short-circuit without classification. Every other
    turn is classified first, and the open-domain responder is always
    queried as well: the structured path only changes which telemetry
    is recorded, not which reply is sent.
    """

    def __init__(
        self,
        classifier: IntentClassifier,
        answers: AnswerService,
        intensities: Optional[IntensityTable] = None,
        structured_prefix: str = "l_",
    ) -> None:
        self.classifier = classifier
        self.answers = answers
        self.intensities = intensities or IntensityTable()
        self.structured_prefix = structured_prefix
        self.routes = {path: 0 for path in RoutePath}

    def path_for(self, intent: str) -> RoutePath:
        if intent.startswith(self.structured_prefix) or intent in self.intensities:
            return RoutePath.STRUCTURED
        return RoutePath.OPEN_DOMAIN

    async def route(self, event: TurnEvent) -> RoutingDecision:
        if event.is_termination_signal:
            self.routes[RoutePath.NONE] += 1
            logger.info(f"Termination signal on conversation {event.conversation_id}")
            return RoutingDecision(action=RouteAction.TERMINATE)

        classification = await self.classifier.classify(event.text)
        path = self.path_for(classification.intent)
        answers = await self.answers.answer(event.text)
        self.routes[path] += 1

        logger.info(
            "Routed turn on {conversation} to {path} (intent={intent}, score={score:.2f})",
            conversation=event.conversation_id,
            path=path.value,
            intent=classification.intent,
            score=classification.confidence_score,
        )

        return RoutingDecision(
            action=RouteAction.CONTINUE,
            path=path,
            classification=classification,
            answers=answers,
        )

    def get_stats(self) -> dict[str, int]:
        return {path.value: count for path, count in self.routes.items()}
