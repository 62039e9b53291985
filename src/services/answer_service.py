"""Open-domain answer service collaborator"""

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

import httpx
from loguru import logger
from pydantic import ValidationError

from src.core.exceptions import AnswerServiceFailure
from src.core.models import Answer


class AnswerService(ABC):
    """Given an utterance, returns candidate answers ordered best-first"""

    def __init__(self, name: str) -> None:
        self.name = name
        self.query_count = 0

    @abstractmethod
    async def answer(self, text: str) -> list[Answer]:
        pass

    def get_stats(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "queries": self.query_count,
        }


class HTTPAnswerService(AnswerService):
    """Client for a QnA-style `generateAnswer` knowledge base endpoint"""

    def __init__(
        self,
        host: str,
        knowledge_base_id: str,
        key: str,
        top: int = 1,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__("HTTPAnswerService")
        self.url = f"{host.rstrip('/')}/knowledgebases/{knowledge_base_id}/generateAnswer"
        self.key = key
        self.top = top
        self.timeout = timeout
        self._client = client
        logger.info(f"{self.name} initialized ({self.url})")

    async def answer(self, text: str) -> list[Answer]:
        body = {"question": text, "top": self.top}
        headers = {"Authorization": f"EndpointKey {self.key}"}

        try:
            if self._client is not None:
                resp = await self._client.post(self.url, json=body, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.post(self.url, json=body, headers=headers)
            resp.raise_for_status()
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise AnswerServiceFailure(f"Answer lookup failed: {e}") from e

        answers = self.parse_answers(payload)[: self.top]
        self.query_count += 1

        logger.debug("Answer service returned {n} candidates", n=len(answers))
        return answers

    @staticmethod
    def parse_answers(payload: Mapping[str, Any]) -> list[Answer]:
        """
        Map a generateAnswer payload onto answers, best-first.

        Zero-score entries are the service's "no match" placeholder
        and are dropped.
        """
        if not isinstance(payload, Mapping):
            raise AnswerServiceFailure("Answer payload is not a JSON object")

        try:
            answers = [
                Answer(answer=a["answer"], score=a.get("score", 0.0))
                for a in payload.get("answers", [])
            ]
        except (AttributeError, KeyError, TypeError, ValidationError) as e:
            raise AnswerServiceFailure(f"Malformed answer payload: {e}") from e

        answers = [a for a in answers if a.score > 0]
        answers.sort(key=lambda a: a.score, reverse=True)
        return answers


class StaticAnswerService(AnswerService):
    """In-process answer service: answers whose trigger word appears in the question"""

    def __init__(self, answers: Mapping[str, str]) -> None:
        super().__init__("StaticAnswerService")
        self.answers = {trigger.lower(): text for trigger, text in answers.items()}

    async def answer(self, text: str) -> list[Answer]:
        self.query_count += 1
        lowered = text.lower()
        return [
            Answer(answer=reply, score=1.0)
            for trigger, reply in self.answers.items()
            if trigger in lowered
        ]
