"""Turn dispatch pipeline orchestrating the session lifecycle"""

from typing import Any, Dict, Iterable, Optional

from loguru import logger

from src.core.intensity import IntensityTable
from src.core.models import RouteAction, RoutePath, TurnEvent, TurnOutcome
from src.services.answer_service import AnswerService
from src.services.intent_classifier import IntentClassifier
from src.session.presence import UserPresenceTracker
from src.session.recorder import InteractionRecorder
from src.session.reducer import SessionReducer
from src.session.session_manager import SessionManager
from src.session.summary_merger import SummaryMerger
from src.session.turn_router import TurnRouter, describe_classification
from src.storage.document_store import SQLiteDocumentStore
from src.storage.record_cipher import RecordCipher


class DispatchPipeline:
    """
    Single-turn conversational dispatcher.

    Per turn: route -> record -> (on termination) reduce -> merge.
    Turns of one conversation run one at a time; different
    conversations proceed concurrently.
    """

    def __init__(
        self,
        store: SQLiteDocumentStore,
        cipher: RecordCipher,
        classifier: IntentClassifier,
        answers: AnswerService,
        intensities: Optional[IntensityTable] = None,
        bot_id: str = "st-bot",
        welcome_text: str = "Hello, this is ST Bot! How are you today?",
        fallback_text: str = "Sorry, could not find an answer in the Q and A system.",
        finish_action: str = "finish",
        structured_prefix: str = "l_",
        interactions_collection: str = "interactions",
        summaries_collection: str = "summaries",
        users_collection: str = "users",
    ) -> None:
        self.store = store
        self.intensities = intensities or IntensityTable()
        self.bot_id = bot_id
        self.welcome_text = welcome_text
        self.fallback_text = fallback_text
        self.finish_action = finish_action

        self.sessions = SessionManager()
        self.router = TurnRouter(classifier, answers, self.intensities, structured_prefix)
        self.recorder = InteractionRecorder(
            self.sessions, store, cipher, self.intensities, interactions_collection
        )
        self.reducer = SessionReducer(self.sessions)
        self.merger = SummaryMerger(store, cipher, summaries_collection)
        self.presence = UserPresenceTracker(store, users_collection)

        self.turns_processed = 0
        logger.info("DispatchPipeline initialized")

    async def on_members_added(
        self,
        conversation_id: str,
        member_ids: Iterable[str],
    ) -> TurnOutcome:
        """Open the session and greet every joining member except the bot"""
        self.sessions.open(conversation_id)

        replies = []
        for member_id in member_ids:
            if member_id == self.bot_id:
                continue
            await self._mark_presence(member_id, True)
            replies.append(self.welcome_text)

        return TurnOutcome(conversation_id=conversation_id, replies=replies)

    async def process_turn(self, event: TurnEvent) -> TurnOutcome:
        """
        Process one inbound turn.

        Classifier, answer service and store failures propagate; side
        effects already applied in the turn are not undone.
        """
        self.turns_processed += 1

        async with self.sessions.turn(event.conversation_id) as session:
            decision = await self.router.route(event)

            if decision.action == RouteAction.TERMINATE:
                return await self._end_session(event)

            record = await self.recorder.record(
                event.conversation_id, event.user_id, decision.classification
            )

            intent_summary = None
            if decision.path == RoutePath.STRUCTURED:
                intent_summary = describe_classification(decision.classification)
                logger.info(
                    "Structured intent on {conversation}: {summary}",
                    conversation=event.conversation_id,
                    summary=intent_summary.replace("\n", " "),
                )

            reply = decision.answers[0].answer if decision.answers else self.fallback_text

            logger.debug(
                "Session {conversation} now holds {n} interactions",
                conversation=event.conversation_id,
                n=len(session),
            )

        return TurnOutcome(
            conversation_id=event.conversation_id,
            replies=[reply],
            suggested_actions=[self.finish_action],
            intent_summary=intent_summary,
            record=record,
        )

    async def _end_session(self, event: TurnEvent) -> TurnOutcome:
        aggregate = self.reducer.finalize(event.conversation_id, event.user_id)
        if aggregate is not None:
            await self.merger.upsert(aggregate)

        await self._mark_presence(event.user_id, False)

        logger.info(
            "Session {conversation} ended for user {user}",
            conversation=event.conversation_id,
            user=event.user_id,
        )
        return TurnOutcome(
            conversation_id=event.conversation_id,
            end_of_session=True,
            summary=aggregate,
        )

    async def _mark_presence(self, user_id: str, active: bool) -> None:
        # Best effort: presence never aborts the turn that triggered it.
        try:
            await self.presence.set_active(user_id, active)
        except Exception as e:
            logger.warning(f"Failed to update presence for user {user_id}: {e}")

    def get_stats(self) -> Dict[str, Any]:
        """Get pipeline statistics"""
        return {
            "turns_processed": self.turns_processed,
            "records_persisted": self.recorder.records_persisted,
            "sessions_reduced": self.reducer.sessions_reduced,
            "routes": self.router.get_stats(),
            "summaries": self.merger.get_stats(),
            "sessions": self.sessions.get_stats(),
        }
