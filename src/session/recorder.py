"""Per-turn interaction recording"""

from uuid import uuid4

from loguru import logger

from src.core.intensity import MAX_INTENSITY, IntensityTable
from src.core.models import Classification, InteractionRecord
from src.session.session_manager import SessionManager
from src.storage.document_store import SQLiteDocumentStore
from src.storage.record_cipher import RecordCipher


def interaction_key(intensity: int) -> str:
    """
    Storage key for a per-turn record.

    The prefix is the inverted intensity, so a lexicographic scan of the
    collection returns the most severe interactions first.
    """
    return f"{MAX_INTENSITY - intensity}_{uuid4()}"


class InteractionRecorder:
    """Appends each processed turn to its session and persists it on its own"""

    def __init__(
        self,
        sessions: SessionManager,
        store: SQLiteDocumentStore,
        cipher: RecordCipher,
        intensities: IntensityTable,
        collection: str = "interactions",
    ) -> None:
        self.sessions = sessions
        self.store = store
        self.cipher = cipher
        self.intensities = intensities
        self.collection = collection
        self.records_persisted = 0

    async def record(
        self,
        session_id: str,
        user_id: str,
        classification: Classification,
    ) -> InteractionRecord:
        """
        Build, append and persist one InteractionRecord.

        A failed write propagates; the in-memory append is kept.
        """
        record = InteractionRecord(
            utterance=classification.utterance,
            intent=classification.intent,
            confidence_score=classification.confidence_score,
            intensity=self.intensities.lookup(classification.intent),
            user_id=user_id,
        )

        self.sessions.append(session_id, record)

        key = interaction_key(record.intensity)
        await self.store.add(self.collection, {"payload": self.cipher.wrap(record)}, key=key)
        self.records_persisted += 1

        logger.debug(
            "Recorded {intent} (intensity={intensity}) for session {session} as {key}",
            intent=record.intent,
            intensity=record.intensity,
            session=session_id,
            key=key,
        )
        return record
