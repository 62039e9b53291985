"""Session-close reduction"""

from typing import Optional

from loguru import logger

from src.core.models import SummaryAggregate
from src.session.session_manager import SessionManager


class SessionReducer:
    """Folds a terminated session's records into one SummaryAggregate"""

    def __init__(self, sessions: SessionManager) -> None:
        self.sessions = sessions
        self.sessions_reduced = 0

    def finalize(self, session_id: str, user_id: str) -> Optional[SummaryAggregate]:
        """
        Reduce and clear the session.

        Returns None for an empty session; nothing is summarized then.
        The session is always left open and empty afterwards.
        """
        records = self.sessions.records(session_id)

        if not records:
            self.sessions.clear(session_id)
            logger.info(f"Session {session_id} ended with no interactions, nothing to summarize")
            return None

        count = len(records)
        aggregate = SummaryAggregate(
            avg_intensity=sum(r.intensity for r in records) / count,
            avg_score=sum(r.confidence_score for r in records) / count,
            keywords=[r.utterance for r in records],
            user_id=user_id,
        )

        self.sessions.clear(session_id)
        self.sessions_reduced += 1

        logger.info(
            "Reduced session {session}: {count} turns, avg_intensity={intensity:.2f}, "
            "avg_score={score:.2f}",
            session=session_id,
            count=count,
            intensity=aggregate.avg_intensity,
            score=aggregate.avg_score,
        )
        return aggregate
