"""Session lifecycle: routing, recording, reduction and summary merge"""

from src.session.session_manager import SessionHandle, SessionManager
from src.session.turn_router import TurnRouter, describe_classification, is_termination
from src.session.recorder import InteractionRecorder, interaction_key
from src.session.reducer import SessionReducer
from src.session.summary_merger import SummaryMerger
from src.session.presence import UserPresenceTracker

__all__ = [
    "SessionHandle",
    "SessionManager",
    "TurnRouter",
    "describe_classification",
    "is_termination",
    "InteractionRecorder",
    "interaction_key",
    "SessionReducer",
    "SummaryMerger",
    "UserPresenceTracker",
]
