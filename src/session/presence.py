"""User presence flag on persisted profiles"""

from loguru import logger

from src.storage.document_store import SQLiteDocumentStore


class UserPresenceTracker:
    """Toggles `active` on existing user profiles; never creates one"""

    def __init__(self, store: SQLiteDocumentStore, collection: str = "users") -> None:
        self.store = store
        self.collection = collection

    async def set_active(self, user_id: str, active: bool) -> bool:
        """Returns False when the user has no profile (no-op)"""
        profile = await self.store.get(self.collection, user_id)
        if profile is None:
            logger.debug(f"No profile for user {user_id}, presence not updated")
            return False

        await self.store.set(self.collection, user_id, {**profile, "active": active})
        logger.debug(f"User {user_id} marked {'active' if active else 'inactive'}")
        return True
