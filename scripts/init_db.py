"""Initialize the document store and optionally register user profiles"""

import asyncio
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.config import settings
from src.storage.document_store import SQLiteDocumentStore


async def init_database(user_ids: list[str]) -> None:
    """Create the schema and an inactive profile for each given user"""
    store = SQLiteDocumentStore(settings.DB_PATH)
    await store.connect()

    print(f"Document store ready at: {settings.DB_PATH}")

    for user_id in user_ids:
        if await store.get(settings.USERS_COLLECTION, user_id) is None:
            await store.set(settings.USERS_COLLECTION, user_id, {"id": user_id, "active": False})
            print(f"✓ Profile created for {user_id}")
        else:
            print(f"- Profile for {user_id} already exists")

    await store.close()


if __name__ == "__main__":
    asyncio.run(init_database(sys.argv[1:]))
