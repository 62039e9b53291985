"""Update-or-insert of per-user session summaries"""

from typing import Optional

from loguru import logger

from src.core.exceptions import RecordCipherError
from src.core.models import StoredDocument, SummaryAggregate
from src.session.keyed_lock import KeyedLock
from src.storage.document_store import SQLiteDocumentStore
from src.storage.record_cipher import RecordCipher


class SummaryMerger:
    """
    Keeps at most one summary document per user.

    Summaries are wrapped blobs, so the store cannot be queried by user.
    Lookup is a full scan that unwraps each document (see
    `find_by_identity`). Upserts for the same user are serialized so two
    concurrent session ends cannot both insert.
    """

    def __init__(
        self,
        store: SQLiteDocumentStore,
        cipher: RecordCipher,
        collection: str = "summaries",
    ) -> None:
        self.store = store
        self.cipher = cipher
        self.collection = collection
        self._user_locks = KeyedLock()
        self.inserted = 0
        self.updated = 0

    def find_by_identity(
        self,
        user_id: str,
        snapshot: list[StoredDocument],
    ) -> Optional[str]:
        """
        Id of the first document in the snapshot whose payload unwraps to user_id.

        Costs one unwrap per document, O(N) in the number of summarized
        users. Documents that cannot be unwrapped are skipped.
        """
        for doc in snapshot:
            payload = doc.record.get("payload")
            if not isinstance(payload, str):
                logger.warning(f"Summary {doc.id} has no payload, skipping")
                continue
            try:
                plain = self.cipher.unwrap(payload)
            except RecordCipherError:
                logger.warning(f"Summary {doc.id} cannot be unwrapped, skipping")
                continue
            if not isinstance(plain, dict):
                logger.warning(f"Summary {doc.id} is not a record, skipping")
                continue
            if plain.get("user_id") == user_id:
                return doc.id
        return None

    async def upsert(self, aggregate: SummaryAggregate) -> str:
        """Replace the user's summary, or insert one. Returns the document id."""
        async with self._user_locks.hold(aggregate.user_id):
            record = {"payload": self.cipher.wrap(aggregate)}
            snapshot = await self.store.list_all(self.collection)

            doc_id = self.find_by_identity(aggregate.user_id, snapshot) if snapshot else None

            if doc_id is None:
                doc_id = await self.store.add(self.collection, record)
                self.inserted += 1
                logger.info(f"Inserted summary {doc_id} for user {aggregate.user_id}")
            else:
                await self.store.set(self.collection, doc_id, record)
                self.updated += 1
                logger.info(f"Overwrote summary {doc_id} for user {aggregate.user_id}")

            return doc_id

    async def get_summary(self, user_id: str) -> Optional[SummaryAggregate]:
        """Current summary for a user, or None"""
        snapshot = await self.store.list_all(self.collection)
        doc_id = self.find_by_identity(user_id, snapshot)
        if doc_id is None:
            return None
        doc = next(d for d in snapshot if d.id == doc_id)
        return SummaryAggregate(**self.cipher.unwrap(doc.record["payload"]))

    def get_stats(self) -> dict[str, int]:
        return {"inserted": self.inserted, "updated": self.updated}
