"""SQLite-backed keyed document collections"""

import json
import time
from pathlib import Path
from typing import Any, Optional, Union
from uuid import uuid4

import aiosqlite
from loguru import logger

from src.core.exceptions import StoreFailure
from src.core.models import StoredDocument


class SQLiteDocumentStore:
    """
    Opaque JSON documents grouped into named collections.

    Features:
    - add/get/set/list_all addressed by (collection, id)
    - caller-chosen ids, so key layout can encode ordering
    - list_all returns documents in lexicographic id order
    """

    def __init__(self, db_path: Union[Path, str]) -> None:
        self.db_path = Path(db_path) if str(db_path) != ":memory:" else db_path
        self._conn: Optional[aiosqlite.Connection] = None

    async def connect(self) -> None:
        """Establish database connection"""
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = await aiosqlite.connect(str(self.db_path))
        self._conn.row_factory = aiosqlite.Row

        await self._setup_schema()
        logger.info(f"Connected to document store: {self.db_path}")

    async def close(self) -> None:
        """Close database connection"""
        if self._conn:
            await self._conn.close()
            self._conn = None
            logger.info("Document store connection closed")

    @property
    def connected(self) -> bool:
        return self._conn is not None

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise StoreFailure("Document store not connected")
        return self._conn

    async def _setup_schema(self) -> None:
        conn = self._require_conn()

        await conn.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                collection TEXT NOT NULL,
                id TEXT NOT NULL,
                body TEXT NOT NULL,
                updated_at REAL NOT NULL,
                PRIMARY KEY (collection, id)
            )
        """)

        await conn.commit()
        logger.debug("Document schema initialized")

    async def add(
        self,
        collection: str,
        record: dict[str, Any],
        key: Optional[str] = None,
    ) -> str:
        """Insert a new document and return its id (generated when not given)"""
        conn = self._require_conn()
        doc_id = key or uuid4().hex

        try:
            await conn.execute(
                "INSERT INTO documents (collection, id, body, updated_at) VALUES (?, ?, ?, ?)",
                (collection, doc_id, json.dumps(record), time.time()),
            )
            await conn.commit()
        except aiosqlite.Error as e:
            raise StoreFailure(f"add to {collection!r} failed: {e}") from e

        logger.debug(f"Added document {collection}/{doc_id}")
        return doc_id

    async def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        """Retrieve a document by id, or None"""
        conn = self._require_conn()

        try:
            cursor = await conn.execute(
                "SELECT body FROM documents WHERE collection = ? AND id = ?",
                (collection, doc_id),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreFailure(f"get {collection}/{doc_id} failed: {e}") from e

        if not row:
            return None
        return json.loads(row["body"])

    async def set(self, collection: str, doc_id: str, record: dict[str, Any]) -> None:
        """Replace (or create) the document stored under doc_id"""
        conn = self._require_conn()

        try:
            await conn.execute(
                """
                INSERT INTO documents (collection, id, body, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(collection, id) DO UPDATE SET
                    body = excluded.body,
                    updated_at = excluded.updated_at
                """,
                (collection, doc_id, json.dumps(record), time.time()),
            )
            await conn.commit()
        except aiosqlite.Error as e:
            raise StoreFailure(f"set {collection}/{doc_id} failed: {e}") from e

        logger.debug(f"Set document {collection}/{doc_id}")

    async def list_all(self, collection: str) -> list[StoredDocument]:
        """Snapshot of every document in a collection, ordered by id"""
        conn = self._require_conn()

        try:
            cursor = await conn.execute(
                "SELECT id, body FROM documents WHERE collection = ? ORDER BY id",
                (collection,),
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StoreFailure(f"list {collection!r} failed: {e}") from e

        return [StoredDocument(id=row["id"], record=json.loads(row["body"])) for row in rows]

    async def delete(self, collection: str, doc_id: str) -> None:
        """Permanently delete a document"""
        conn = self._require_conn()

        await conn.execute(
            "DELETE FROM documents WHERE collection = ? AND id = ?",
            (collection, doc_id),
        )
        await conn.commit()
        logger.warning(f"Deleted document {collection}/{doc_id}")

    async def count(self, collection: str) -> int:
        conn = self._require_conn()

        cursor = await conn.execute(
            "SELECT COUNT(*) FROM documents WHERE collection = ?",
            (collection,),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def get_stats(self) -> dict[str, int]:
        """Document counts per collection"""
        conn = self._require_conn()

        cursor = await conn.execute(
            "SELECT collection, COUNT(*) AS n FROM documents GROUP BY collection"
        )
        rows = await cursor.fetchall()

        stats = {f"{row['collection']}_count": row["n"] for row in rows}
        stats["total_documents"] = sum(row["n"] for row in rows)
        return stats
