"""
Dayboard — SQLite Document Store.

The Memory pillar: tasks, lifestyle items and daily logs persist as JSON
documents in a single SQLite table, one row per (collection, id). Filters
are evaluated with SQLite's json_extract, so string fields compare
lexicographically — ISO dates and instants sort chronologically that way.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from pathlib import Path
from typing import Any

from dayboard.ports.store_port import (
    FILTER_OPS,
    DocumentNotFoundError,
    DuplicateDocumentError,
    Filter,
    StoreError,
)

logger = logging.getLogger(__name__)

_NULL_OPS = {"==": "IS NULL", "!=": "IS NOT NULL"}


def _json_path(field: str) -> str:
    if not field or not field.replace("_", "").isalnum():
        raise ValueError(f"Invalid field name: {field!r}")
    return f"$.{field}"


def _build_where(collection: str, filters: list[Filter]) -> tuple[str, list[Any]]:
    """Translate (field, op, value) filters into a WHERE clause + params."""
    clauses = ["collection = ?"]
    params: list[Any] = [collection]
    for field, op, value in filters:
        if op not in FILTER_OPS:
            raise ValueError(f"Unsupported filter operator: {op!r}")
        path = _json_path(field)
        if value is None:
            if op not in _NULL_OPS:
                raise ValueError(f"Operator {op!r} cannot compare against None")
            clauses.append(f"json_extract(data, ?) {_NULL_OPS[op]}")
            params.append(path)
            continue
        sql_op = "=" if op == "==" else op
        clauses.append(f"json_extract(data, ?) {sql_op} ?")
        params.extend([path, value])
    return " AND ".join(clauses), params


class SQLiteDocumentStore:
    """SQLite-backed implementation of DocumentStore."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from dayboard.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        # An in-memory database lives only as long as its connection, so one
        # connection is shared, across threads too.
        self._memory_conn: sqlite3.Connection | None = None
        if db_path == ":memory:":
            self._memory_conn = sqlite3.connect(db_path, check_same_thread=False)
            self._memory_conn.row_factory = sqlite3.Row
        else:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        if self._memory_conn is not None:
            return self._memory_conn
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Create the documents table if it doesn't exist."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    id         TEXT NOT NULL,
                    data       TEXT NOT NULL,
                    PRIMARY KEY (collection, id)
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_documents_collection "
                "ON documents (collection)"
            )
        logger.debug("Documents table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_doc(row: sqlite3.Row) -> dict:
        doc = json.loads(row["data"])
        doc["id"] = row["id"]
        return doc

    async def add(
        self, collection: str, data: dict, doc_id: str | None = None
    ) -> str:
        """Insert a new document. Raises DuplicateDocumentError on id collision."""
        new_id = doc_id or uuid.uuid4().hex
        payload = {k: v for k, v in data.items() if k != "id"}
        try:
            with self._connect() as conn:
                conn.execute(
                    "INSERT INTO documents (collection, id, data) VALUES (?, ?, ?)",
                    (collection, new_id, json.dumps(payload)),
                )
        except sqlite3.IntegrityError as exc:
            raise DuplicateDocumentError(collection, new_id) from exc
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to add document to {collection!r}: {exc}") from exc
        logger.debug("Document added: %s/%s", collection, new_id)
        return new_id

    async def get(self, collection: str, doc_id: str) -> dict | None:
        """Fetch a single document by id."""
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT id, data FROM documents WHERE collection = ? AND id = ?",
                    (collection, doc_id),
                ).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to read {collection}/{doc_id}: {exc}") from exc
        if row is None:
            return None
        return self._row_to_doc(row)

    async def query(
        self,
        collection: str,
        filters: list[Filter] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict]:
        """Return documents in a collection matching every filter."""
        where, params = _build_where(collection, filters or [])
        sql = f"SELECT id, data FROM documents WHERE {where}"
        if order_by:
            sql += f" ORDER BY json_extract(data, ?) {'DESC' if descending else 'ASC'}, rowid"
            params.append(_json_path(order_by))
        else:
            sql += " ORDER BY rowid"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        try:
            with self._connect() as conn:
                rows = conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to query {collection!r}: {exc}") from exc
        return [self._row_to_doc(r) for r in rows]

    async def update(self, collection: str, doc_id: str, data: dict) -> None:
        """Merge `data` into an existing document."""
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT data FROM documents WHERE collection = ? AND id = ?",
                    (collection, doc_id),
                ).fetchone()
                if row is None:
                    raise DocumentNotFoundError(collection, doc_id)
                doc = json.loads(row["data"])
                doc.update({k: v for k, v in data.items() if k != "id"})
                conn.execute(
                    "UPDATE documents SET data = ? WHERE collection = ? AND id = ?",
                    (json.dumps(doc), collection, doc_id),
                )
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to update {collection}/{doc_id}: {exc}") from exc
        logger.debug("Document updated: %s/%s (%s)", collection, doc_id, ", ".join(data))

    async def delete(self, collection: str, doc_id: str) -> bool:
        """Permanently delete a document. Returns False if it didn't exist."""
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    "DELETE FROM documents WHERE collection = ? AND id = ?",
                    (collection, doc_id),
                )
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to delete {collection}/{doc_id}: {exc}") from exc
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Document deleted: %s/%s", collection, doc_id)
        return deleted
