"""Document store port — abstract interface for persistence.

Core modules depend on this protocol, never on a specific database.
Documents are plain JSON-compatible dicts keyed by camelCase field names;
every document returned by the store carries its ``id``.
"""

from __future__ import annotations

from typing import Any, Protocol

# (field, op, value); op is one of FILTER_OPS
Filter = tuple[str, str, Any]

FILTER_OPS = ("==", "!=", "<", "<=", ">", ">=")


class StoreError(Exception):
    """Raised when any document store operation fails."""


class DuplicateDocumentError(StoreError):
    """Raised when a write uses a document id that already exists."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"Document {doc_id!r} already exists in {collection!r}")
        self.collection = collection
        self.doc_id = doc_id


class DocumentNotFoundError(StoreError):
    """Raised when updating a document that does not exist."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"Document {doc_id!r} not found in {collection!r}")
        self.collection = collection
        self.doc_id = doc_id


class DocumentStore(Protocol):
    """Abstract document store used by core modules."""

    async def add(
        self, collection: str, data: dict, doc_id: str | None = None
    ) -> str: ...

    async def get(self, collection: str, doc_id: str) -> dict | None: ...

    async def query(
        self,
        collection: str,
        filters: list[Filter] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict]: ...

    async def update(self, collection: str, doc_id: str, data: dict) -> None: ...

    async def delete(self, collection: str, doc_id: str) -> bool: ...
