"""
DocumentStore abstract interface — the only path by which the audit trail
touches persistence.

Swap the in-memory store for SQL by changing STORE_BACKEND env var — no code
changes. STORE_BACKEND=disabled runs the subsystem in soft-disabled mode:
get_document_store() returns None and every caller degrades (reads empty,
writes skipped, admin checks policy-only).

Datetime values are stored as fixed-width ISO-8601 UTC text so that range
predicates and ordering compare correctly as plain strings in every backend.
"""

import abc
import copy
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

OPERATORS = ("==", ">=", "<=", ">", "<")


@dataclass(frozen=True)
class Predicate:
    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in OPERATORS:
            raise ValueError(f"Unsupported operator: {self.op!r}")


@dataclass(frozen=True)
class OrderBy:
    field: str
    descending: bool = True


@dataclass
class StoredDocument:
    key: str
    data: dict[str, Any]


# ── Value encoding ────────────────────────────────────────────────────────────


def encode_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    # isoformat always pads the year to four digits
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def decode_timestamp(value: Any) -> Optional[datetime]:
    """Convert a stored timestamp back to an aware datetime (None if absent)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.fromisoformat(value)


def encode_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return encode_timestamp(value)
    if isinstance(value, dict):
        return {k: encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    return value


# ── Interface ─────────────────────────────────────────────────────────────────


class DocumentStore(abc.ABC):
    """
    Narrow document-store interface.

    Implementations raise StoreError on I/O failure; they never return
    partial results.
    """

    @abc.abstractmethod
    def get_document(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        """Return the document body, or None if absent."""

    @abc.abstractmethod
    def put_document(self, collection: str, key: str, value: dict[str, Any]) -> None:
        """Create or fully replace the document at key (last write wins)."""

    @abc.abstractmethod
    def append_document(self, collection: str, value: dict[str, Any]) -> str:
        """Insert a new document under a store-generated key and return the key."""

    @abc.abstractmethod
    def query_documents(
        self,
        collection: str,
        predicates: list[Predicate],
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
        after: Optional[str] = None,
    ) -> list[StoredDocument]:
        """
        Return documents matching ALL predicates.

        order_by sorts on a single field, ties broken by key in the same
        direction. `after` is the key of the last document of the previous
        page; results resume strictly after it in that order.
        """


# ── In-memory implementation ──────────────────────────────────────────────────


def _matches(data: dict[str, Any], predicate: Predicate) -> bool:
    actual = data.get(predicate.field)
    expected = encode_value(predicate.value)
    if predicate.op == "==":
        return actual == expected
    if actual is None:
        return False
    try:
        if predicate.op == ">=":
            return actual >= expected
        if predicate.op == "<=":
            return actual <= expected
        if predicate.op == ">":
            return actual > expected
        return actual < expected
    except TypeError:
        # Mismatched types never satisfy a range predicate
        return False


def _sort_key(doc: StoredDocument, field: str) -> tuple:
    value = doc.data.get(field)
    return (value is not None, value if value is not None else "", doc.key)


class InMemoryDocumentStore(DocumentStore):
    """
    Process-local store for tests and single-process development.
    Documents are deep-copied on the way in and out so stored bodies can
    only change through put_document.
    """

    def __init__(self):
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def get_document(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        with self._lock:
            doc = self._collections.get(collection, {}).get(key)
            return copy.deepcopy(doc) if doc is not None else None

    def put_document(self, collection: str, key: str, value: dict[str, Any]) -> None:
        body = encode_value(copy.deepcopy(value))
        with self._lock:
            self._collections.setdefault(collection, {})[key] = body

    def append_document(self, collection: str, value: dict[str, Any]) -> str:
        key = uuid.uuid4().hex
        body = encode_value(copy.deepcopy(value))
        with self._lock:
            self._collections.setdefault(collection, {})[key] = body
        return key

    def query_documents(
        self,
        collection: str,
        predicates: list[Predicate],
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
        after: Optional[str] = None,
    ) -> list[StoredDocument]:
        with self._lock:
            docs = [
                StoredDocument(key=key, data=copy.deepcopy(data))
                for key, data in self._collections.get(collection, {}).items()
                if all(_matches(data, p) for p in predicates)
            ]

        if order_by is not None:
            docs.sort(
                key=lambda d: _sort_key(d, order_by.field),
                reverse=order_by.descending,
            )
        if after is not None:
            keys = [d.key for d in docs]
            docs = docs[keys.index(after) + 1 :] if after in keys else []
        if limit is not None:
            docs = docs[:limit]
        return docs

    def clear(self) -> None:
        with self._lock:
            self._collections.clear()


# ── Factory ───────────────────────────────────────────────────────────────────

_memory_store: InMemoryDocumentStore | None = None


def get_document_store() -> Optional[DocumentStore]:
    """
    Factory — returns the configured store, or None when the store is
    disabled (soft-disabled mode).
    """
    from audit_trail.settings import settings

    global _memory_store
    if settings.store_backend == "disabled":
        return None
    if settings.store_backend == "memory":
        if _memory_store is None:
            _memory_store = InMemoryDocumentStore()
        return _memory_store
    if settings.store_backend == "sql":
        # Import here so the SQL engine is only built when actually selected
        from audit_trail.database import SessionLocal
        from audit_trail.services.store.sql import SqlDocumentStore

        return SqlDocumentStore(SessionLocal)
    raise ValueError(f"Unknown store backend: {settings.store_backend!r}")
