"""
SqlDocumentStore — DocumentStore over the `documents` table.

Predicates are compiled to JSON-path expressions on Document.body, so every
filter combination composes with AND in a single SELECT. On Postgres the
body column is JSONB; add expression indexes for hot filters
(see alembic/versions/0001_documents.py).

Every SQLAlchemyError is re-raised as StoreError so callers only ever deal
with the package's own exception types.
"""

import logging
import uuid
from typing import Any, Callable, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from audit_trail.models.document import Document
from audit_trail.services.errors import StoreError
from audit_trail.services.store.base import (
    DocumentStore,
    OrderBy,
    Predicate,
    StoredDocument,
    encode_value,
)

logger = logging.getLogger(__name__)


def _field(name: str, sample: Any):
    """Typed JSON accessor for body[name], chosen from the comparison value."""
    element = Document.body[name]
    if isinstance(sample, bool):
        return element.as_boolean()
    if isinstance(sample, int):
        return element.as_integer()
    if isinstance(sample, float):
        return element.as_float()
    return element.as_string()


def _compare(column, op: str, value: Any):
    if op == "==":
        return column == value
    if op == ">=":
        return column >= value
    if op == "<=":
        return column <= value
    if op == ">":
        return column > value
    return column < value


class SqlDocumentStore(DocumentStore):
    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def get_document(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        try:
            with self._session_factory() as db:
                row = db.get(Document, (collection, key))
                return dict(row.body) if row is not None else None
        except SQLAlchemyError as exc:
            raise StoreError(f"get {collection}/{key} failed: {exc}") from exc

    def put_document(self, collection: str, key: str, value: dict[str, Any]) -> None:
        try:
            with self._session_factory() as db:
                db.merge(Document(collection=collection, key=key, body=encode_value(value)))
                db.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"put {collection}/{key} failed: {exc}") from exc

    def append_document(self, collection: str, value: dict[str, Any]) -> str:
        key = uuid.uuid4().hex
        try:
            with self._session_factory() as db:
                db.add(Document(collection=collection, key=key, body=encode_value(value)))
                db.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"append to {collection} failed: {exc}") from exc
        logger.debug("Appended %s/%s", collection, key)
        return key

    def query_documents(
        self,
        collection: str,
        predicates: list[Predicate],
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
        after: Optional[str] = None,
    ) -> list[StoredDocument]:
        stmt = select(Document).where(Document.collection == collection)
        for predicate in predicates:
            value = encode_value(predicate.value)
            stmt = stmt.where(_compare(_field(predicate.field, value), predicate.op, value))

        try:
            with self._session_factory() as db:
                if order_by is not None:
                    # Order values are compared as text: timestamps are
                    # stored fixed-width, which keeps lexical == temporal.
                    column = Document.body[order_by.field].as_string()
                    if order_by.descending:
                        stmt = stmt.order_by(column.desc(), Document.key.desc())
                    else:
                        stmt = stmt.order_by(column.asc(), Document.key.asc())

                    if after is not None:
                        cursor = db.get(Document, (collection, after))
                        if cursor is None:
                            return []
                        stmt = stmt.where(
                            _after_clause(column, order_by, cursor.body.get(order_by.field), after)
                        )
                elif after is not None:
                    stmt = stmt.order_by(Document.key).where(Document.key > after)

                if limit is not None:
                    stmt = stmt.limit(limit)

                rows = db.scalars(stmt).all()
                return [StoredDocument(key=row.key, data=dict(row.body)) for row in rows]
        except SQLAlchemyError as exc:
            raise StoreError(f"query on {collection} failed: {exc}") from exc


def _after_clause(column, order_by: OrderBy, cursor_value: Any, cursor_key: str):
    """Keyset condition: rows strictly after (cursor_value, cursor_key)."""
    if order_by.descending:
        return or_(
            column < cursor_value,
            and_(column == cursor_value, Document.key < cursor_key),
        )
    return or_(
        column > cursor_value,
        and_(column == cursor_value, Document.key > cursor_key),
    )
