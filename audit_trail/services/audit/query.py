"""
Audit Query — filtered, ordered, paginated reads over audit_logs.

Every field set on the AuditLogFilter becomes one store predicate and all
predicates are ANDed. Results are ALWAYS newest first; ordering is not a
per-call option. Read failures degrade to "no history available" (empty
results) instead of erroring the caller.
"""

import logging
from typing import Optional

from audit_trail.models.audit import AUDIT_COLLECTION
from audit_trail.schemas.audit import AuditEvent, AuditLogFilter, AuditLogPage
from audit_trail.services.store.base import (
    DocumentStore,
    OrderBy,
    Predicate,
    StoredDocument,
    decode_timestamp,
)

logger = logging.getLogger(__name__)

NEWEST_FIRST = OrderBy("timestamp", descending=True)

_EQUALITY_FIELDS = ("user_id", "action", "resource", "resource_id")


def build_predicates(filters: AuditLogFilter) -> list[Predicate]:
    predicates = [
        Predicate(name, "==", getattr(filters, name))
        for name in _EQUALITY_FIELDS
        if getattr(filters, name) is not None
    ]
    if filters.start_date is not None:
        predicates.append(Predicate("timestamp", ">=", filters.start_date))
    if filters.end_date is not None:
        predicates.append(Predicate("timestamp", "<=", filters.end_date))
    return predicates


class AuditQuery:
    def __init__(
        self,
        store: Optional[DocumentStore],
        default_limit: int = 50,
        max_limit: int = 500,
    ):
        self.store = store
        self.default_limit = default_limit
        self.max_limit = max_limit

    def query(self, filters: AuditLogFilter) -> list[AuditEvent]:
        """Most recent matching events, at most filters.limit (or the default cap)."""
        return self.query_page(filters).events

    def query_page(
        self, filters: AuditLogFilter, after: Optional[str] = None
    ) -> AuditLogPage:
        """
        One page of matching events, newest first.

        `after` is the next_cursor of the previous page. One extra document
        is fetched to decide has_more.
        """
        if self.store is None:
            logger.warning("Document store not configured — returning empty audit log")
            return AuditLogPage(events=[])

        page_size = self._page_size(filters.limit)
        try:
            docs = self.store.query_documents(
                AUDIT_COLLECTION,
                build_predicates(filters),
                order_by=NEWEST_FIRST,
                limit=page_size + 1,
                after=after,
            )
        except Exception as exc:
            logger.error("Failed to query audit logs — %s", exc)
            return AuditLogPage(events=[])

        events = []
        for doc in docs[:page_size]:
            try:
                events.append(_to_event(doc))
            except (TypeError, ValueError) as exc:
                logger.warning("Skipping unreadable audit event %s — %s", doc.key, exc)

        has_more = len(docs) > page_size
        return AuditLogPage(
            events=events,
            has_more=has_more,
            next_cursor=docs[page_size - 1].key if has_more else None,
        )

    # ── Convenience queries ───────────────────────────────────────────────────

    def entity_history(
        self, entity_type: str, entity_id: str, limit: int = 20
    ) -> list[AuditEvent]:
        """Most recent events for one business entity."""
        return self.query(
            AuditLogFilter(resource=entity_type, resource_id=str(entity_id), limit=limit)
        )

    def recent(self, limit: int = 50) -> list[AuditEvent]:
        return self.query(AuditLogFilter(limit=limit))

    def _page_size(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.default_limit
        return max(1, min(limit, self.max_limit))


def _to_event(doc: StoredDocument) -> AuditEvent:
    data = dict(doc.data)
    data["timestamp"] = decode_timestamp(data.get("timestamp"))
    data["id"] = doc.key
    return AuditEvent.model_validate(data)
