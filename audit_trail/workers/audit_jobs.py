"""
RQ jobs for queued audit writes.

Run a worker with:
    rq worker audit-events --url $REDIS_URL
"""

import logging
from typing import Any, Optional

from audit_trail.models.audit import AUDIT_COLLECTION
from audit_trail.services.store.base import get_document_store

logger = logging.getLogger(__name__)


def append_audit_document(document: dict[str, Any]) -> Optional[str]:
    """
    Append a prepared audit document. Returns the store key, or None when the
    store is disabled.

    A StoreError propagates so RQ records the job as failed (kept for
    failure_ttl); the request that produced the event has long since
    returned and is unaffected.
    """
    store = get_document_store()
    if store is None:
        logger.warning(
            "Document store not configured — queued audit event %r skipped",
            document.get("action"),
        )
        return None
    key = store.append_document(AUDIT_COLLECTION, document)
    logger.info("Queued audit event %r stored as %s", document.get("action"), key)
    return key
