"""
Audit Writer — the only way to append to the audit_logs collection.

Design rules enforced here:
  - timestamp is set when the occurrence is reported, never at write time
  - details are always canonicalized to plain JSON values (no objects)
  - All appends go through AuditWriter.record() — nothing else writes audit_logs
  - This module never raises — audit failures are logged but do not block the main flow

Writes are fire-and-forget: no retry, no backoff. When a dispatch callable
is configured (AUDIT_DISPATCH=queue) the document is handed to the RQ worker
and record() returns without waiting for the store.
"""

import enum
import json
import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Optional

from audit_trail.models.audit import (
    AUDIT_COLLECTION,
    AuditAction,
    EntityAction,
)
from audit_trail.schemas.audit import AuditEventCreate
from audit_trail.services.store.base import DocumentStore, encode_value

logger = logging.getLogger(__name__)

AuditDispatch = Callable[[dict[str, Any]], Any]


class AuditWriter:
    def __init__(
        self,
        store: Optional[DocumentStore],
        dispatch: Optional[AuditDispatch] = None,
    ):
        self.store = store
        self.dispatch = dispatch

    def record(self, event: AuditEventCreate) -> None:
        """
        Append an immutable audit event.

        Does not raise — a disabled store skips the write, any failure is
        caught and logged as a warning.
        """
        try:
            document = to_document(event)
            if self.dispatch is not None:
                self.dispatch(document)
                return
            if self.store is None:
                logger.warning(
                    "Document store not configured — audit event %r skipped",
                    event.action,
                )
                return
            self.store.append_document(AUDIT_COLLECTION, document)
        except Exception as exc:
            logger.warning(
                "Failed to write audit event %r for user %s — %s",
                event.action,
                event.user_id,
                exc,
            )

    # ── Permission / security events ──────────────────────────────────────────

    def record_permission_denied(
        self,
        user_id: str,
        action: str,
        resource: str,
        required_permission: str,
        user_role: Optional[str] = None,
        **context: Any,
    ) -> None:
        self._record_safely(
            context,
            action=AuditAction.PERMISSION_DENIED,
            user_id=user_id,
            resource=resource,
            details={
                "deniedAction": action,
                "requiredPermission": required_permission,
                "userRole": user_role,
                "reason": "Insufficient permissions",
            },
        )

    def record_permission_granted(
        self,
        user_id: str,
        action: str,
        resource: str,
        permission: str,
        user_role: Optional[str] = None,
        **context: Any,
    ) -> None:
        self._record_safely(
            context,
            action=AuditAction.PERMISSION_GRANTED,
            user_id=user_id,
            resource=resource,
            details={
                "grantedAction": action,
                "permission": permission,
                "userRole": user_role,
            },
        )

    def record_security_event(
        self, kind: str, user_id: str, details: dict[str, Any], **context: Any
    ) -> None:
        """kind is a SecurityEventKind; stored as SECURITY_<kind>."""
        try:
            action = AuditAction.for_security_event(kind)
        except ValueError as exc:
            logger.warning("Audit security event dropped — %s", exc)
            return
        self._record_safely(context, action=action, user_id=user_id, details=details)

    def record_admin_status_changed(
        self, actor_id: str, target_user_id: str, is_admin: bool, **context: Any
    ) -> None:
        self._record_safely(
            context,
            action=AuditAction.ROLE_CHANGED,
            user_id=actor_id,
            target_user_id=target_user_id,
            resource="userProfile",
            resource_id=target_user_id,
            details={"isAdmin": is_admin},
        )

    # ── Business entity mutations ─────────────────────────────────────────────

    def record_entity_created(
        self,
        user_id: str,
        entity_type: str,
        entity_id: Any,
        new_state: dict[str, Any],
        reason: Optional[str] = None,
    ) -> None:
        self._record_safely(
            action=EntityAction.CREATE,
            user_id=user_id,
            resource=entity_type,
            resource_id=str(entity_id),
            details={
                "newState": new_state,
                "reason": reason or f"{_label(entity_type)} created by user",
            },
        )

    def record_entity_updated(
        self,
        user_id: str,
        entity_type: str,
        entity_id: Any,
        previous_state: dict[str, Any],
        new_state: dict[str, Any],
        changed_fields: Optional[list[str]] = None,
        reason: Optional[str] = None,
    ) -> None:
        if changed_fields is None:
            changed_fields = changed_keys(previous_state, new_state)
        self._record_safely(
            action=EntityAction.UPDATE,
            user_id=user_id,
            resource=entity_type,
            resource_id=str(entity_id),
            details={
                "previousState": previous_state,
                "newState": new_state,
                "changedFields": changed_fields,
                "reason": reason or f"{_label(entity_type)} updated by user",
            },
        )

    def record_entity_deleted(
        self,
        user_id: str,
        entity_type: str,
        entity_id: Any,
        previous_state: dict[str, Any],
        reason: Optional[str] = None,
    ) -> None:
        self._record_safely(
            action=EntityAction.DELETE,
            user_id=user_id,
            resource=entity_type,
            resource_id=str(entity_id),
            details={
                "previousState": previous_state,
                "reason": reason or f"{_label(entity_type)} deleted by user",
            },
        )

    def record_status_change(
        self,
        user_id: str,
        entity_type: str,
        entity_id: Any,
        from_status: str,
        to_status: str,
        reason: Optional[str] = None,
    ) -> None:
        self._record_safely(
            action=EntityAction.STATUS_CHANGE,
            user_id=user_id,
            resource=entity_type,
            resource_id=str(entity_id),
            details={
                "fromStatus": from_status,
                "toStatus": to_status,
                "reason": reason or "Status changed by user",
            },
        )

    def _record_safely(self, context: Optional[dict[str, Any]] = None, **fields: Any) -> None:
        # Building the event can fail on bad caller input (e.g. empty action);
        # that must not escape either. Fixed fields win over caller context.
        try:
            event = AuditEventCreate(**{**(context or {}), **fields})
        except Exception as exc:
            logger.warning(
                "Invalid audit event %r dropped — %s", fields.get("action"), exc
            )
            return
        self.record(event)


def to_document(event: AuditEventCreate) -> dict[str, Any]:
    """Serialize an event into the stored document shape."""
    document = event.model_dump()
    document["details"] = _safe_details(event.details)
    return encode_value(document)


def changed_keys(previous: dict[str, Any], new: dict[str, Any]) -> list[str]:
    """Top-level keys whose values differ between two snapshots."""
    keys = set(previous) | set(new)
    return sorted(k for k in keys if previous.get(k) != new.get(k))


def _label(entity_type: str) -> str:
    return entity_type.replace("_", " ").capitalize()


def _safe_details(details: dict) -> dict:
    """
    Ensure details are JSON-serializable.
    Converts common non-serializable types (UUID, datetime, Decimal, Enum, set)
    to plain values.
    """

    def default(obj: Any) -> Any:
        if isinstance(obj, uuid.UUID):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, enum.Enum):
            return obj.value
        if isinstance(obj, (set, frozenset)):
            return sorted(obj, key=str)
        raise TypeError(f"Object of type {type(obj)} is not JSON serializable")

    # Round-trip through JSON to strip any non-serializable types
    return json.loads(json.dumps(details, default=default))
