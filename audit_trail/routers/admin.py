"""
Admin API routes — compliance review and admin management.

Workflow:
  GET  /admin/audit-logs                 → filtered, newest-first page of audit events
  GET  /admin/audit-logs/{type}/{id}     → history of one business entity
  GET  /admin/users                      → profiles holding admin privilege
  PUT  /admin/users/{uid}/admin          → explicitly grant / revoke admin
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from audit_trail.dependencies import get_audit_query, get_audit_writer, get_authorizer
from audit_trail.models.audit import EntityType
from audit_trail.routers.auth import request_context, require_admin
from audit_trail.schemas.audit import AuditEvent, AuditLogFilter, AuditLogPage
from audit_trail.schemas.profile import AdminStatusUpdate, Principal, UserProfile
from audit_trail.services.audit.logger import AuditWriter
from audit_trail.services.audit.query import AuditQuery
from audit_trail.services.authz.admin import AdminAuthorizer
from audit_trail.services.errors import AdminStatusUpdateError, ProfileNotFoundError

router = APIRouter(prefix="/admin", tags=["admin"])


# ── Audit log ─────────────────────────────────────────────────────────────────


@router.get("/audit-logs", response_model=AuditLogPage)
def list_audit_logs(
    user_id: Optional[str] = None,
    action: Optional[str] = None,
    resource: Optional[str] = None,
    resource_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: Optional[int] = Query(default=None, ge=1),
    after: Optional[str] = None,
    audit_query: AuditQuery = Depends(get_audit_query),
    _admin: Principal = Depends(require_admin),
) -> AuditLogPage:
    """
    Newest first. Pass ?after=<next_cursor> from the previous page to continue.
    An unavailable store yields an empty page, not an error.
    """
    try:
        filters = AuditLogFilter(
            user_id=user_id,
            action=action,
            resource=resource,
            resource_id=resource_id,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return audit_query.query_page(filters, after=after)


@router.get("/audit-logs/{entity_type}/{entity_id}", response_model=list[AuditEvent])
def get_entity_history(
    entity_type: str,
    entity_id: str,
    limit: int = Query(default=20, ge=1),
    audit_query: AuditQuery = Depends(get_audit_query),
    _admin: Principal = Depends(require_admin),
) -> list[AuditEvent]:
    if entity_type not in EntityType.ALL:
        raise HTTPException(status_code=404, detail=f"Unknown entity type: {entity_type}")
    return audit_query.entity_history(entity_type, entity_id, limit=limit)


# ── Admin users ───────────────────────────────────────────────────────────────


@router.get("/users", response_model=list[UserProfile])
def list_admin_users(
    authorizer: AdminAuthorizer = Depends(get_authorizer),
    _admin: Principal = Depends(require_admin),
) -> list[UserProfile]:
    return authorizer.list_admins()


@router.put("/users/{uid}/admin", status_code=status.HTTP_204_NO_CONTENT)
def update_admin_status(
    uid: str,
    payload: AdminStatusUpdate,
    request: Request,
    authorizer: AdminAuthorizer = Depends(get_authorizer),
    audit: AuditWriter = Depends(get_audit_writer),
    admin: Principal = Depends(require_admin),
) -> Response:
    """Explicit override — not subject to the email allow-list."""
    try:
        authorizer.set_admin_status(uid, payload.is_admin)
    except ProfileNotFoundError:
        raise HTTPException(status_code=404, detail="User profile not found")
    except AdminStatusUpdateError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Profile store unavailable",
        )

    audit.record_admin_status_changed(
        admin.uid, uid, payload.is_admin, **request_context(request)
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
