"""
Permission audit bridge.

Business code reports every authorization check through
audit_permission_check() so that each check yields exactly one
PERMISSION_GRANTED or PERMISSION_DENIED event. It returns the decision
unchanged, which keeps call sites to a single line:

    if not audit_permission_check(writer, user.uid, "update", "material",
                                  "material:update", allowed, user.role):
        raise HTTPException(status_code=403, ...)

Inherits AuditWriter's never-raise semantics.
"""

from typing import Any, Optional

from audit_trail.services.audit.logger import AuditWriter


def audit_permission_check(
    writer: AuditWriter,
    user_id: str,
    action: str,
    resource: str,
    permission: str,
    granted: bool,
    user_role: Optional[str] = None,
    **context: Any,
) -> bool:
    if granted:
        writer.record_permission_granted(
            user_id, action, resource, permission, user_role, **context
        )
    else:
        writer.record_permission_denied(
            user_id, action, resource, permission, user_role, **context
        )
    return granted
