"""
Auth router — principal extraction and admin guard.

Tokens are issued by the identity provider; this service only verifies them.
Claims used: sub (uid), email, name, role.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from audit_trail.dependencies import get_audit_writer, get_authorizer
from audit_trail.models.audit import AuditAction
from audit_trail.schemas.audit import AuditEventCreate
from audit_trail.schemas.profile import CurrentUserResponse, Principal
from audit_trail.services.audit.logger import AuditWriter
from audit_trail.services.audit.permissions import audit_permission_check
from audit_trail.services.authz.admin import AdminAuthorizer
from audit_trail.settings import settings

router = APIRouter(prefix="/auth", tags=["auth"])

bearer_scheme = HTTPBearer(auto_error=False)

ADMIN_PERMISSION = "admin:access"


# ── Helpers ───────────────────────────────────────────────────────────────────


def create_access_token(data: dict, expires_minutes: int = 60) -> str:
    """Sign a token with the service secret. Used by scripts and tests."""
    payload = data.copy()
    payload["exp"] = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def request_context(request: Request) -> dict:
    """ip_address / user_agent for audit events raised during this request."""
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    credentials_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exc
    try:
        payload = jwt.decode(
            credentials.credentials, settings.secret_key, algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        raise credentials_exc

    uid = payload.get("sub")
    if not uid:
        raise credentials_exc
    return Principal(
        uid=uid,
        email=payload.get("email") or "",
        display_name=payload.get("name"),
        role=payload.get("role"),
    )


def require_admin(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    authorizer: AdminAuthorizer = Depends(get_authorizer),
    audit: AuditWriter = Depends(get_audit_writer),
) -> Principal:
    """Dependency — 403 unless the principal is an admin. Every check is audited."""
    granted = audit_permission_check(
        audit,
        principal.uid,
        action=request.method.lower(),
        resource=request.url.path,
        permission=ADMIN_PERMISSION,
        granted=authorizer.is_admin(principal),
        user_role=principal.role,
        **request_context(request),
    )
    if not granted:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required",
        )
    return principal


# ── Endpoints ─────────────────────────────────────────────────────────────────


@router.post("/session", response_model=CurrentUserResponse)
def start_session(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    authorizer: AdminAuthorizer = Depends(get_authorizer),
    audit: AuditWriter = Depends(get_audit_writer),
) -> CurrentUserResponse:
    """
    Called once by the frontend right after sign-in. Lazily creates the
    profile on first login, records the login and reports the admin decision.
    """
    is_new = authorizer.get_profile(principal.uid) is None
    profile = authorizer.ensure_profile(principal)
    if is_new and profile is not None:
        audit.record(_login_event(AuditAction.USER_REGISTERED, principal, request))
    audit.record(_login_event(AuditAction.USER_LOGIN, principal, request))

    return _current_user(principal, authorizer)


@router.get("/me", response_model=CurrentUserResponse)
def read_current_user(
    principal: Principal = Depends(get_current_principal),
    authorizer: AdminAuthorizer = Depends(get_authorizer),
) -> CurrentUserResponse:
    return _current_user(principal, authorizer)


def _current_user(principal: Principal, authorizer: AdminAuthorizer) -> CurrentUserResponse:
    return CurrentUserResponse(
        uid=principal.uid,
        email=principal.email,
        display_name=principal.display_name,
        is_admin=authorizer.is_admin(principal),
    )


def _login_event(action: str, principal: Principal, request: Request) -> AuditEventCreate:
    return AuditEventCreate(
        action=action,
        user_id=principal.uid,
        details={"email": principal.email},
        **request_context(request),
    )
