"""Principal and user profile schemas."""

from datetime import datetime
from typing import Optional

from pydantic import field_validator

from audit_trail.schemas.common import BaseSchema, as_utc


class Principal(BaseSchema):
    """An authenticated identity on whose behalf an operation is performed."""

    uid: str
    email: str = ""
    display_name: Optional[str] = None
    role: Optional[str] = None


class UserProfile(BaseSchema):
    """
    Persisted profile — one per principal, owned by AdminAuthorizer.

    is_admin is sticky: once granted by policy or explicit grant it survives
    reconciliation and only an explicit set_admin_status(uid, False) clears it.
    """

    uid: str
    email: str
    display_name: Optional[str] = None
    is_admin: bool = False
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def stamps_as_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class AdminStatusUpdate(BaseSchema):
    is_admin: bool


class CurrentUserResponse(BaseSchema):
    """Returned by GET /auth/me."""

    uid: str
    email: str
    display_name: Optional[str] = None
    is_admin: bool
