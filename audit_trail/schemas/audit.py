"""Audit event and audit log query schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import Field, field_validator, model_validator

from audit_trail.schemas.common import BaseSchema, as_utc, utcnow


class AuditEventCreate(BaseSchema):
    """
    Input to AuditWriter.record().

    timestamp defaults to the moment this object is built, i.e. when the
    occurrence is reported — never the moment the store accepts the write.
    """

    action: str = Field(..., min_length=1)
    user_id: str
    target_user_id: Optional[str] = None
    resource: Optional[str] = None
    resource_id: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @field_validator("timestamp")
    @classmethod
    def timestamp_as_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class AuditEvent(AuditEventCreate):
    """A stored audit event. `id` is the store-generated key."""

    id: Optional[str] = None


class AuditLogFilter(BaseSchema):
    """
    Ephemeral query specification. Every field that is set narrows the
    result (logical AND); unset fields impose no constraint.
    start_date and end_date are inclusive.
    """

    user_id: Optional[str] = None
    action: Optional[str] = None
    resource: Optional[str] = None
    resource_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: Optional[int] = Field(default=None, ge=1)

    @field_validator("start_date", "end_date")
    @classmethod
    def bounds_as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    @model_validator(mode="after")
    def check_range(self) -> "AuditLogFilter":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class AuditLogPage(BaseSchema):
    events: list[AuditEvent]
    has_more: bool = False
    next_cursor: Optional[str] = None
