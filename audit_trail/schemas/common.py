"""Schema base class and UTC datetime helpers shared by every schema module."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are taken to be UTC; aware ones are converted to it."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)
