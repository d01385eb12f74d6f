"""
Document — the single table behind the SQL document store.

Every collection (userProfiles, audit_logs) lives in this table, keyed by
(collection, key). The body is stored as JSON so the audit and profile
shapes can evolve without a migration.

CRITICAL DESIGN RULE:
  Rows in the audit_logs collection are append-only. The store adapter only
  ever INSERTs them; put_document (upsert) is used for userProfiles only.
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from audit_trail.models.base import Base

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class Document(Base):
    __tablename__ = "documents"

    # ── Identity ─────────────────────────────────────────────────────────────
    collection: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="userProfiles | audit_logs",
    )
    key: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
        comment="Principal uid for profiles; store-generated uuid hex for audit events",
    )

    # ── Content ──────────────────────────────────────────────────────────────
    body: Mapped[dict] = mapped_column(JSONDocument, nullable=False, default=dict)

    # ── Bookkeeping (store-internal, never surfaced as an event timestamp) ───
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Document {self.collection}/{self.key}>"
