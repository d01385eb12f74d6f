"""Documents table backing the audit trail store

Revision ID: 0001
Revises:
Create Date: 2026-10-16

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from alembic import op

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── documents ─────────────────────────────────────────────────────────────
    op.create_table(
        "documents",
        sa.Column("collection", sa.String(64), primary_key=True),
        sa.Column("key", sa.String(128), primary_key=True),
        sa.Column("body", postgresql.JSONB, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    )

    # ── audit_logs query indexes ──────────────────────────────────────────────
    # Every filter combination is ANDed with a newest-first sort on timestamp,
    # so each index leads with the equality field and ends with timestamp.
    op.execute(
        "CREATE INDEX ix_documents_audit_timestamp ON documents "
        "((body->>'timestamp') DESC) WHERE collection = 'audit_logs'"
    )
    for column in ("user_id", "action", "resource", "resource_id"):
        op.execute(
            f"CREATE INDEX ix_documents_audit_{column} ON documents "
            f"((body->>'{column}'), (body->>'timestamp') DESC) "
            f"WHERE collection = 'audit_logs'"
        )

    # ── userProfiles admin listing ────────────────────────────────────────────
    op.execute(
        "CREATE INDEX ix_documents_profiles_is_admin ON documents "
        "(((body->>'is_admin')::boolean)) WHERE collection = 'userProfiles'"
    )


def downgrade() -> None:
    op.drop_index("ix_documents_profiles_is_admin", table_name="documents")
    for column in ("user_id", "action", "resource", "resource_id"):
        op.drop_index(f"ix_documents_audit_{column}", table_name="documents")
    op.drop_index("ix_documents_audit_timestamp", table_name="documents")
    op.drop_table("documents")
