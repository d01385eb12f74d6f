"""
Bootstrap script — grant admin privilege to the first operator.

Usage (local):
    python scripts/bootstrap.py

Prompts for the principal's uid (from the identity provider) and email.
Idempotent — safe to re-run; an existing profile is reused and keeps its
created_at.
"""

import sys
import os

# Ensure the project root is on the path when run directly
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from audit_trail.schemas.profile import Principal
from audit_trail.services.audit.logger import AuditWriter
from audit_trail.services.authz.admin import AdminAuthorizer
from audit_trail.services.errors import AuthorizationError
from audit_trail.services.store.base import get_document_store
from audit_trail.settings import settings

SYSTEM_ACTOR = "system:bootstrap"


def prompt(label: str, default: str = "") -> str:
    suffix = f" [{default}]" if default else ""
    value = input(f"{label}{suffix}: ").strip()
    return value or default


def main() -> None:
    print("\n=== Procurement Audit Trail — Bootstrap ===\n")

    store = get_document_store()
    if store is None:
        print("ERROR: STORE_BACKEND is 'disabled' — nothing to bootstrap.")
        sys.exit(1)

    # ── Admin principal ───────────────────────────────────────────────────────
    print("── Admin principal ──────────────────────")
    uid = prompt("Principal uid")
    if not uid:
        print("ERROR: uid is required.")
        sys.exit(1)
    email = prompt("Email")
    display_name = prompt("Display name") or None

    # ── Write profile ─────────────────────────────────────────────────────────
    authorizer = AdminAuthorizer(store, settings.admin_emails)
    profile = authorizer.ensure_profile(
        Principal(uid=uid, email=email, display_name=display_name)
    )
    if profile is None:
        print("ERROR: could not write the profile — check the store connection.")
        sys.exit(1)

    if profile.is_admin:
        print(f"✓ {uid} is already an admin — no change.")
        return

    try:
        authorizer.set_admin_status(uid, True)
    except AuthorizationError as exc:
        print(f"ERROR: {exc}")
        sys.exit(1)

    AuditWriter(store).record_admin_status_changed(SYSTEM_ACTOR, uid, True)
    print(f"✓ Granted admin to {uid} ({email or 'no email'})")


if __name__ == "__main__":
    main()
