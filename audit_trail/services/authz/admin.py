"""
Admin Authorizer — decides and persists whether a principal is an admin.

Two sources of truth are reconciled here:
  - the email allow-list policy (fast path, store-independent, re-evaluated
    on every call so bootstrap admins work before any profile exists)
  - the persisted UserProfile in the userProfiles collection

Design rules enforced here:
  - Fail closed: a missing profile or a store failure means "not admin"
  - Never downgrade on reconciliation: ensure_profile ORs the stored flag
    with the hint; only set_admin_status can clear it
  - This class is the sole writer of userProfiles
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Optional

from audit_trail.models.audit import PROFILE_COLLECTION
from audit_trail.schemas.profile import Principal, UserProfile
from audit_trail.services.errors import (
    AdminStatusUpdateError,
    ProfileNotFoundError,
    StoreError,
)
from audit_trail.services.store.base import (
    DocumentStore,
    Predicate,
    decode_timestamp,
)

logger = logging.getLogger(__name__)

# Any email containing this substring passes the fast path.
# NOTE: broader than the explicit list; kept pending product sign-off.
ADMIN_EMAIL_MARKER = "admin"


class AdminAuthorizer:
    def __init__(self, store: Optional[DocumentStore], admin_emails: Iterable[str] = ()):
        self.store = store
        self.admin_emails = frozenset(e.strip().lower() for e in admin_emails if e.strip())

    # ── Policy ────────────────────────────────────────────────────────────────

    def is_admin_by_email(self, email: Optional[str]) -> bool:
        email = (email or "").lower()
        if not email:
            return False
        return email in self.admin_emails or ADMIN_EMAIL_MARKER in email

    # ── Decisions ─────────────────────────────────────────────────────────────

    def is_admin(self, principal: Principal) -> bool:
        """
        Return True if the principal holds admin privilege.

        Policy match → True, and the stored profile is reconciled so later
        lookups agree. No policy match → the stored is_admin flag.
        No store configured → the policy result alone.
        """
        by_policy = self.is_admin_by_email(principal.email)

        if self.store is None:
            return by_policy

        if by_policy:
            # Best effort: ensure_profile never raises, and the grant
            # stands even if the reconciliation write was lost.
            self.ensure_profile(principal, default_admin=True)
            return True

        profile = self.get_profile(principal.uid)
        return bool(profile and profile.is_admin)

    # ── Profiles ──────────────────────────────────────────────────────────────

    def get_profile(self, uid: str) -> Optional[UserProfile]:
        """Load a stored profile. None if absent, disabled, or unreadable."""
        if self.store is None:
            return None
        try:
            data = self.store.get_document(PROFILE_COLLECTION, uid)
        except StoreError as exc:
            logger.warning("Failed to load user profile %s — %s", uid, exc)
            return None
        if data is None:
            return None
        try:
            return _to_profile(data)
        except (KeyError, ValueError) as exc:
            logger.warning("Unreadable user profile %s — %s", uid, exc)
            return None

    def ensure_profile(
        self, principal: Principal, default_admin: bool = False
    ) -> Optional[UserProfile]:
        """
        Create the profile if absent, otherwise refresh it.

        Idempotent: created_at is preserved, is_admin = stored OR hint,
        updated_at is refreshed. Concurrent first logins may both write; the
        documents differ only in updated_at so last-write-wins is correct.

        Does not raise — returns None when the store is disabled or fails.
        """
        if self.store is None:
            return None

        try:
            existing = self.store.get_document(PROFILE_COLLECTION, principal.uid)
            now = datetime.now(timezone.utc)
            stored_admin = bool(existing and existing.get("is_admin"))
            created_at = decode_timestamp(existing.get("created_at")) if existing else None

            profile = UserProfile(
                uid=principal.uid,
                email=principal.email or (existing or {}).get("email") or "",
                display_name=principal.display_name or (existing or {}).get("display_name"),
                is_admin=stored_admin or default_admin,
                created_at=created_at or now,
                updated_at=now,
            )
            self.store.put_document(
                PROFILE_COLLECTION, principal.uid, profile.model_dump()
            )
        except (StoreError, ValueError) as exc:
            logger.warning(
                "Failed to ensure user profile %s — %s", principal.uid, exc
            )
            return None

        if existing is None:
            logger.info(
                "Created user profile %s (is_admin=%s)", profile.uid, profile.is_admin
            )
        return profile

    def set_admin_status(self, uid: str, is_admin: bool) -> UserProfile:
        """
        Explicitly grant or revoke admin status.

        Raises ProfileNotFoundError if no profile exists (nothing is written).
        Raises AdminStatusUpdateError if the store is disabled or fails.
        Not governed by the email fast path.
        """
        if self.store is None:
            raise AdminStatusUpdateError("Document store is not configured")

        try:
            existing = self.store.get_document(PROFILE_COLLECTION, uid)
            if existing is None:
                raise ProfileNotFoundError(uid)

            profile = _to_profile(existing).model_copy(
                update={"is_admin": is_admin, "updated_at": datetime.now(timezone.utc)}
            )
            self.store.put_document(PROFILE_COLLECTION, uid, profile.model_dump())
        except StoreError as exc:
            logger.error("Failed to update admin status for %s — %s", uid, exc)
            raise AdminStatusUpdateError(str(exc)) from exc

        logger.info("Admin status for %s set to %s", uid, is_admin)
        return profile

    def list_admins(self) -> list[UserProfile]:
        """All profiles with is_admin set. Empty when the store is unavailable."""
        if self.store is None:
            return []
        try:
            docs = self.store.query_documents(
                PROFILE_COLLECTION, [Predicate("is_admin", "==", True)]
            )
        except StoreError as exc:
            logger.warning("Failed to list admin users — %s", exc)
            return []

        admins = []
        for doc in docs:
            try:
                admins.append(_to_profile(doc.data))
            except (KeyError, ValueError) as exc:
                logger.warning("Unreadable user profile %s — %s", doc.key, exc)
        return sorted(admins, key=lambda p: p.email)


def _to_profile(data: dict) -> UserProfile:
    now = datetime.now(timezone.utc)
    return UserProfile(
        uid=data["uid"],
        email=data.get("email") or "",
        display_name=data.get("display_name"),
        is_admin=bool(data.get("is_admin")),
        created_at=decode_timestamp(data.get("created_at")) or now,
        updated_at=decode_timestamp(data.get("updated_at")) or now,
    )
