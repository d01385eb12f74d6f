"""
Exception hierarchy for the audit trail services.

Only AuthorizationError subclasses ever reach callers (from
AdminAuthorizer.set_admin_status). StoreError is raised by the store
adapters and caught at the boundary of every core operation.
"""


class AuditTrailError(Exception):
    """Base class for every error raised by this package."""


class StoreError(AuditTrailError):
    """The document store failed to read or write."""


class AuthorizationError(AuditTrailError):
    """An explicit authorization change could not be applied."""


class ProfileNotFoundError(AuthorizationError):
    def __init__(self, uid: str):
        super().__init__(f"User profile not found: {uid}")
        self.uid = uid


class AdminStatusUpdateError(AuthorizationError):
    """The store is disabled or failed while writing an explicit admin change."""
