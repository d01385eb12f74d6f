"""
Audit taxonomy — the closed sets of values stored in audit_logs.

Stored as plain strings (not DB enums) for readability and migration safety.
Two vocabularies live side by side in the same `action` field:

  EntityAction  lower-case verbs for business entity mutations
                (create, update, status_change, ...), paired with an
                EntityType in `resource`
  AuditAction   upper-case security / permission event names
                (PERMISSION_DENIED, SECURITY_FAILED_LOGIN, ...)
"""

AUDIT_COLLECTION = "audit_logs"
PROFILE_COLLECTION = "userProfiles"


class EntityType:
    MATERIAL = "material"
    REQUISITION = "requisition"
    PURCHASE_ORDER = "purchase_order"
    SHIPMENT = "shipment"
    INVENTORY_MOVEMENT = "inventory_movement"

    ALL = frozenset(
        {MATERIAL, REQUISITION, PURCHASE_ORDER, SHIPMENT, INVENTORY_MOVEMENT}
    )


class EntityAction:
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    STATUS_CHANGE = "status_change"
    APPROVE = "approve"
    REJECT = "reject"
    SUBMIT = "submit"
    CANCEL = "cancel"

    ALL = frozenset(
        {CREATE, UPDATE, DELETE, STATUS_CHANGE, APPROVE, REJECT, SUBMIT, CANCEL}
    )


class SecurityEventKind:
    SUSPICIOUS_ACTIVITY = "SUSPICIOUS_ACTIVITY"
    FAILED_LOGIN = "FAILED_LOGIN"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    PASSWORD_RESET = "PASSWORD_RESET"

    ALL = frozenset({SUSPICIOUS_ACTIVITY, FAILED_LOGIN, ACCOUNT_LOCKED, PASSWORD_RESET})


class AuditAction:
    # Authentication
    USER_LOGIN = "USER_LOGIN"
    USER_LOGOUT = "USER_LOGOUT"
    USER_REGISTERED = "USER_REGISTERED"
    USER_CREATED = "USER_CREATED"

    # Role management
    ROLE_CHANGED = "ROLE_CHANGED"
    ROLE_ASSIGNED = "ROLE_ASSIGNED"

    # Permissions
    PERMISSION_DENIED = "PERMISSION_DENIED"
    PERMISSION_GRANTED = "PERMISSION_GRANTED"

    # Material management
    MATERIAL_CREATED = "MATERIAL_CREATED"
    MATERIAL_UPDATED = "MATERIAL_UPDATED"
    MATERIAL_DELETED = "MATERIAL_DELETED"
    MATERIAL_REQUEST_CREATED = "MATERIAL_REQUEST_CREATED"
    MATERIAL_REQUEST_APPROVED = "MATERIAL_REQUEST_APPROVED"
    MATERIAL_REQUEST_REJECTED = "MATERIAL_REQUEST_REJECTED"

    # Inventory
    INVENTORY_UPDATED = "INVENTORY_UPDATED"
    INVENTORY_TRANSFER = "INVENTORY_TRANSFER"

    # Security
    SECURITY_SUSPICIOUS_ACTIVITY = "SECURITY_SUSPICIOUS_ACTIVITY"
    SECURITY_FAILED_LOGIN = "SECURITY_FAILED_LOGIN"
    SECURITY_ACCOUNT_LOCKED = "SECURITY_ACCOUNT_LOCKED"
    SECURITY_PASSWORD_RESET = "SECURITY_PASSWORD_RESET"

    @staticmethod
    def for_security_event(kind: str) -> str:
        """SUSPICIOUS_ACTIVITY -> SECURITY_SUSPICIOUS_ACTIVITY."""
        if kind not in SecurityEventKind.ALL:
            raise ValueError(f"Unknown security event kind: {kind!r}")
        return f"SECURITY_{kind}"


ALL_ACTIONS: frozenset[str] = EntityAction.ALL | frozenset(
    value
    for name, value in vars(AuditAction).items()
    if name.isupper() and isinstance(value, str)
)
