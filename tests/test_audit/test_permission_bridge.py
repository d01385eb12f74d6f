"""Permission audit bridge — exactly one event per authorization check."""

from audit_trail.models.audit import AuditAction
from audit_trail.schemas.audit import AuditLogFilter
from audit_trail.services.audit.logger import AuditWriter
from audit_trail.services.audit.permissions import audit_permission_check


class TestAuditPermissionCheck:
    def test_granted_check_records_grant_and_returns_true(self, writer, audit_query):
        assert audit_permission_check(
            writer, "u1", "approve", "requisition", "requisition:approve", True, "purchasing"
        ) is True

        [event] = audit_query.query(AuditLogFilter())
        assert event.action == AuditAction.PERMISSION_GRANTED
        assert event.resource == "requisition"
        assert event.details["permission"] == "requisition:approve"
        assert event.details["userRole"] == "purchasing"

    def test_denied_check_records_denial_and_returns_false(self, writer, audit_query):
        assert audit_permission_check(
            writer, "u2", "update", "material", "material:update", False, "viewer",
            ip_address="198.51.100.7",
        ) is False

        [event] = audit_query.query(AuditLogFilter())
        assert event.action == AuditAction.PERMISSION_DENIED
        assert event.user_id == "u2"
        assert event.details["requiredPermission"] == "material:update"
        assert event.ip_address == "198.51.100.7"

    def test_one_event_per_check(self, writer, audit_query):
        for granted in (True, False, True):
            audit_permission_check(writer, "u1", "read", "shipment", "shipment:read", granted)

        assert len(audit_query.query(AuditLogFilter(user_id="u1"))) == 3

    def test_decision_survives_audit_failure(self, failing_store):
        writer = AuditWriter(failing_store)

        assert audit_permission_check(writer, "u1", "read", "shipment", "shipment:read", True)
        assert not audit_permission_check(writer, "u1", "read", "shipment", "shipment:read", False)
