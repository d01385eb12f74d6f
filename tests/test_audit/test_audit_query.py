"""
AuditQuery tests — AND filtering, fixed newest-first ordering, limits,
cursor paging and degraded reads.
"""

from datetime import datetime, timezone

import pytest

from audit_trail.models.audit import AUDIT_COLLECTION, AuditAction, EntityAction, EntityType
from audit_trail.schemas.audit import AuditEventCreate, AuditLogFilter
from audit_trail.services.audit.query import AuditQuery, build_predicates

from conftest import at


def _event(action, user_id="u1", minutes=0, **fields) -> AuditEventCreate:
    return AuditEventCreate(action=action, user_id=user_id, timestamp=at(minutes), **fields)


@pytest.fixture
def u1_history(writer):
    """5 events for u1: MATERIAL_UPDATED at T1<T2<T3 plus two other actions."""
    events = [
        _event(AuditAction.MATERIAL_UPDATED, minutes=10, resource_id="m-1"),
        _event(AuditAction.USER_LOGIN, minutes=15),
        _event(AuditAction.MATERIAL_UPDATED, minutes=20, resource_id="m-2"),
        _event(AuditAction.MATERIAL_CREATED, minutes=25),
        _event(AuditAction.MATERIAL_UPDATED, minutes=30, resource_id="m-3"),
    ]
    for event in events:
        writer.record(event)
    return events


class TestFiltering:
    def test_user_and_action_with_limit_returns_most_recent(self, audit_query, u1_history):
        results = audit_query.query(
            AuditLogFilter(user_id="u1", action="MATERIAL_UPDATED", limit=2)
        )

        assert [e.timestamp for e in results] == [at(30), at(20)]
        assert [e.resource_id for e in results] == ["m-3", "m-2"]

    def test_filters_are_anded(self, writer, audit_query):
        writer.record(_event(AuditAction.PERMISSION_DENIED, "u1", 1, resource="material"))
        writer.record(_event(AuditAction.PERMISSION_DENIED, "u2", 2, resource="material"))
        writer.record(_event(AuditAction.PERMISSION_DENIED, "u1", 3, resource="shipment"))

        results = audit_query.query(AuditLogFilter(user_id="u1", resource="material"))

        assert len(results) == 1
        assert results[0].timestamp == at(1)

    def test_no_filters_returns_everything_newest_first(self, audit_query, u1_history):
        results = audit_query.query(AuditLogFilter())

        assert [e.timestamp for e in results] == [at(30), at(25), at(20), at(15), at(10)]

    def test_no_match_returns_empty(self, audit_query, u1_history):
        assert audit_query.query(AuditLogFilter(user_id="someone-else")) == []


class TestDateRange:
    def test_bounds_are_inclusive(self, audit_query, u1_history):
        results = audit_query.query(AuditLogFilter(start_date=at(15), end_date=at(25)))

        assert [e.timestamp for e in results] == [at(25), at(20), at(15)]

    def test_start_only(self, audit_query, u1_history):
        results = audit_query.query(AuditLogFilter(start_date=at(21)))

        assert [e.timestamp for e in results] == [at(30), at(25)]

    def test_end_only(self, audit_query, u1_history):
        results = audit_query.query(AuditLogFilter(end_date=at(10)))

        assert [e.timestamp for e in results] == [at(10)]

    def test_inverted_range_is_rejected(self):
        with pytest.raises(ValueError):
            AuditLogFilter(start_date=at(10), end_date=at(5))


class TestLimits:
    def test_default_limit_caps_unbounded_queries(self, store, u1_history):
        capped = AuditQuery(store, default_limit=3)

        assert len(capped.query(AuditLogFilter())) == 3

    def test_limit_is_clamped_to_max(self, store, u1_history):
        capped = AuditQuery(store, default_limit=2, max_limit=4)

        assert len(capped.query(AuditLogFilter(limit=100))) == 4


class TestPaging:
    def test_pages_walk_the_full_history(self, audit_query, u1_history):
        filters = AuditLogFilter(user_id="u1", limit=2)

        first = audit_query.query_page(filters)
        second = audit_query.query_page(filters, after=first.next_cursor)
        third = audit_query.query_page(filters, after=second.next_cursor)

        assert first.has_more and second.has_more
        assert not third.has_more and third.next_cursor is None
        timestamps = [e.timestamp for page in (first, second, third) for e in page.events]
        assert timestamps == [at(30), at(25), at(20), at(15), at(10)]

    def test_exact_fit_has_no_more(self, audit_query, u1_history):
        page = audit_query.query_page(AuditLogFilter(action="MATERIAL_UPDATED", limit=3))

        assert len(page.events) == 3
        assert page.has_more is False


class TestRoundTrip:
    def test_written_event_reads_back_equal(self, writer, audit_query):
        event = AuditEventCreate(
            action=AuditAction.INVENTORY_TRANSFER,
            user_id="u5",
            target_user_id="u6",
            resource=EntityType.INVENTORY_MOVEMENT,
            resource_id="mv-77",
            details={"from": "WH-1", "to": "WH-2", "qty": 40, "lines": [{"sku": "A", "n": 2}]},
            timestamp=at(5).replace(microsecond=123456),
            ip_address="192.0.2.10",
            user_agent="pytest",
        )
        writer.record(event)

        [stored] = audit_query.query(AuditLogFilter(resource_id="mv-77"))

        assert stored.id
        assert stored.model_dump(exclude={"id"}) == event.model_dump()

    def test_years_before_1000_read_back(self, writer, audit_query):
        ancient = datetime(999, 1, 1, tzinfo=timezone.utc)
        modern = datetime(2025, 1, 1, tzinfo=timezone.utc)
        for moment in (ancient, modern):
            writer.record(
                AuditEventCreate(action=AuditAction.USER_LOGIN, user_id="u1", timestamp=moment)
            )

        assert [e.timestamp for e in audit_query.query(AuditLogFilter())] == [modern, ancient]


class TestConvenienceQueries:
    def test_entity_history(self, writer, audit_query):
        writer.record_entity_created("u1", EntityType.MATERIAL, "m-1", {"name": "Pipe"})
        writer.record_entity_updated("u1", EntityType.MATERIAL, "m-1", {"name": "Pipe"}, {"name": "PVC Pipe"})
        writer.record_entity_created("u1", EntityType.MATERIAL, "m-2", {"name": "Valve"})

        history = audit_query.entity_history(EntityType.MATERIAL, "m-1")

        assert [e.action for e in history] == [EntityAction.UPDATE, EntityAction.CREATE]

    def test_recent(self, audit_query, u1_history):
        assert [e.timestamp for e in audit_query.recent(limit=1)] == [at(30)]


class TestDegradedReads:
    def test_disabled_store_returns_empty(self):
        assert AuditQuery(None).query(AuditLogFilter(user_id="u1")) == []

    def test_failing_store_returns_empty(self, failing_store):
        page = AuditQuery(failing_store).query_page(AuditLogFilter())

        assert page.events == []
        assert page.has_more is False

    def test_unreadable_event_is_skipped_not_fatal(self, store, writer, audit_query, caplog):
        writer.record(_event(AuditAction.USER_LOGIN, minutes=1))
        bad_key = store.append_document(
            AUDIT_COLLECTION, {"action": "USER_LOGIN", "user_id": "u1", "timestamp": "yesterday"}
        )

        events = audit_query.query(AuditLogFilter())

        assert [e.timestamp for e in events] == [at(1)]
        assert f"Skipping unreadable audit event {bad_key}" in caplog.text

    def test_cursor_moves_past_unreadable_event(self, store, writer, audit_query):
        writer.record(_event(AuditAction.USER_LOGIN, minutes=1))
        writer.record(_event(AuditAction.USER_LOGIN, minutes=2))
        store.append_document(
            AUDIT_COLLECTION, {"action": "USER_LOGIN", "user_id": "u1", "timestamp": "yesterday"}
        )

        first = audit_query.query_page(AuditLogFilter(limit=1))
        second = audit_query.query_page(AuditLogFilter(limit=2), after=first.next_cursor)

        assert first.events == [] and first.has_more
        assert [e.timestamp for e in second.events] == [at(2), at(1)]


def test_build_predicates_maps_every_field():
    predicates = build_predicates(
        AuditLogFilter(
            user_id="u1",
            action="create",
            resource="material",
            resource_id="m-1",
            start_date=at(0),
            end_date=at(5),
        )
    )

    assert [(p.field, p.op) for p in predicates] == [
        ("user_id", "=="),
        ("action", "=="),
        ("resource", "=="),
        ("resource_id", "=="),
        ("timestamp", ">="),
        ("timestamp", "<="),
    ]
