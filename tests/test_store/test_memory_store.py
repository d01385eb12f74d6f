"""InMemoryDocumentStore and value-encoding tests."""

from datetime import datetime, timedelta, timezone

import pytest

from audit_trail.services.store.base import (
    InMemoryDocumentStore,
    OrderBy,
    Predicate,
    decode_timestamp,
    encode_timestamp,
    get_document_store,
)

from conftest import at


class TestEncoding:
    def test_timestamps_are_fixed_width_utc(self):
        assert encode_timestamp(at(0)) == "2025-03-01T09:00:00.000000+00:00"

    def test_other_timezones_are_normalized(self):
        plus_two = timezone(timedelta(hours=2))
        assert encode_timestamp(datetime(2025, 3, 1, 11, 0, tzinfo=plus_two)) == (
            "2025-03-01T09:00:00.000000+00:00"
        )

    def test_naive_datetimes_are_taken_as_utc(self):
        assert encode_timestamp(datetime(2025, 3, 1, 9, 0)) == encode_timestamp(at(0))

    def test_decode_is_loss_free(self):
        value = at(3).replace(microsecond=987654)
        assert decode_timestamp(encode_timestamp(value)) == value

    def test_years_before_1000_are_zero_padded(self):
        ancient = datetime(999, 1, 1, tzinfo=timezone.utc)

        assert encode_timestamp(ancient) == "0999-01-01T00:00:00.000000+00:00"
        assert decode_timestamp(encode_timestamp(ancient)) == ancient

    def test_decode_absent(self):
        assert decode_timestamp(None) is None


class TestInMemoryStore:
    def test_documents_are_copied_in_and_out(self):
        store = InMemoryDocumentStore()
        body = {"details": {"a": 1}}
        key = store.append_document("audit_logs", body)

        body["details"]["a"] = 2
        fetched = store.get_document("audit_logs", key)
        fetched["details"]["a"] = 3

        assert store.get_document("audit_logs", key) == {"details": {"a": 1}}

    def test_range_predicate_ignores_missing_and_mismatched_fields(self):
        store = InMemoryDocumentStore()
        store.append_document("c", {"n": 5})
        store.append_document("c", {"n": "five"})
        store.append_document("c", {})

        docs = store.query_documents("c", [Predicate("n", ">=", 1)])

        assert [d.data for d in docs] == [{"n": 5}]

    def test_cursor_with_unknown_key_returns_nothing(self):
        store = InMemoryDocumentStore()
        store.append_document("c", {"timestamp": at(0)})

        assert store.query_documents("c", [], order_by=OrderBy("timestamp"), after="nope") == []

    def test_clear(self):
        store = InMemoryDocumentStore()
        store.put_document("c", "k", {"x": 1})
        store.clear()

        assert store.get_document("c", "k") is None

    def test_unsupported_operator_is_rejected(self):
        with pytest.raises(ValueError):
            Predicate("n", "!=", 1)


class TestFactory:
    def test_memory_backend_is_a_process_singleton(self, monkeypatch):
        from audit_trail.settings import settings

        monkeypatch.setattr(settings, "store_backend", "memory")
        assert get_document_store() is get_document_store()

    def test_disabled_backend_returns_none(self, monkeypatch):
        from audit_trail.settings import settings

        monkeypatch.setattr(settings, "store_backend", "disabled")
        assert get_document_store() is None

    def test_unknown_backend_raises(self, monkeypatch):
        from audit_trail.settings import settings

        monkeypatch.setattr(settings, "store_backend", "firestore")
        with pytest.raises(ValueError):
            get_document_store()
