"""
Tests for the key-value stores, the record store and the audit trail.
"""

import json
from datetime import time, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from conftest import NOW, make_record, run
from iou_tracker.models.audit import AuditEventBuilder
from iou_tracker.models.debt import ReminderPolicy, UserSettings
from iou_tracker.services.storage import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueAuditStorage,
    RecordStore,
    StorageError,
)


class TestJsonFileKeyValueStore:
    """Tests for the on-disk store."""

    def test_missing_key_reads_none(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path)
        assert run(store.get_item("nothing")) is None
        assert run(store.get_json("nothing")) is None

    def test_set_and_get_json(self, tmp_path):
        """Test that values survive a new store instance."""
        run(JsonFileKeyValueStore(tmp_path / "data").set_json("k", {"a": [1, 2]}))
        assert run(JsonFileKeyValueStore(tmp_path / "data").get_json("k")) == {"a": [1, 2]}

    def test_keys_are_encoded(self, tmp_path):
        """Test that keys like '@iou_categories' map to safe file names."""
        store = JsonFileKeyValueStore(tmp_path)
        run(store.set_json("@iou_categories", []))
        assert (tmp_path / "%40iou_categories.json").exists()
        assert not list(tmp_path.glob("*.tmp"))

    def test_similar_keys_do_not_collide(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path)
        run(store.set_item("a b", "1"))
        run(store.set_item("a_b", "2"))
        run(store.set_item("a/b", "3"))

        assert run(store.get_item("a b")) == "1"
        assert run(store.get_item("a_b")) == "2"
        assert run(store.get_item("a/b")) == "3"
        assert len(list(tmp_path.glob("*.json"))) == 3

    def test_undecodable_file_raises_storage_error(self, tmp_path):
        (tmp_path / "iou_tracker_ious.json").write_bytes(b'[{"personName": "\xff\xfe"}]')

        with pytest.raises(StorageError):
            run(RecordStore(JsonFileKeyValueStore(tmp_path)).load_records())

    def test_remove_item(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path)
        run(store.set_item("k", "1"))
        run(store.remove_item("k"))
        run(store.remove_item("k"))
        assert run(store.get_item("k")) is None

    def test_empty_key_is_rejected(self, tmp_path):
        with pytest.raises(StorageError):
            run(JsonFileKeyValueStore(tmp_path).get_item(""))


class TestInMemoryKeyValueStore:
    """Tests for the dictionary-backed store."""

    def test_malformed_json_raises_storage_error(self):
        """Test that corrupt values surface as StorageError."""
        store = InMemoryKeyValueStore({"k": "{not json"})
        with pytest.raises(StorageError, match="not valid JSON"):
            run(store.get_json("k"))

    def test_keys(self):
        store = InMemoryKeyValueStore()
        run(store.set_json("b", 1))
        run(store.set_json("a", 2))
        assert store.keys() == ["a", "b"]


class TestRecordStore:
    """Tests for record persistence."""

    def test_empty_store_has_no_records(self, record_store):
        assert run(record_store.load_records()) == []

    def test_add_record_stamps_timestamps(self, record_store, clock):
        """Test that created_at and updated_at are set on add."""
        record = make_record()
        saved = run(record_store.add_record(record))
        assert saved.id == record.id
        assert saved.created_at == clock.now
        assert saved.updated_at == clock.now
        assert run(record_store.load_records()) == [saved]

    def test_duplicate_id_is_rejected(self, record_store):
        record = make_record()
        run(record_store.add_record(record))
        with pytest.raises(StorageError, match="already exists"):
            run(record_store.add_record(record))

    def test_update_record(self, record_store, clock):
        """Test field changes and the updated_at stamp."""
        saved = run(record_store.add_record(make_record()))
        clock.advance(hours=1)

        updated = run(record_store.update_record(saved.id, amount=Decimal("75"), note="rent"))

        assert updated.amount == Decimal("75")
        assert updated.note == "rent"
        assert updated.created_at == saved.created_at
        assert updated.updated_at == clock.now
        assert run(record_store.get_record(saved.id)) == updated

    def test_update_missing_record_returns_none(self, record_store):
        assert run(record_store.update_record("missing", note="x")) is None

    def test_update_rejects_immutable_and_unknown_fields(self, record_store):
        saved = run(record_store.add_record(make_record()))
        with pytest.raises(ValueError, match="immutable"):
            run(record_store.update_record(saved.id, id="other"))
        with pytest.raises(ValueError, match="Unknown"):
            run(record_store.update_record(saved.id, colour="red"))

    def test_invalid_update_leaves_store_unchanged(self, record_store):
        """Test that a rejected change is not half-applied."""
        saved = run(record_store.add_record(make_record()))
        with pytest.raises(ValueError):
            run(record_store.update_record(saved.id, amount=Decimal("-1")))
        assert run(record_store.get_record(saved.id)) == saved

    def test_settle_record(self, record_store, clock):
        """Test settlement and that settling twice keeps the first date."""
        saved = run(record_store.add_record(make_record()))

        settled = run(record_store.settle_record(saved.id))
        assert settled.settled is True
        assert settled.settled_date == NOW

        clock.advance(days=1)
        again = run(record_store.settle_record(saved.id))
        assert again.settled_date == NOW

    def test_settle_missing_record_returns_none(self, record_store):
        assert run(record_store.settle_record("missing")) is None

    def test_delete_record(self, record_store):
        saved = run(record_store.add_record(make_record()))
        assert run(record_store.delete_record(saved.id)) is True
        assert run(record_store.delete_record(saved.id)) is False
        assert run(record_store.load_records()) == []

    def test_malformed_record_list_raises(self, store, record_store):
        """Test that a corrupt record list is reported, not silently emptied."""
        run(store.set_json("iou_tracker_ious", {"not": "a list"}))
        with pytest.raises(StorageError):
            run(record_store.load_records())

        run(store.set_json("iou_tracker_ious", [{"type": "lent"}]))
        with pytest.raises(StorageError, match="malformed"):
            run(record_store.load_records())


class TestRecordStoreSettings:
    """Tests for settings persistence."""

    def test_defaults_when_nothing_stored(self, record_store):
        settings = run(record_store.load_settings())
        assert settings == UserSettings()

    def test_missing_keys_are_filled_from_defaults(self, store):
        """Test the shallow merge of stored settings over defaults."""
        defaults = UserSettings(currency="EUR")
        record_store = RecordStore(store, default_settings=defaults)
        run(store.set_json("iou_tracker_settings", {"pinEnabled": True}))

        settings = run(record_store.load_settings())

        assert settings.pin_enabled is True
        assert settings.currency == "EUR"
        assert settings.reminders == ReminderPolicy()

    def test_update_settings(self, record_store):
        updated = run(record_store.update_settings(
            currency="GHS",
            reminders=ReminderPolicy(notification_time_of_day=time(18, 0)),
        ))
        assert updated.currency == "GHS"

        loaded = run(record_store.load_settings())
        assert loaded.currency == "GHS"
        assert loaded.reminders.notification_time_of_day == time(18, 0)

    def test_settings_are_stored_with_app_keys(self, store, record_store):
        run(record_store.update_settings(date_format="dd/MM/yyyy"))
        raw = json.loads(run(store.get_item("iou_tracker_settings")))
        assert raw["dateFormat"] == "dd/MM/yyyy"
        assert raw["reminders"]["notificationTime"] == "09:00"

    def test_update_settings_rejects_unknown_fields(self, record_store):
        with pytest.raises(ValueError, match="Unknown settings fields"):
            run(record_store.update_settings(theme="dark"))


class TestKeyValueAuditStorage:
    """Tests for the persisted audit trail."""

    def test_append_and_query(self, audit_storage):
        event = AuditEventBuilder.record_deleted("abc")
        assert run(audit_storage.append_event(event)) is True

        by_entity = run(audit_storage.get_events_by_entity("record", "abc"))
        assert [e.event_id for e in by_entity] == [event.event_id]

    def test_oldest_events_are_dropped_beyond_cap(self, store):
        storage = KeyValueAuditStorage(store, max_events=10)
        for index in range(12):
            event = AuditEventBuilder.record_deleted(f"r{index}")
            event.timestamp = NOW + timedelta(seconds=index)
            run(storage.append_event(event))

        recent = run(storage.get_recent_events(limit=100))
        assert len(recent) == 10
        assert recent[0].entity_id == "r11"
        assert recent[-1].entity_id == "r2"

    def test_correlation_query(self, audit_storage):
        correlation_id = uuid4()
        run(audit_storage.append_event(AuditEventBuilder.record_deleted("a", correlation_id)))
        run(audit_storage.append_event(AuditEventBuilder.record_deleted("b")))

        events = run(audit_storage.get_events_by_correlation_id(correlation_id))
        assert [e.entity_id for e in events] == ["a"]

    def test_malformed_entries_are_skipped(self, store, audit_storage):
        run(store.set_json("iou_tracker_audit_log", [{"bogus": True}]))
        run(audit_storage.append_event(AuditEventBuilder.record_deleted("a")))
        assert len(run(audit_storage.get_recent_events())) == 1
