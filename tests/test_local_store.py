"""Tests for the local record store."""

import json
from datetime import datetime, timezone

import pytest
from structlog.testing import capture_logs

from adapters.kv_store import JsonFileKeyValueStore
from adapters.local_store import DOMAINS_KEY, LocalDomainStore
from core.domain.models import DomainInput, TaskPatch
from core.errors import StorageUnavailable


class BrokenKV:
    """Key-value store whose reads and writes always fail."""

    def get(self, key):
        raise StorageUnavailable("disk gone", context={"key": key})

    def set(self, key, value):
        raise StorageUnavailable("disk gone", context={"key": key})

    def remove(self, key):
        raise StorageUnavailable("disk gone", context={"key": key})


def test_empty_store_lists_nothing(store):
    assert store.list() == []


def test_add_is_idempotent_for_same_url(store):
    first = store.add(DomainInput(name="a", url="https://a.com"))
    second = store.add(DomainInput(name="a", url="https://a.com"))

    assert second.id == first.id
    assert len(store.list()) == 1


def test_add_detects_duplicate_name_with_other_url(store):
    first = store.add(DomainInput(name="Shop", url="https://shop.com"))
    again = store.add(DomainInput(name="shop", url="https://shop.net"))

    assert again.id == first.id
    assert [d.url for d in store.list()] == ["https://shop.com"]


def test_add_persists_to_disk(kv, store):
    domain = store.add(DomainInput(name="a.com", url="https://a.com", dr=40))

    raw = json.loads(kv.get(DOMAINS_KEY))
    assert raw[0]["id"] == domain.id
    assert raw[0]["dr"] == 40
    assert len(raw[0]["tasks"]) == 8
    assert LocalDomainStore(kv).list()[0].id == domain.id


def test_add_many_collapses_scheme_and_slash_variants(store):
    result = store.add_many(["a.com", "https://a.com/"])

    assert len(result) == 1
    stored = store.list()
    assert len(stored) == 1
    assert stored[0].name == "a.com"
    assert stored[0].url == "https://a.com"


def test_add_many_returns_existing_records_in_input_order(store):
    existing = store.add(DomainInput(name="b.com", url="https://b.com"))

    result = store.add_many(["c.com", "B.com", "", "https://c.com/"])

    assert [d.name for d in result] == ["c.com", "b.com"]
    assert result[1].id == existing.id
    assert len(store.list()) == 2


def test_add_many_accepts_domain_inputs(store):
    result = store.add_many([DomainInput(name="Docs", url="https://docs.example.com", da=30)])

    assert result[0].name == "Docs"
    assert result[0].da == 30


def test_update_unknown_domain_returns_none(store):
    store.add(DomainInput(name="a", url="https://a.com"))
    before = store.export_json()

    ghost = store.list()[0].model_copy(update={"id": "missing"})
    assert store.update(ghost) is None
    assert store.export_json() == before


def test_update_keeps_created_at_and_bumps_updated_at(store):
    domain = store.add(DomainInput(name="a", url="https://a.com"))
    past = datetime(2020, 1, 1, tzinfo=timezone.utc)

    edited = domain.model_copy(update={"name": "renamed", "created_at": past, "updated_at": past})
    updated = store.update(edited)

    assert updated is not None
    assert updated.name == "renamed"
    assert updated.created_at == domain.created_at
    assert updated.updated_at > past
    assert store.get(domain.id).name == "renamed"


def test_upsert_appends_unknown_domain(store):
    domain = store.add(DomainInput(name="a", url="https://a.com"))
    other = domain.model_copy(update={"id": "zzz", "name": "b", "url": "https://b.com"})

    store.upsert(other)

    assert [d.id for d in store.list()] == [domain.id, "zzz"]


def test_update_task_merges_patch(store):
    domain = store.add(DomainInput(name="a", url="https://a.com"))
    task = domain.tasks[2]

    updated = store.update_task(domain.id, task.id, TaskPatch(completed=True, notes="verified"))

    assert updated is not None
    changed = updated.find_task(task.id)
    assert changed.completed is True
    assert changed.notes == "verified"
    assert changed.name == task.name
    assert updated.progress == 13
    assert updated.updated_at >= domain.updated_at
    assert store.get(domain.id).find_task(task.id).completed is True


def test_update_task_accepts_plain_dict(store):
    domain = store.add(DomainInput(name="a", url="https://a.com"))

    updated = store.update_task(domain.id, domain.tasks[0].id, {"completed": True})

    assert updated.tasks[0].completed is True


@pytest.mark.parametrize("which", ["domain", "task"])
def test_update_task_with_unknown_ids_returns_none(store, which):
    domain = store.add(DomainInput(name="a", url="https://a.com"))
    before = store.export_json()

    domain_id = "nope" if which == "domain" else domain.id
    task_id = domain.tasks[0].id if which == "domain" else "nope"

    assert store.update_task(domain_id, task_id, TaskPatch(completed=True)) is None
    assert store.export_json() == before


def test_delete_removes_and_ignores_unknown_ids(store):
    a = store.add(DomainInput(name="a", url="https://a.com"))
    b = store.add(DomainInput(name="b", url="https://b.com"))

    store.delete("unknown")
    assert len(store.list()) == 2

    store.delete(a.id)
    assert [d.id for d in store.list()] == [b.id]


def test_export_import_round_trip_empty(tmp_path, store):
    payload = store.export_json()
    target = LocalDomainStore(JsonFileKeyValueStore(tmp_path / "other"))

    assert target.import_json(payload) is True
    assert target.list() == []


def test_export_import_round_trip_preserves_order(tmp_path, store):
    store.add_many(["c.com", "a.com", "b.com"])
    first = store.list()[0]
    store.update_task(first.id, first.tasks[0].id, TaskPatch(completed=True, notes="done"))
    original = store.list()

    target = LocalDomainStore(JsonFileKeyValueStore(tmp_path / "other"))
    assert target.import_json(store.export_json()) is True

    assert target.list() == original
    assert [d.name for d in target.list()] == ["c.com", "a.com", "b.com"]


@pytest.mark.parametrize(
    "payload",
    [
        '{"id": "x", "name": "a", "url": "https://a.com"}',
        "not json at all",
        '[{"id": "x"}]',
        '[{"id": "x", "name": "a", "url": "https://a.com"}, {"id": "x", "name": "b", "url": "https://b.com"}]',
    ],
)
def test_import_rejects_invalid_payload_and_keeps_data(store, payload):
    store.add(DomainInput(name="keep", url="https://keep.com"))
    before = store.export_json()

    with capture_logs() as logs:
        assert store.import_json(payload) is False

    assert store.export_json() == before
    assert any(entry["event"] == "import_rejected" for entry in logs)


def test_import_accepts_legacy_task_maps(store):
    payload = json.dumps(
        [
            {
                "id": "legacy1",
                "name": "old.com",
                "url": "https://old.com",
                "tasks": {"installation": True, "configuration": False},
                "createdAt": "2024-05-01T10:00:00Z",
                "updatedAt": "2024-05-02T10:00:00Z",
            }
        ]
    )

    assert store.import_json(payload) is True
    domain = store.get("legacy1")
    assert [t.id for t in domain.tasks] == ["installation", "configuration"]
    assert domain.progress == 50


def test_corrupt_storage_lists_empty_and_logs(kv, store):
    kv.set(DOMAINS_KEY, "{not json")

    with capture_logs() as logs:
        assert store.list() == []

    assert logs[0]["event"] == "storage_corrupt"
    assert logs[0]["log_level"] == "error"


def test_non_array_storage_lists_empty(kv, store):
    kv.set(DOMAINS_KEY, json.dumps({"domains": []}))
    assert store.list() == []


def test_unreadable_storage_lists_empty_and_logs():
    store = LocalDomainStore(BrokenKV())

    with capture_logs() as logs:
        assert store.list() == []

    assert logs[0]["event"] == "storage_unreadable"


def test_write_failure_is_raised_as_storage_unavailable():
    store = LocalDomainStore(BrokenKV())

    with pytest.raises(StorageUnavailable):
        store.add(DomainInput(name="a", url="https://a.com"))


def test_clear_removes_the_key(kv, store):
    store.add(DomainInput(name="a", url="https://a.com"))
    store.clear()

    assert kv.get(DOMAINS_KEY) is None
    assert store.list() == []
