"""
Tests for the Redis workflow store and the dispatcher's active-workflow index reads.
"""

import fakeredis
import pytest
from services.api.infra.redis_store import RedisWorkflowStore, indexed_channels
from services.dispatcher.infra.redis_store import ActiveWorkflowStore
from shared.exceptions import WorkflowNotFoundError
from shared.types import Workflow
from tests.unit.factories import simple_workflow, trigger, workflow


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis()


@pytest.fixture
def store(redis_client):
    return RedisWorkflowStore(client=redis_client)


@pytest.fixture
def active_store(redis_client):
    return ActiveWorkflowStore(client=redis_client)


def saved(store, workflow_id, **fields):
    record = simple_workflow(workflow_id, **fields)
    store.create(record)
    return record


def test_get_missing_workflow(store):
    with pytest.raises(WorkflowNotFoundError):
        store.get("auto_missing")


def test_update_is_last_writer_wins(store):
    saved(store, "wf_1")

    store.update("wf_1", {"name": "first"})
    store.update("wf_1", {"name": "second"})

    assert store.get("wf_1").name == "second"


def test_list_by_organization(store):
    saved(store, "wf_1")
    saved(store, "wf_2")
    saved(store, "wf_other", organization_id="org_2")

    assert {w.id for w in store.list_by_organization("org_1")} == {"wf_1", "wf_2"}


def test_indexed_channels_include_trigger_channels():
    record = workflow([trigger(channel_id="ch_2")], channel_id="ch_1")

    assert indexed_channels(record) == {"ch_1", "ch_2"}


def test_list_active_reads_channel_index(store, active_store):
    saved(store, "wf_1")
    saved(store, "wf_2")
    saved(store, "wf_elsewhere", channel_id="ch_9")
    store.set_active("wf_1", True)
    store.set_active("wf_elsewhere", True)

    active = active_store.list_active("org_1", "ch_1")

    assert [w.id for w in active] == ["wf_1"]
    assert all(isinstance(w, Workflow) for w in active)


def test_list_active_skips_stale_index_entries(store, active_store, redis_client):
    saved(store, "wf_1")
    store.set_active("wf_1", True)
    redis_client.sadd("org:org_1:channel:ch_1:active", "wf_deleted")
    redis_client.set("workflow:wf_corrupt", b"{not json")
    redis_client.sadd("org:org_1:channel:ch_1:active", "wf_corrupt")

    assert [w.id for w in active_store.list_active("org_1", "ch_1")] == ["wf_1"]


def test_deactivated_workflow_leaves_index(store, active_store):
    saved(store, "wf_1")
    store.set_active("wf_1", True)
    store.set_active("wf_1", False)

    assert active_store.list_active("org_1", "ch_1") == []


def test_channel_change_moves_index_entry(store, active_store):
    saved(store, "wf_1")
    store.set_active("wf_1", True)

    store.update("wf_1", {"channel_id": "ch_2"})

    assert active_store.list_active("org_1", "ch_1") == []
    assert [w.id for w in active_store.list_active("org_1", "ch_2")] == ["wf_1"]


def test_record_trigger_updates_stats(store, active_store):
    saved(store, "wf_1")

    active_store.record_trigger("wf_1")
    active_store.record_trigger("wf_1")

    record = store.get("wf_1")
    assert record.trigger_count == 2
    assert record.last_triggered_at is not None


def test_record_trigger_for_missing_workflow_is_ignored(active_store, redis_client):
    active_store.record_trigger("wf_gone")

    assert redis_client.get("workflow:wf_gone") is None
    assert redis_client.exists("workflow:wf_gone:stats") == 0


def test_record_trigger_leaves_document_untouched(store, active_store, redis_client):
    saved(store, "wf_1")
    store.set_active("wf_1", True)
    before = redis_client.get("workflow:wf_1")

    active_store.record_trigger("wf_1")

    assert redis_client.get("workflow:wf_1") == before


def test_deactivate_during_record_trigger_is_kept(store, active_store, redis_client, monkeypatch):
    saved(store, "wf_1")
    store.set_active("wf_1", True)
    exists = redis_client.exists

    def deactivate_then_exists(*keys):
        store.set_active("wf_1", False)
        return exists(*keys)

    monkeypatch.setattr(redis_client, "exists", deactivate_then_exists)
    active_store.record_trigger("wf_1")

    record = store.get("wf_1")
    assert record.is_active is False
    assert record.trigger_count == 1
    assert active_store.list_active("org_1", "ch_1") == []


def test_edit_after_trigger_keeps_stats(store, active_store):
    saved(store, "wf_1")
    active_store.record_trigger("wf_1")

    store.update("wf_1", {"name": "renamed"})
    active_store.record_trigger("wf_1")

    record = store.get("wf_1")
    assert record.name == "renamed"
    assert record.trigger_count == 2


def test_delete_drops_stats(store, active_store, redis_client):
    saved(store, "wf_1")
    active_store.record_trigger("wf_1")

    store.delete("wf_1")

    assert redis_client.exists("workflow:wf_1:stats") == 0
