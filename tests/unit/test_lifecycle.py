"""
Tests for lifecycle transitions and the activation gate.
"""

import fakeredis
import pytest
import redis
from unittest.mock import Mock
from services.api.domain.lifecycle import Operation, WorkflowLifecycle, next_state
from services.api.infra.channel_registry import RedisChannelRegistry
from services.api.infra.redis_store import RedisWorkflowStore
from shared.exceptions import (
    ActivationFailureReason,
    ActivationRejectedError,
    InvalidTransitionError,
    StoreError,
    WorkflowNotFoundError,
)
from shared.types import ChannelInfo, Workflow, WorkflowState
from tests.unit.factories import action, edge, trigger


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis()


@pytest.fixture
def store(redis_client):
    return RedisWorkflowStore(client=redis_client)


@pytest.fixture
def channels(redis_client):
    registry = RedisChannelRegistry(client=redis_client)
    registry.register_channel("org_1", ChannelInfo(id="ch_1", provider="instagram", account_name="shop"))
    return registry


@pytest.fixture
def lifecycle(store, channels):
    return WorkflowLifecycle(store, channels, provider="instagram")


def draft(**fields):
    fields.setdefault("organization_id", "org_1")
    fields.setdefault("channel_id", "ch_1")
    return Workflow(
        nodes=[trigger(), action()],
        edges=[edge("trigger", "action")],
        **fields
    )


def test_create_assigns_id_and_saves(lifecycle, store):
    workflow = draft()

    created = lifecycle.create(workflow)

    assert created.id.startswith("auto_")
    assert created.state == WorkflowState.SAVED
    assert created.is_active is False
    assert workflow.id is None
    assert store.get(created.id).state == WorkflowState.SAVED


def test_create_twice_is_rejected(lifecycle):
    created = lifecycle.create(draft())

    with pytest.raises(InvalidTransitionError, match="Cannot create"):
        lifecycle.create(created)


def test_activate_valid_workflow(lifecycle, store, redis_client):
    created = lifecycle.create(draft())

    activated = lifecycle.activate(created.id)

    assert activated.is_active is True
    assert activated.state == WorkflowState.ACTIVE
    assert store.get(created.id).is_active is True
    assert redis_client.smembers("org:org_1:channel:ch_1:active") == {created.id.encode()}


def test_activate_invalid_graph_leaves_workflow_inactive(lifecycle, store):
    created = lifecycle.create(draft())
    lifecycle.edit(created.id, {"edges": []})

    with pytest.raises(ActivationRejectedError) as exc_info:
        lifecycle.activate(created.id)

    assert exc_info.value.reason == ActivationFailureReason.INVALID_GRAPH
    assert [e.node_id for e in exc_info.value.errors] == ["action"]
    assert store.get(created.id).is_active is False


def test_activate_requires_connected_channel(lifecycle, store):
    created = lifecycle.create(draft(channel_id="ch_gone"))

    with pytest.raises(ActivationRejectedError, match="ch_gone") as exc_info:
        lifecycle.activate(created.id)

    assert exc_info.value.reason == ActivationFailureReason.CHANNEL_UNAVAILABLE
    assert store.get(created.id).state == WorkflowState.SAVED


def test_activate_requires_some_channel(lifecycle):
    created = lifecycle.create(draft(channel_id=None))

    with pytest.raises(ActivationRejectedError, match="no channel selected") as exc_info:
        lifecycle.activate(created.id)

    assert exc_info.value.reason == ActivationFailureReason.CHANNEL_UNAVAILABLE


def test_activate_rejects_wrong_provider(store, channels):
    created = WorkflowLifecycle(store, channels, provider="twitter").create(draft())

    with pytest.raises(ActivationRejectedError) as exc_info:
        WorkflowLifecycle(store, channels, provider="twitter").activate(created.id)

    assert exc_info.value.reason == ActivationFailureReason.CHANNEL_UNAVAILABLE


def test_activate_rejects_disconnected_channel(lifecycle, channels):
    channels.register_channel("org_1", ChannelInfo(id="ch_1", provider="instagram", is_active=False))
    created = lifecycle.create(draft())

    with pytest.raises(ActivationRejectedError):
        lifecycle.activate(created.id)


def test_activate_already_active(lifecycle):
    created = lifecycle.create(draft())
    lifecycle.activate(created.id)

    with pytest.raises(ActivationRejectedError) as exc_info:
        lifecycle.activate(created.id)

    assert exc_info.value.reason == ActivationFailureReason.ALREADY_ACTIVE


def test_activation_asymmetry(lifecycle, store, redis_client):
    """A broken active workflow can always be turned off but not back on"""
    created = lifecycle.create(draft())
    lifecycle.activate(created.id)

    edited = lifecycle.edit(created.id, {"edges": []})
    assert edited.is_active is True

    deactivated = lifecycle.deactivate(created.id)
    assert deactivated.is_active is False
    assert deactivated.state == WorkflowState.INACTIVE
    assert redis_client.smembers("org:org_1:channel:ch_1:active") == set()

    with pytest.raises(ActivationRejectedError):
        lifecycle.activate(created.id)
    assert store.get(created.id).is_active is False


def test_reactivate_from_inactive(lifecycle):
    created = lifecycle.create(draft())
    lifecycle.activate(created.id)
    lifecycle.deactivate(created.id)

    assert lifecycle.activate(created.id).is_active is True


def test_deactivate_saved_workflow_is_a_no_op(lifecycle, store):
    created = lifecycle.create(draft())
    store.set_active = Mock()

    assert lifecycle.deactivate(created.id).state == WorkflowState.SAVED
    store.set_active.assert_not_called()


def test_edit_ignores_protected_fields(lifecycle):
    created = lifecycle.create(draft())

    edited = lifecycle.edit(created.id, {"name": "Price replies", "is_active": True, "trigger_count": 99})

    assert edited.name == "Price replies"
    assert edited.is_active is False
    assert edited.trigger_count == 0


def test_delete_is_terminal(lifecycle, store, redis_client):
    created = lifecycle.create(draft())
    lifecycle.activate(created.id)

    deleted = lifecycle.delete(created.id)

    assert deleted.state == WorkflowState.DELETED
    assert redis_client.smembers("org:org_1:channel:ch_1:active") == set()
    with pytest.raises(WorkflowNotFoundError):
        store.get(created.id)


def test_deleted_state_allows_nothing():
    for operation in Operation:
        with pytest.raises(InvalidTransitionError):
            next_state(WorkflowState.DELETED, operation)


def test_store_failure_surfaces_as_store_error(channels):
    client = Mock()
    client.pipeline.return_value.execute.side_effect = redis.ConnectionError("connection refused")
    lifecycle = WorkflowLifecycle(RedisWorkflowStore(client=client), channels)

    with pytest.raises(StoreError, match="unavailable"):
        lifecycle.activate("auto_1")


def test_failed_create_leaves_draft_untouched(channels):
    client = Mock()
    client.pipeline.return_value.execute.side_effect = redis.ConnectionError("connection refused")
    lifecycle = WorkflowLifecycle(RedisWorkflowStore(client=client), channels)
    workflow = draft()

    with pytest.raises(StoreError):
        lifecycle.create(workflow)

    assert workflow.id is None
    assert workflow.state == WorkflowState.DRAFT
    assert len(workflow.nodes) == 2
