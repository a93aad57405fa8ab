"""Builders for workflow graphs and inbound events used across unit tests."""

from shared.types import (
    ActionData,
    ConditionData,
    DelayData,
    Edge,
    InboundEvent,
    Node,
    NodeType,
    TriggerData,
    Workflow,
    WorkflowState,
)


def trigger(node_id="trigger", trigger_type="direct_message", keywords=("price",), **data):
    return Node(
        id=node_id,
        type=NodeType.TRIGGER,
        data=TriggerData(trigger_type=trigger_type, keywords=list(keywords), **data)
    )


def action(node_id="action", action_type="send_message", **data):
    if action_type in ("send_message", "reply_comment"):
        data.setdefault("message_template", "Hi {{username}}!")
    return Node(id=node_id, type=NodeType.ACTION, data=ActionData(action_type=action_type, **data))


def condition(node_id="condition", **data):
    return Node(id=node_id, type=NodeType.CONDITION, data=ConditionData(**data))


def delay(node_id="delay", duration=5, unit="seconds"):
    return Node(id=node_id, type=NodeType.DELAY, data=DelayData(duration=duration, unit=unit))


def edge(source, target, handle=None):
    return Edge(id=f"{source}->{target}", source=source, target=target, source_handle=handle)


def workflow(nodes=(), edges=(), workflow_id="wf_1", state=WorkflowState.SAVED, **fields):
    fields.setdefault("organization_id", "org_1")
    fields.setdefault("channel_id", "ch_1")
    return Workflow(id=workflow_id, nodes=list(nodes), edges=list(edges), state=state, **fields)


def simple_workflow(workflow_id="wf_1", state=WorkflowState.SAVED, **fields):
    """A DM keyword trigger wired to a single send_message action"""
    return workflow(
        [trigger(), action()],
        [edge("trigger", "action")],
        workflow_id=workflow_id,
        state=state,
        **fields
    )


def event(text="what's the price?", kind="direct_message", **fields):
    fields.setdefault("organization_id", "org_1")
    fields.setdefault("channel_id", "ch_1")
    fields.setdefault("sender_id", "user_1")
    fields.setdefault("sender_username", "alice")
    return InboundEvent(kind=kind, text=text, **fields)
