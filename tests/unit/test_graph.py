"""
Unit tests for graph editing and referential integrity.
"""

import pytest
from pydantic import ValidationError
from services.api.domain.graph import WorkflowGraph
from shared.exceptions import InvalidReferenceError
from shared.types import Edge, Workflow
from tests.unit.factories import action, condition, edge, trigger, workflow


def test_add_edge_between_existing_nodes():
    graph = WorkflowGraph(workflow([trigger(), action()]))

    created = graph.add_edge("trigger", "action")

    assert graph.edges == [created]
    assert created.source == "trigger"
    assert created.target == "action"


def test_add_edge_with_missing_endpoint_is_rejected():
    """Malformed edges are never stored"""
    graph = WorkflowGraph(workflow([trigger()]))

    with pytest.raises(InvalidReferenceError, match="non-existent node 'ghost'"):
        graph.add_edge("trigger", "ghost")
    with pytest.raises(InvalidReferenceError, match="non-existent node 'ghost'"):
        graph.add_edge("ghost", "trigger")

    assert graph.edges == []


def test_add_edge_rejects_self_loop():
    graph = WorkflowGraph(workflow([trigger()]))

    with pytest.raises(InvalidReferenceError, match="itself"):
        graph.add_edge("trigger", "trigger")


def test_add_edge_rejects_duplicate_id():
    graph = WorkflowGraph(workflow([trigger(), action()]))
    graph.add_edge("trigger", "action", edge_id="e1")

    with pytest.raises(InvalidReferenceError, match="Duplicate edge ID"):
        graph.add_edge("trigger", "action", edge_id="e1")


def test_add_duplicate_node_is_rejected():
    graph = WorkflowGraph(workflow([trigger()]))

    with pytest.raises(InvalidReferenceError, match="Duplicate node ID"):
        graph.add_node(trigger())


def test_remove_node_drops_incident_edges():
    graph = WorkflowGraph(workflow(
        [trigger(), condition(), action("yes"), action("no")],
        [
            edge("trigger", "condition"),
            edge("condition", "yes", "true"),
            edge("condition", "no", "false"),
        ]
    ))

    removed = graph.remove_node("condition")

    assert removed.id == "condition"
    assert [n.id for n in graph.nodes] == ["trigger", "yes", "no"]
    assert graph.edges == []


def test_remove_unknown_node_or_edge_raises():
    graph = WorkflowGraph(workflow([trigger()]))

    with pytest.raises(InvalidReferenceError):
        graph.remove_node("missing")
    with pytest.raises(InvalidReferenceError):
        graph.remove_edge("missing")


def test_remove_edge_leaves_nodes():
    graph = WorkflowGraph(workflow([trigger(), action()], [edge("trigger", "action")]))

    graph.remove_edge("trigger->action")

    assert graph.edges == []
    assert len(graph.nodes) == 2


def test_update_node_data_merges_partial_payload():
    graph = WorkflowGraph(workflow([trigger(keywords=["price"])]))

    updated = graph.update_node_data("trigger", {"keywords": ["price", "cost"], "match_type": "exact"})

    assert updated.data.keywords == ["price", "cost"]
    assert updated.data.match_type.value == "exact"
    assert updated.data.trigger_type.value == "direct_message"
    assert graph.get_node("trigger") is updated


def test_update_node_data_cannot_change_node_type():
    graph = WorkflowGraph(workflow([trigger()]))

    updated = graph.update_node_data("trigger", {"node_type": "action"})

    assert updated.type.value == "trigger"


def test_update_node_data_rejects_invalid_payload():
    graph = WorkflowGraph(workflow([trigger()]))

    with pytest.raises(ValidationError):
        graph.update_node_data("trigger", {"match_type": "fuzzy"})

    assert graph.get_node("trigger").data.match_type.value == "contains"


def test_replace_is_all_or_nothing():
    graph = WorkflowGraph(workflow([trigger(), action()], [edge("trigger", "action")]))

    with pytest.raises(InvalidReferenceError):
        graph.replace([trigger()], [edge("trigger", "action")])

    assert [n.id for n in graph.nodes] == ["trigger", "action"]
    assert len(graph.edges) == 1


def test_edge_model_rejects_self_loop():
    with pytest.raises(ValidationError, match="itself"):
        Edge(id="e1", source="a", target="a")


def test_workflow_record_rejects_dangling_edges():
    with pytest.raises(ValidationError, match="non-existent node"):
        Workflow(nodes=[trigger()], edges=[edge("trigger", "missing")])


def test_node_type_is_filled_from_record():
    """Stored records may omit data.node_type"""
    record = Workflow.model_validate({
        "nodes": [{"id": "t1", "type": "trigger", "data": {"keywords": ["hi"]}}]
    })

    assert record.nodes[0].data.keywords == ["hi"]
    assert record.nodes[0].data.node_type == "trigger"


def test_node_type_must_match_payload():
    with pytest.raises(ValidationError, match="payload"):
        Workflow.model_validate({
            "nodes": [{"id": "t1", "type": "action", "data": {"node_type": "trigger"}}]
        })
