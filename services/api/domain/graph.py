"""In-memory workflow graph editing with referential integrity."""

import copy
import logging
from typing import Any, Dict, List, Optional
from shared.exceptions import InvalidReferenceError
from shared.types import Edge, Node, Workflow
from shared.utils import generate_edge_id


class WorkflowGraph:
    """Mutable node/edge view over a Workflow.

    Only referential integrity is enforced here. Trigger/action presence and
    connectivity are reported by ``services.api.domain.validation``.
    """

    def __init__(self, workflow: Optional[Workflow] = None):
        self.workflow = workflow if workflow is not None else Workflow()

    @property
    def nodes(self) -> List[Node]:
        return self.workflow.nodes

    @property
    def edges(self) -> List[Edge]:
        return self.workflow.edges

    def has_node(self, node_id: str) -> bool:
        return self.workflow.get_node(node_id) is not None

    def get_node(self, node_id: str) -> Node:
        node = self.workflow.get_node(node_id)
        if node is None:
            raise InvalidReferenceError(f"Node '{node_id}' does not exist", self.workflow.id or "")
        return node

    def add_node(self, node: Node) -> Node:
        if self.has_node(node.id):
            raise InvalidReferenceError(f"Duplicate node ID: {node.id}", self.workflow.id or "")
        self.workflow.nodes.append(node)
        return node

    def remove_node(self, node_id: str) -> Node:
        """Removes a node together with every edge touching it"""
        node = self.get_node(node_id)
        self.workflow.nodes = [n for n in self.workflow.nodes if n.id != node_id]
        removed = [e.id for e in self.workflow.edges if node_id in (e.source, e.target)]
        self.workflow.edges = [e for e in self.workflow.edges if e.id not in removed]

        logging.debug("Node removed", extra={
            "workflow_id": self.workflow.id,
            "node_id": node_id,
            "removed_edges": removed
        })
        return node

    def update_node_data(self, node_id: str, partial: Dict[str, Any]) -> Node:
        """Merges a partial payload into a node; the node type cannot change"""
        node = self.get_node(node_id)
        merged = {**node.data.model_dump(), **copy.deepcopy(partial)}
        merged["node_type"] = node.data.node_type

        updated = Node(id=node.id, type=node.type, data=merged)
        self.workflow.nodes = [updated if n.id == node_id else n for n in self.workflow.nodes]
        return updated

    def add_edge(
        self,
        source: str,
        target: str,
        source_handle: Optional[str] = None,
        label: Optional[str] = None,
        edge_id: Optional[str] = None,
    ) -> Edge:
        for endpoint in (source, target):
            if not self.has_node(endpoint):
                raise InvalidReferenceError(
                    f"Edge references non-existent node '{endpoint}'",
                    self.workflow.id or "",
                    source=source,
                    target=target
                )
        if source == target:
            raise InvalidReferenceError(f"Node '{source}' cannot connect to itself", self.workflow.id or "")

        edge_id = edge_id or generate_edge_id(source, target)
        if any(e.id == edge_id for e in self.workflow.edges):
            raise InvalidReferenceError(f"Duplicate edge ID: {edge_id}", self.workflow.id or "")

        edge = Edge(id=edge_id, source=source, target=target, source_handle=source_handle, label=label)
        self.workflow.edges.append(edge)
        return edge

    def remove_edge(self, edge_id: str) -> Edge:
        for edge in self.workflow.edges:
            if edge.id == edge_id:
                self.workflow.edges = [e for e in self.workflow.edges if e.id != edge_id]
                return edge
        raise InvalidReferenceError(f"Edge '{edge_id}' does not exist", self.workflow.id or "")

    def replace(self, nodes: List[Node], edges: List[Edge]) -> None:
        """Whole-graph save; the incoming node/edge sets overwrite the current ones"""
        candidate = WorkflowGraph(Workflow(nodes=[]))
        for node in nodes:
            candidate.add_node(node)
        for edge in edges:
            candidate.add_edge(edge.source, edge.target, edge.source_handle, edge.label, edge.id)
        self.workflow.nodes = candidate.nodes
        self.workflow.edges = candidate.edges
