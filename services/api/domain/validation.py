"""Workflow graph validation.

``validate`` reports the structural problems that block activation.
``lint`` reports payload problems worth surfacing in the editor; those
never affect ``is_valid``. Both return every problem found rather than
stopping at the first.
"""

from collections import deque
from enum import Enum
from typing import Dict, List, Optional, Set
from pydantic import BaseModel
from services.api.domain.templates import NodeTemplateRegistry, get_template_registry
from shared.constants import MAX_KEYWORDS_PER_TRIGGER, MAX_NODES_PER_WORKFLOW, TRUE_BRANCH, FALSE_BRANCH
from shared.types import (
    ActionData,
    ActionType,
    ConditionData,
    DelayData,
    EMPTINESS_OPERATORS,
    NodeType,
    TriggerData,
)


class IssueCode(str, Enum):
    MISSING_TRIGGER = "missing_trigger"
    MISSING_ACTION = "missing_action"
    DISCONNECTED_NODE = "disconnected_node"
    INCOMPATIBLE_ACTION = "incompatible_action"
    MISSING_KEYWORDS = "missing_keywords"
    MISSING_MESSAGE_TEMPLATE = "missing_message_template"
    MISSING_AI_PROMPT = "missing_ai_prompt"
    MISSING_WEBHOOK_URL = "missing_webhook_url"
    MISSING_CONDITION_VALUE = "missing_condition_value"
    UNTAGGED_BRANCH = "untagged_branch"
    CYCLE = "cycle"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ValidationIssue(BaseModel):
    code: IssueCode
    message: str
    node_id: Optional[str] = None
    label: Optional[str] = None
    field: Optional[str] = None
    severity: Severity = Severity.ERROR


def validate(graph, registry: Optional[NodeTemplateRegistry] = None) -> List[ValidationIssue]:
    """Structural errors for anything exposing ``nodes`` and ``edges``"""
    registry = registry or get_template_registry()
    errors: List[ValidationIssue] = []

    triggers = [n for n in graph.nodes if n.type == NodeType.TRIGGER]
    actions = [n for n in graph.nodes if n.type == NodeType.ACTION]

    if not triggers:
        errors.append(ValidationIssue(
            code=IssueCode.MISSING_TRIGGER,
            message="Workflow must have at least one trigger"
        ))

    if not actions:
        errors.append(ValidationIssue(
            code=IssueCode.MISSING_ACTION,
            message="Workflow must have at least one action"
        ))

    targets = {edge.target for edge in graph.edges}
    for node in graph.nodes:
        if node.type != NodeType.TRIGGER and node.id not in targets:
            errors.append(ValidationIssue(
                code=IssueCode.DISCONNECTED_NODE,
                message=f'Node "{node.label}" is not connected',
                node_id=node.id,
                label=node.label
            ))

    if triggers:
        allowed: Set[str] = set()
        for trigger in triggers:
            allowed |= registry.compatible_action_subtypes(trigger.data.trigger_type)
        for action in actions:
            if action.data.action_type.value not in allowed:
                trigger_types = sorted({t.data.trigger_type.value for t in triggers})
                errors.append(ValidationIssue(
                    code=IssueCode.INCOMPATIBLE_ACTION,
                    message=(
                        f'Action "{action.label}" ({action.data.action_type.value}) cannot follow '
                        f"trigger type(s): {', '.join(trigger_types)}"
                    ),
                    node_id=action.id,
                    label=action.label,
                    field="action_type"
                ))

    return errors


def is_valid(graph, registry: Optional[NodeTemplateRegistry] = None) -> bool:
    return not validate(graph, registry)


def lint(graph) -> List[ValidationIssue]:
    """Non-blocking payload warnings"""
    warnings: List[ValidationIssue] = []

    def warn(code: IssueCode, message: str, node, field: Optional[str] = None) -> None:
        warnings.append(ValidationIssue(
            code=code,
            message=message,
            node_id=node.id,
            label=node.label,
            field=field,
            severity=Severity.WARNING
        ))

    for node in graph.nodes:
        data = node.data
        if isinstance(data, TriggerData):
            if not [k for k in data.keywords if k.strip()]:
                warn(IssueCode.MISSING_KEYWORDS, "Trigger must have at least one keyword", node, "keywords")
        elif isinstance(data, ActionData):
            if data.action_type in (ActionType.SEND_MESSAGE, ActionType.REPLY_COMMENT):
                if not (data.message_template or "").strip():
                    warn(IssueCode.MISSING_MESSAGE_TEMPLATE, "Action must have a message template",
                         node, "message_template")
            elif data.action_type == ActionType.AI_RESPONSE:
                if not (data.ai_prompt or "").strip():
                    warn(IssueCode.MISSING_AI_PROMPT, "AI action must have a prompt", node, "ai_prompt")
            elif data.action_type == ActionType.WEBHOOK:
                if not (data.webhook_url or "").strip():
                    warn(IssueCode.MISSING_WEBHOOK_URL, "Webhook action must have a URL", node, "webhook_url")
        elif isinstance(data, ConditionData):
            if data.operator not in EMPTINESS_OPERATORS and not (data.value or "").strip():
                warn(IssueCode.MISSING_CONDITION_VALUE,
                     f"Condition operator '{data.operator.value}' requires a value", node, "value")
            for edge in graph.edges:
                if edge.source == node.id and edge.source_handle not in (TRUE_BRANCH, FALSE_BRANCH):
                    warn(IssueCode.UNTAGGED_BRANCH,
                         f"Edge '{edge.id}' leaves a condition without a true/false branch", node)
        elif isinstance(data, DelayData):
            pass  # positive duration is enforced by the model

    adjacency: Dict[str, List[str]] = {n.id: [] for n in graph.nodes}
    for edge in graph.edges:
        if edge.source in adjacency and edge.target in adjacency:
            adjacency[edge.source].append(edge.target)
    if has_cycle(adjacency, set(adjacency)):
        warnings.append(ValidationIssue(
            code=IssueCode.CYCLE,
            message="Workflow contains a cycle; looping paths are not followed",
            severity=Severity.WARNING
        ))

    return warnings


def has_cycle(adjacency: Dict[str, List[str]], node_ids: Set[str]) -> bool:
    in_degree = {nid: 0 for nid in node_ids}
    for children in adjacency.values():
        for child in children:
            in_degree[child] += 1

    queue = deque([nid for nid, deg in in_degree.items() if deg == 0])
    processed = 0

    while queue:
        node_id = queue.popleft()
        processed += 1
        for child in adjacency[node_id]:
            in_degree[child] -= 1
            if in_degree[child] == 0:
                queue.append(child)

    return processed != len(node_ids)


def check_limits(graph) -> None:
    """Rejects graphs too large to accept at the API boundary"""
    if len(graph.nodes) > MAX_NODES_PER_WORKFLOW:
        raise ValueError(f"Workflow exceeds maximum node limit: {len(graph.nodes)} > {MAX_NODES_PER_WORKFLOW}")

    for node in graph.nodes:
        if isinstance(node.data, TriggerData) and len(node.data.keywords) > MAX_KEYWORDS_PER_TRIGGER:
            raise ValueError(
                f"Trigger '{node.id}' exceeds keyword limit: {len(node.data.keywords)} > {MAX_KEYWORDS_PER_TRIGGER}"
            )
