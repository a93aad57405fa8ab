"""Shared types for API, Dispatcher, and Worker services."""

import time
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union
from pydantic import BaseModel, Field, model_validator
from shared.constants import DELAY_UNIT_SECONDS


class NodeType(str, Enum):
    TRIGGER = "trigger"
    ACTION = "action"
    CONDITION = "condition"
    DELAY = "delay"


class TriggerType(str, Enum):
    DIRECT_MESSAGE = "direct_message"
    POST_COMMENT = "post_comment"


class ActionType(str, Enum):
    SEND_MESSAGE = "send_message"
    REPLY_COMMENT = "reply_comment"
    AI_RESPONSE = "ai_response"
    WEBHOOK = "webhook"


class MatchType(str, Enum):
    CONTAINS = "contains"
    EXACT = "exact"
    STARTS_WITH = "starts_with"


class ConditionOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"


EMPTINESS_OPERATORS = {ConditionOperator.IS_EMPTY, ConditionOperator.IS_NOT_EMPTY}


class DelayUnit(str, Enum):
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"


class WorkflowState(str, Enum):
    DRAFT = "draft"
    SAVED = "saved"
    ACTIVE = "active"
    INACTIVE = "inactive"
    DELETED = "deleted"


AIModel = Literal["gpt-4o", "gpt-4o-mini", "claude-3-5-sonnet"]


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class TriggerData(BaseModel):
    node_type: Literal["trigger"] = "trigger"
    label: str = "When someone DMs"
    trigger_type: TriggerType = TriggerType.DIRECT_MESSAGE
    keywords: List[str] = Field(default_factory=list)
    match_type: MatchType = MatchType.CONTAINS
    case_sensitive: bool = False
    channel_id: Optional[str] = None
    # Only meaningful for post_comment; empty means any post on the channel
    post_ids: List[str] = Field(default_factory=list)


class ActionData(BaseModel):
    node_type: Literal["action"] = "action"
    label: str = "Send a message"
    action_type: ActionType = ActionType.SEND_MESSAGE
    channel_id: Optional[str] = None
    message_template: Optional[str] = ""
    ai_prompt: Optional[str] = None
    ai_model: Optional[AIModel] = None
    webhook_url: Optional[str] = None
    delay_seconds: int = Field(default=0, ge=0)


class ConditionData(BaseModel):
    node_type: Literal["condition"] = "condition"
    label: str = "If / Else"
    field: str = "message"
    operator: ConditionOperator = ConditionOperator.CONTAINS
    value: Optional[str] = ""
    true_label: str = "Yes"
    false_label: str = "No"


class DelayData(BaseModel):
    node_type: Literal["delay"] = "delay"
    label: str = "Wait"
    duration: int = Field(default=5, gt=0)
    unit: DelayUnit = DelayUnit.SECONDS

    @property
    def total_seconds(self) -> int:
        return self.duration * DELAY_UNIT_SECONDS[self.unit.value]


NodeData = Annotated[
    Union[TriggerData, ActionData, ConditionData, DelayData],
    Field(discriminator="node_type"),
]


class Node(BaseModel):
    """A typed unit of a workflow graph; ``type`` always mirrors ``data.node_type``"""
    id: str
    type: Optional[NodeType] = None
    data: NodeData

    @model_validator(mode="before")
    @classmethod
    def fill_node_type(cls, values: Any) -> Any:
        if isinstance(values, dict):
            data = values.get("data")
            node_type = values.get("type")
            if isinstance(data, dict) and "node_type" not in data and node_type is not None:
                values = {**values, "data": {**data, "node_type": NodeType(node_type).value}}
        return values

    @model_validator(mode="after")
    def check_type_matches_payload(self) -> "Node":
        payload_type = NodeType(self.data.node_type)
        if self.type is None:
            self.type = payload_type
        elif self.type != payload_type:
            raise ValueError(
                f"Node '{self.id}' has type '{self.type.value}' but a '{payload_type.value}' payload"
            )
        return self

    @property
    def label(self) -> str:
        return self.data.label


class Edge(BaseModel):
    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    label: Optional[str] = None

    @model_validator(mode="after")
    def reject_self_loop(self) -> "Edge":
        if self.source == self.target:
            raise ValueError(f"Edge '{self.id}' connects node '{self.source}' to itself")
        return self


class Workflow(BaseModel):
    id: Optional[str] = None
    organization_id: str = ""
    name: str = "Untitled automation"
    description: str = ""
    channel_id: Optional[str] = None
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)
    is_active: bool = False
    state: WorkflowState = WorkflowState.DRAFT
    trigger_count: int = 0
    last_triggered_at: Optional[str] = None
    created_at: str = Field(default_factory=_utcnow)
    updated_at: str = Field(default_factory=_utcnow)
    created_by: Optional[str] = None

    @model_validator(mode="after")
    def check_graph_and_state(self) -> "Workflow":
        node_ids = set()
        for node in self.nodes:
            if node.id in node_ids:
                raise ValueError(f"Duplicate node ID: {node.id}")
            node_ids.add(node.id)

        edge_ids = set()
        for edge in self.edges:
            if edge.id in edge_ids:
                raise ValueError(f"Duplicate edge ID: {edge.id}")
            edge_ids.add(edge.id)
            for endpoint in (edge.source, edge.target):
                if endpoint not in node_ids:
                    raise ValueError(f"Edge '{edge.id}' references non-existent node '{endpoint}'")

        # Records persisted before states existed only carry is_active
        if self.state == WorkflowState.DRAFT and self.id:
            self.state = WorkflowState.ACTIVE if self.is_active else WorkflowState.SAVED
        self.is_active = self.state == WorkflowState.ACTIVE
        return self

    def touch(self) -> None:
        self.updated_at = _utcnow()

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


class InboundEvent(BaseModel):
    """Normalized direct message or comment consumed by trigger matching"""
    kind: TriggerType
    text: str
    post_id: Optional[str] = None
    organization_id: str = ""
    channel_id: Optional[str] = None
    sender_id: str = ""
    sender_username: str = ""
    comment_id: Optional[str] = None
    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: float = Field(default_factory=time.time)


class ChannelInfo(BaseModel):
    id: str
    provider: str
    account_name: str = ""
    is_active: bool = True


class ActionDispatch(BaseModel):
    """A single action selected for execution by a matched workflow"""
    workflow_id: str
    node_id: str
    action: ActionData
    countdown_seconds: int = 0
