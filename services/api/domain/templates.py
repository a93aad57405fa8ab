"""Node template catalogs and the trigger/action compatibility matrix."""

import copy
from enum import Enum
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict
from shared.exceptions import UnknownTemplateError
from shared.types import (
    ActionData,
    ActionType,
    ConditionData,
    DelayData,
    Node,
    NodeData,
    NodeType,
    TriggerData,
    TriggerType,
)
from shared.utils import generate_node_id


class TemplateCategory(str, Enum):
    TRIGGER = "trigger"
    ACTION = "action"
    CONDITION = "condition"
    DELAY = "delay"


class NodeTemplate(BaseModel):
    """Immutable catalog entry used to instantiate new nodes"""
    model_config = ConfigDict(frozen=True)

    category: TemplateCategory
    sub_type: str
    label: str
    description: str = ""
    default_data: NodeData


TRIGGER_TEMPLATES: Tuple[NodeTemplate, ...] = (
    NodeTemplate(
        category=TemplateCategory.TRIGGER,
        sub_type=TriggerType.DIRECT_MESSAGE.value,
        label="DM Keyword",
        description="When someone sends a DM with specific keywords",
        default_data=TriggerData(label="When someone DMs", trigger_type=TriggerType.DIRECT_MESSAGE),
    ),
    NodeTemplate(
        category=TemplateCategory.TRIGGER,
        sub_type=TriggerType.POST_COMMENT.value,
        label="Comment Keyword",
        description="When someone comments with specific keywords",
        default_data=TriggerData(label="When someone comments", trigger_type=TriggerType.POST_COMMENT),
    ),
)

ACTION_TEMPLATES: Tuple[NodeTemplate, ...] = (
    NodeTemplate(
        category=TemplateCategory.ACTION,
        sub_type=ActionType.SEND_MESSAGE.value,
        label="Send Message",
        description="Send a direct message to the user",
        default_data=ActionData(label="Send a message", action_type=ActionType.SEND_MESSAGE),
    ),
    NodeTemplate(
        category=TemplateCategory.ACTION,
        sub_type=ActionType.AI_RESPONSE.value,
        label="AI Response",
        description="Generate a personalized AI response",
        default_data=ActionData(
            label="AI Response",
            action_type=ActionType.AI_RESPONSE,
            message_template=None,
            ai_prompt="You are a helpful assistant. Respond naturally to: {{message}}",
            ai_model="gpt-4o-mini",
        ),
    ),
    NodeTemplate(
        category=TemplateCategory.ACTION,
        sub_type=ActionType.REPLY_COMMENT.value,
        label="Reply to Comment",
        description="Post a reply to the triggering comment",
        default_data=ActionData(label="Reply to comment", action_type=ActionType.REPLY_COMMENT),
    ),
    NodeTemplate(
        category=TemplateCategory.ACTION,
        sub_type=ActionType.WEBHOOK.value,
        label="Webhook",
        description="Send data to an external URL",
        default_data=ActionData(
            label="Send webhook",
            action_type=ActionType.WEBHOOK,
            message_template=None,
            webhook_url="",
        ),
    ),
)

CONDITION_TEMPLATES: Tuple[NodeTemplate, ...] = (
    NodeTemplate(
        category=TemplateCategory.CONDITION,
        sub_type="condition",
        label="Condition",
        description="Branch the workflow based on a condition",
        default_data=ConditionData(),
    ),
)

DELAY_TEMPLATES: Tuple[NodeTemplate, ...] = (
    NodeTemplate(
        category=TemplateCategory.DELAY,
        sub_type="delay",
        label="Delay",
        description="Wait before continuing the workflow",
        default_data=DelayData(),
    ),
)

# send_message on a comment is delivered as a private reply
COMPATIBLE_ACTIONS: Mapping[str, FrozenSet[str]] = MappingProxyType({
    TriggerType.DIRECT_MESSAGE.value: frozenset({
        ActionType.SEND_MESSAGE.value,
        ActionType.AI_RESPONSE.value,
        ActionType.WEBHOOK.value,
    }),
    TriggerType.POST_COMMENT.value: frozenset({
        ActionType.REPLY_COMMENT.value,
        ActionType.SEND_MESSAGE.value,
        ActionType.WEBHOOK.value,
    }),
})


class NodeTemplateRegistry:
    """Read-only template catalogs; pass an instance wherever nodes get created"""

    def __init__(
        self,
        triggers: Iterable[NodeTemplate] = TRIGGER_TEMPLATES,
        actions: Iterable[NodeTemplate] = ACTION_TEMPLATES,
        conditions: Iterable[NodeTemplate] = CONDITION_TEMPLATES,
        delays: Iterable[NodeTemplate] = DELAY_TEMPLATES,
        compatibility: Mapping[str, Iterable[str]] = COMPATIBLE_ACTIONS,
    ):
        self._catalogs: Dict[TemplateCategory, Tuple[NodeTemplate, ...]] = {
            TemplateCategory.TRIGGER: tuple(triggers),
            TemplateCategory.ACTION: tuple(actions),
            TemplateCategory.CONDITION: tuple(conditions),
            TemplateCategory.DELAY: tuple(delays),
        }
        self._compatibility: Mapping[str, FrozenSet[str]] = MappingProxyType(
            {trigger: frozenset(actions) for trigger, actions in compatibility.items()}
        )

    def list_templates(self, category: Union[TemplateCategory, str]) -> List[NodeTemplate]:
        return list(self._catalogs[TemplateCategory(category)])

    def get_template(self, category: Union[TemplateCategory, str], sub_type: str) -> NodeTemplate:
        for template in self._catalogs[TemplateCategory(category)]:
            if template.sub_type == sub_type:
                return template
        raise UnknownTemplateError(f"No {TemplateCategory(category).value} template for '{sub_type}'")

    def compatible_action_subtypes(self, trigger_type: Optional[Union[TriggerType, str]]) -> FrozenSet[str]:
        """Action subtypes allowed after ``trigger_type``; every action when no trigger exists yet"""
        all_actions = frozenset(t.sub_type for t in self._catalogs[TemplateCategory.ACTION])
        if trigger_type is None:
            return all_actions
        key = trigger_type.value if isinstance(trigger_type, TriggerType) else trigger_type
        return self._compatibility.get(key, frozenset()) & all_actions

    def compatible_action_templates(self, trigger_type: Optional[Union[TriggerType, str]]) -> List[NodeTemplate]:
        allowed = self.compatible_action_subtypes(trigger_type)
        return [t for t in self._catalogs[TemplateCategory.ACTION] if t.sub_type in allowed]

    def available_templates(self, category: Union[TemplateCategory, str], graph) -> List[NodeTemplate]:
        """Templates the editor offers for ``graph``; actions are gated by the triggers present"""
        category = TemplateCategory(category)
        if category != TemplateCategory.ACTION:
            return self.list_templates(category)

        trigger_types = [n.data.trigger_type for n in graph.nodes if n.type == NodeType.TRIGGER]
        if not trigger_types:
            return self.list_templates(category)
        allowed = frozenset().union(*(self.compatible_action_subtypes(t) for t in trigger_types))
        return [t for t in self._catalogs[category] if t.sub_type in allowed]

    def instantiate(self, template: NodeTemplate, node_id: Optional[str] = None) -> Node:
        data = copy.deepcopy(template.default_data)
        return Node(
            id=node_id or generate_node_id(template.category.value),
            type=NodeType(template.category.value),
            data=data,
        )


_default_registry: Optional[NodeTemplateRegistry] = None


def get_template_registry() -> NodeTemplateRegistry:
    """Return the default registry; FastAPI routes take it as a dependency"""
    global _default_registry
    if _default_registry is None:
        _default_registry = NodeTemplateRegistry()
    return _default_registry
