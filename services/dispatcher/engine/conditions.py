"""Condition node evaluation against an inbound event."""

import logging
from typing import Callable, Dict, Optional
from shared.types import ConditionData, ConditionOperator, InboundEvent


EVENT_FIELDS: Dict[str, Callable[[InboundEvent], Optional[str]]] = {
    "message": lambda e: e.text,
    "text": lambda e: e.text,
    "username": lambda e: e.sender_username,
    "sender_id": lambda e: e.sender_id,
    "post_id": lambda e: e.post_id,
    "comment_id": lambda e: e.comment_id,
    "channel_id": lambda e: e.channel_id,
}


def _as_number(value: Optional[str]) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def evaluate_condition(condition: ConditionData, event: InboundEvent) -> bool:
    getter = EVENT_FIELDS.get(condition.field)
    if getter is None:
        logging.warning("Condition references unknown event field", extra={
            "field": condition.field,
            "event_id": event.event_id
        })
        actual = ""
    else:
        actual = getter(event) or ""

    expected = condition.value or ""
    operator = condition.operator

    if operator == ConditionOperator.EQUALS:
        return actual == expected
    if operator == ConditionOperator.NOT_EQUALS:
        return actual != expected
    if operator == ConditionOperator.CONTAINS:
        return expected.lower() in actual.lower()
    if operator == ConditionOperator.NOT_CONTAINS:
        return expected.lower() not in actual.lower()
    if operator in (ConditionOperator.GREATER_THAN, ConditionOperator.LESS_THAN):
        left, right = _as_number(actual), _as_number(expected)
        if left is None or right is None:
            return False
        return left > right if operator == ConditionOperator.GREATER_THAN else left < right
    if operator == ConditionOperator.IS_EMPTY:
        return not actual.strip()
    if operator == ConditionOperator.IS_NOT_EMPTY:
        return bool(actual.strip())

    raise ValueError(f"Unknown condition operator: {operator}")
