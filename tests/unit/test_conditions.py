"""
Unit tests for condition evaluation against inbound events.
"""

import pytest
from services.dispatcher.engine.conditions import evaluate_condition
from shared.types import ConditionData
from tests.unit.factories import event


@pytest.mark.parametrize("operator,value,expected", [
    ("contains", "PRICE", True),
    ("not_contains", "price", False),
    ("equals", "what's the price?", True),
    ("not_equals", "hello", True),
    ("is_empty", "", False),
    ("is_not_empty", "", True),
])
def test_message_operators(operator, value, expected):
    condition = ConditionData(field="message", operator=operator, value=value)

    assert evaluate_condition(condition, event("what's the price?")) is expected


def test_username_field():
    condition = ConditionData(field="username", operator="equals", value="alice")

    assert evaluate_condition(condition, event(sender_username="alice"))
    assert not evaluate_condition(condition, event(sender_username="bob"))


def test_numeric_comparison():
    condition = ConditionData(field="message", operator="greater_than", value="10")

    assert evaluate_condition(condition, event("42"))
    assert not evaluate_condition(condition, event("7"))


def test_numeric_comparison_with_text_is_false():
    condition = ConditionData(field="message", operator="less_than", value="10")

    assert not evaluate_condition(condition, event("ten"))


def test_unknown_field_reads_as_empty():
    condition = ConditionData(field="follower_count", operator="is_empty")

    assert evaluate_condition(condition, event("hello"))


def test_missing_post_id_reads_as_empty():
    condition = ConditionData(field="post_id", operator="is_empty")

    assert evaluate_condition(condition, event("hello"))
