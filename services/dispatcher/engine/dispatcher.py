"""Dispatcher engine: fans an inbound event out over active workflows."""

import logging
import os
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple
from services.dispatcher.engine.conditions import evaluate_condition
from services.dispatcher.engine.matching import matches
from services.dispatcher.engine.retry_handler import RetryHandler
from services.dispatcher.engine.template import TemplateRenderer
from shared.constants import (
    DEFAULT_ACTION_TIMEOUT_SECONDS,
    FALSE_BRANCH,
    MAX_ACTION_TIMEOUT_SECONDS,
    MIN_ACTION_TIMEOUT_SECONDS,
    TRUE_BRANCH,
)
from shared.logging_config import get_correlation_id
from shared.types import (
    ActionData,
    ActionDispatch,
    ConditionData,
    DelayData,
    InboundEvent,
    NodeType,
    TriggerData,
    Workflow,
)
from shared.utils import generate_task_id


@dataclass
class WorkflowOutcome:
    workflow_id: str
    matched: bool = False
    dispatched: List[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class DispatchReport:
    event_id: str
    evaluated: int = 0
    outcomes: List[WorkflowOutcome] = field(default_factory=list)

    @property
    def triggered(self) -> int:
        return sum(1 for o in self.outcomes if o.matched and not o.error)

    def to_dict(self) -> Dict:
        return {
            "event_id": self.event_id,
            "evaluated": self.evaluated,
            "triggered": self.triggered,
            "outcomes": [o.__dict__ for o in self.outcomes],
        }


def action_timeout_seconds() -> int:
    timeout = int(os.getenv("ACTION_TIMEOUT_SECONDS", DEFAULT_ACTION_TIMEOUT_SECONDS))
    return max(MIN_ACTION_TIMEOUT_SECONDS, min(timeout, MAX_ACTION_TIMEOUT_SECONDS))


def matched_triggers(workflow: Workflow, event: InboundEvent) -> List[str]:
    """Triggers that fire for ``event``; a trigger bound to a channel only hears that channel"""
    return [
        n.id for n in workflow.nodes
        if n.type == NodeType.TRIGGER
        and (not n.data.channel_id or n.data.channel_id == event.channel_id)
        and matches(n.data, event)
    ]


def plan_actions(
    workflow: Workflow,
    event: InboundEvent,
    trigger_ids: Optional[List[str]] = None,
) -> List[Tuple[str, ActionData, int]]:
    """Actions reached from every trigger that matches ``event``, with their countdowns.

    Delays add to the countdown of everything downstream. A condition only
    continues along edges tagged with its outcome ("true"/"false").
    """
    nodes = {n.id: n for n in workflow.nodes}
    outgoing: Dict[str, List] = {}
    for edge in workflow.edges:
        outgoing.setdefault(edge.source, []).append(edge)

    if trigger_ids is None:
        trigger_ids = matched_triggers(workflow, event)
    queue = deque((trigger_id, 0) for trigger_id in trigger_ids)
    visited: Set[str] = set()
    planned: List[Tuple[str, ActionData, int]] = []

    while queue:
        node_id, countdown = queue.popleft()
        if node_id in visited:
            continue
        visited.add(node_id)
        data = nodes[node_id].data

        if isinstance(data, TriggerData):
            next_edges = outgoing.get(node_id, [])
        elif isinstance(data, ActionData):
            countdown += data.delay_seconds
            planned.append((node_id, data, countdown))
            next_edges = outgoing.get(node_id, [])
        elif isinstance(data, DelayData):
            countdown += data.total_seconds
            next_edges = outgoing.get(node_id, [])
        elif isinstance(data, ConditionData):
            branch = TRUE_BRANCH if evaluate_condition(data, event) else FALSE_BRANCH
            edges = outgoing.get(node_id, [])
            next_edges = [e for e in edges if e.source_handle == branch]
            untagged = [e.id for e in edges if e.source_handle not in (TRUE_BRANCH, FALSE_BRANCH)]
            if untagged:
                logging.warning("Condition branch without true/false handle not followed", extra={
                    "workflow_id": workflow.id,
                    "node_id": node_id,
                    "edges": untagged
                })
        else:
            raise TypeError(f"Unhandled node payload: {type(data).__name__}")

        for edge in next_edges:
            if edge.target in nodes:
                queue.append((edge.target, countdown))

    return planned


class AutomationDispatcher:

    def __init__(self, workflow_store, celery_app, redis_client=None):
        self.store = workflow_store
        self.celery = celery_app
        self.renderer = TemplateRenderer()
        self.retry_handler = RetryHandler(redis_client if redis_client is not None else workflow_store.client)

    def process_event(self, event: InboundEvent) -> DispatchReport:
        report = DispatchReport(event_id=event.event_id)
        if not event.channel_id:
            logging.warning("Inbound event has no channel; nothing to match", extra={"event_id": event.event_id})
            return report

        # One snapshot per event; workflows deactivated after this read still see this event
        workflows = self.store.list_active(event.organization_id, event.channel_id)
        report.evaluated = len(workflows)

        for workflow in workflows:
            outcome = WorkflowOutcome(workflow_id=workflow.id)
            report.outcomes.append(outcome)
            try:
                self._process_workflow(workflow, event, outcome)
            except Exception as e:
                outcome.error = str(e)
                logging.exception("Workflow evaluation failed", extra={
                    "workflow_id": workflow.id,
                    "event_id": event.event_id
                })

        logging.info("Event processed", extra=report.to_dict())
        return report

    def _process_workflow(self, workflow: Workflow, event: InboundEvent, outcome: WorkflowOutcome) -> None:
        if not workflow.is_active:
            return

        trigger_ids = matched_triggers(workflow, event)
        outcome.matched = bool(trigger_ids)
        if not outcome.matched:
            return

        planned = plan_actions(workflow, event, trigger_ids)

        for node_id, action, countdown in planned:
            try:
                dispatch = ActionDispatch(
                    workflow_id=workflow.id,
                    node_id=node_id,
                    action=self.renderer.render_action(action, event),
                    countdown_seconds=countdown
                )
                self.send_action(dispatch, event)
                outcome.dispatched.append(node_id)
            except Exception:
                logging.exception("Failed to enqueue action", extra={
                    "workflow_id": workflow.id,
                    "node_id": node_id,
                    "event_id": event.event_id
                })

        try:
            self.store.record_trigger(workflow.id)
        except Exception:
            logging.exception("Failed to record trigger stats", extra={"workflow_id": workflow.id})

    def send_action(self, dispatch: ActionDispatch, event: InboundEvent, countdown: Optional[float] = None) -> None:
        timeout = action_timeout_seconds()
        soft_timeout = max(timeout - 5, timeout // 2) if timeout > 5 else timeout

        logging.info("Dispatching action", extra={
            "workflow_id": dispatch.workflow_id,
            "node_id": dispatch.node_id,
            "action_type": dispatch.action.action_type.value,
            "countdown": dispatch.countdown_seconds if countdown is None else countdown,
            "timeout": timeout
        })

        self.celery.send_task(
            "worker.execute_action",
            kwargs={
                "dispatch": dispatch.model_dump(mode="json"),
                "event": event.model_dump(mode="json"),
                "correlation_id": get_correlation_id(),
            },
            task_id=generate_task_id(event.event_id, dispatch.workflow_id, dispatch.node_id),
            queue="worker",
            countdown=dispatch.countdown_seconds if countdown is None else countdown,
            time_limit=timeout,
            soft_time_limit=soft_timeout,
        )

    def on_action_failure(self, dispatch: ActionDispatch, event: InboundEvent, error: str) -> bool:
        """Re-enqueues a failed action when retryable; returns whether it was retried"""
        task_id = generate_task_id(event.event_id, dispatch.workflow_id, dispatch.node_id)
        should_retry, delay = self.retry_handler.should_retry(task_id, error)

        if should_retry and delay is not None:
            self.send_action(dispatch, event, countdown=delay)
            return True

        logging.error("Action failed permanently", extra={
            "workflow_id": dispatch.workflow_id,
            "node_id": dispatch.node_id,
            "event_id": event.event_id,
            "error": error
        })
        return False
