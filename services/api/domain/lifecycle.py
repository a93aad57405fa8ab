"""Workflow lifecycle and the activation gate.

    Draft --create--> Saved --activate--> Active --deactivate--> Inactive
                                   ^                                |
                                   +-------------activate-----------+
    any non-deleted state --delete--> Deleted

Activation requires a valid graph and a connected channel of the expected
provider. Deactivation is always allowed, even for a broken graph.
"""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional, Set
from services.api.domain.templates import NodeTemplateRegistry, get_template_registry
from services.api.domain.validation import validate
from services.api.infra.redis_store import indexed_channels
from shared.constants import DEFAULT_CHANNEL_PROVIDER
from shared.exceptions import (
    ActivationFailureReason,
    ActivationRejectedError,
    InvalidTransitionError,
)
from shared.types import NodeType, Workflow, WorkflowState


class Operation(str, Enum):
    CREATE = "create"
    EDIT = "edit"
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    DELETE = "delete"


_LIVE = {WorkflowState.SAVED, WorkflowState.ACTIVE, WorkflowState.INACTIVE}

TRANSITIONS: Dict[Operation, Dict[WorkflowState, WorkflowState]] = {
    Operation.CREATE: {WorkflowState.DRAFT: WorkflowState.SAVED},
    Operation.EDIT: {state: state for state in _LIVE},
    Operation.ACTIVATE: {
        WorkflowState.SAVED: WorkflowState.ACTIVE,
        WorkflowState.INACTIVE: WorkflowState.ACTIVE,
    },
    Operation.DEACTIVATE: {
        WorkflowState.ACTIVE: WorkflowState.INACTIVE,
        WorkflowState.SAVED: WorkflowState.SAVED,
        WorkflowState.INACTIVE: WorkflowState.INACTIVE,
    },
    Operation.DELETE: {
        **{state: WorkflowState.DELETED for state in _LIVE},
        WorkflowState.DRAFT: WorkflowState.DELETED,
    },
}

# Fields a plain edit may not touch; state changes go through the lifecycle
_PROTECTED_FIELDS = {"id", "state", "is_active", "created_at", "created_by", "trigger_count", "last_triggered_at"}


def next_state(state: WorkflowState, operation: Operation, workflow_id: str = "") -> WorkflowState:
    allowed = TRANSITIONS[operation]
    if state not in allowed:
        raise InvalidTransitionError(
            f"Cannot {operation.value} a workflow in state '{state.value}'",
            workflow_id,
            state=state.value,
            operation=operation.value
        )
    return allowed[state]


def referenced_channels(workflow: Workflow) -> Set[str]:
    channels = indexed_channels(workflow)
    for node in workflow.nodes:
        if node.type == NodeType.ACTION and node.data.channel_id:
            channels.add(node.data.channel_id)
    return channels


class WorkflowLifecycle:
    """Applies lifecycle operations through a workflow store and channel registry"""

    def __init__(
        self,
        store,
        channels,
        registry: Optional[NodeTemplateRegistry] = None,
        provider: Optional[str] = None,
    ):
        self.store = store
        self.channels = channels
        self.registry = registry or get_template_registry()
        self.provider = provider or os.getenv("CHANNEL_PROVIDER", DEFAULT_CHANNEL_PROVIDER)

    def create(self, workflow: Workflow) -> Workflow:
        """Persists a draft; the caller's object is untouched if the store fails"""
        state = next_state(workflow.state, Operation.CREATE, workflow.id or "")
        record = workflow.model_copy(update={"state": state, "is_active": False})
        workflow_id = self.store.create(record)
        record = record.model_copy(update={"id": workflow_id})

        logging.info("Workflow created", extra={
            "workflow_id": workflow_id,
            "organization_id": record.organization_id,
            "nodes": len(record.nodes),
            "edges": len(record.edges)
        })
        return record

    def edit(self, workflow_id: str, fields: Dict[str, Any]) -> Workflow:
        """Saves new content without re-validating, whatever the activation state"""
        current = self.store.get(workflow_id)
        next_state(current.state, Operation.EDIT, workflow_id)

        changes = {k: v for k, v in fields.items() if k not in _PROTECTED_FIELDS}
        updated = self.store.update(workflow_id, changes)

        logging.info("Workflow edited", extra={
            "workflow_id": workflow_id,
            "fields": sorted(changes),
            "state": updated.state.value
        })
        return updated

    def activate(self, workflow_id: str) -> Workflow:
        current = self.store.get(workflow_id)
        if current.is_active:
            raise ActivationRejectedError(
                ActivationFailureReason.ALREADY_ACTIVE,
                f"Workflow {workflow_id} is already active",
                workflow_id
            )
        next_state(current.state, Operation.ACTIVATE, workflow_id)

        errors = validate(current, self.registry)
        if errors:
            logging.info("Activation rejected: invalid graph", extra={
                "workflow_id": workflow_id,
                "errors": [e.code.value for e in errors]
            })
            raise ActivationRejectedError(
                ActivationFailureReason.INVALID_GRAPH,
                f"Fix {len(errors)} issue(s) to activate",
                workflow_id,
                errors=errors
            )

        missing = self._unavailable_channels(current)
        if missing is not None:
            logging.info("Activation rejected: channel unavailable", extra={
                "workflow_id": workflow_id,
                "channels": sorted(missing),
                "provider": self.provider
            })
            detail = ", ".join(sorted(missing)) if missing else "no channel selected"
            raise ActivationRejectedError(
                ActivationFailureReason.CHANNEL_UNAVAILABLE,
                f"No active {self.provider} channel available ({detail})",
                workflow_id
            )

        activated = self.store.set_active(workflow_id, True)
        logging.info("Workflow activated", extra={"workflow_id": workflow_id})
        return activated

    def deactivate(self, workflow_id: str) -> Workflow:
        """Always allowed; a workflow that is not active is returned as-is"""
        current = self.store.get(workflow_id)
        target = next_state(current.state, Operation.DEACTIVATE, workflow_id)
        if target == current.state:
            return current

        deactivated = self.store.set_active(workflow_id, False)
        logging.info("Workflow deactivated", extra={"workflow_id": workflow_id})
        return deactivated

    def delete(self, workflow_id: str) -> Workflow:
        current = self.store.get(workflow_id)
        state = next_state(current.state, Operation.DELETE, workflow_id)
        self.store.delete(workflow_id)

        logging.info("Workflow deleted", extra={"workflow_id": workflow_id})
        return current.model_copy(update={"state": state, "is_active": False})

    def _unavailable_channels(self, workflow: Workflow) -> Optional[Set[str]]:
        """None when every referenced channel is connected; else the missing ones"""
        referenced = referenced_channels(workflow)
        if not referenced:
            return set()

        available = {
            c.id for c in self.channels.list_active_channels(workflow.organization_id)
            if c.provider == self.provider and c.is_active
        }
        missing = referenced - available
        return missing or None
