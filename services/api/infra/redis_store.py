"""
Redis-backed workflow store for API service.
"""

import os
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Set
import redis
from shared.exceptions import StoreError, WorkflowNotFoundError
from shared.types import NodeType, Workflow, WorkflowState
from shared.utils import (
    active_index_key,
    generate_workflow_id,
    org_workflows_key,
    workflow_key,
    workflow_stats_key,
)


@contextmanager
def store_errors(workflow_id: str = ""):
    try:
        yield
    except redis.RedisError as e:
        raise StoreError(f"Workflow store unavailable: {e}", workflow_id) from e


def indexed_channels(workflow: Workflow) -> Set[str]:
    """Channels whose events a workflow listens to"""
    channels = {workflow.channel_id} if workflow.channel_id else set()
    for node in workflow.nodes:
        if node.type == NodeType.TRIGGER and node.data.channel_id:
            channels.add(node.data.channel_id)
    return channels


def with_stats(workflow: Workflow, stats: Dict[bytes, bytes]) -> Workflow:
    """Overlays the dispatcher-owned trigger stats onto a stored document"""
    if not stats:
        return workflow
    updates: Dict[str, Any] = {}
    if b"trigger_count" in stats:
        updates["trigger_count"] = int(stats[b"trigger_count"])
    if b"last_triggered_at" in stats:
        updates["last_triggered_at"] = stats[b"last_triggered_at"].decode("utf-8")
    return workflow.model_copy(update=updates)


class RedisWorkflowStore:
    """Persists whole workflow documents; the last full save wins"""

    def __init__(self, redis_url: Optional[str] = None, client=None):
        if client is not None:
            self.client = client
        else:
            url = redis_url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
            self.client = redis.Redis.from_url(url, decode_responses=False)

    def get(self, workflow_id: str) -> Workflow:
        with store_errors(workflow_id):
            pipe = self.client.pipeline()
            pipe.get(workflow_key(workflow_id))
            pipe.hgetall(workflow_stats_key(workflow_id))
            data, stats = pipe.execute()
        if not data:
            raise WorkflowNotFoundError(f"Workflow {workflow_id} not found", workflow_id)
        return with_stats(Workflow.model_validate_json(data), stats)

    def create(self, workflow: Workflow) -> str:
        workflow_id = workflow.id or generate_workflow_id()
        record = workflow.model_copy(update={"id": workflow_id})
        with store_errors(workflow_id):
            pipe = self.client.pipeline()
            pipe.set(workflow_key(workflow_id), record.model_dump_json())
            pipe.sadd(org_workflows_key(record.organization_id), workflow_id)
            pipe.execute()
        return workflow_id

    def update(self, workflow_id: str, fields: Dict[str, Any]) -> Workflow:
        current = self.get(workflow_id)
        merged = {**current.model_dump(), **fields, "id": workflow_id}
        updated = Workflow.model_validate(merged)
        updated.touch()
        self._write(current, updated)
        return updated

    def set_active(self, workflow_id: str, active: bool) -> Workflow:
        state = WorkflowState.ACTIVE if active else WorkflowState.INACTIVE
        return self.update(workflow_id, {"state": state, "is_active": active})

    def delete(self, workflow_id: str) -> None:
        current = self.get(workflow_id)
        with store_errors(workflow_id):
            pipe = self.client.pipeline()
            pipe.delete(workflow_key(workflow_id))
            pipe.delete(workflow_stats_key(workflow_id))
            pipe.srem(org_workflows_key(current.organization_id), workflow_id)
            for channel_id in indexed_channels(current):
                pipe.srem(active_index_key(current.organization_id, channel_id), workflow_id)
            pipe.execute()

    def list_by_organization(self, organization_id: str) -> List[Workflow]:
        with store_errors():
            ids = self.client.smembers(org_workflows_key(organization_id))
        workflows = []
        for raw_id in ids:
            try:
                workflows.append(self.get(raw_id.decode('utf-8')))
            except WorkflowNotFoundError:
                continue
        return sorted(workflows, key=lambda w: w.created_at, reverse=True)

    def _write(self, previous: Workflow, updated: Workflow) -> None:
        """Writes the document and keeps the active-by-channel index in step"""
        workflow_id = updated.id
        with store_errors(workflow_id):
            pipe = self.client.pipeline()
            pipe.set(workflow_key(workflow_id), updated.model_dump_json())
            for channel_id in indexed_channels(previous):
                pipe.srem(active_index_key(previous.organization_id, channel_id), workflow_id)
            if updated.is_active:
                for channel_id in indexed_channels(updated):
                    pipe.sadd(active_index_key(updated.organization_id, channel_id), workflow_id)
            pipe.execute()
