"""Shared utilities."""

import time
import uuid


def generate_workflow_id() -> str:
    return f"auto_{int(time.time() * 1000)}_{uuid.uuid4().hex[:7]}"


def generate_node_id(prefix: str = "node") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def generate_edge_id(source: str, target: str) -> str:
    return f"edge_{source}_{target}_{uuid.uuid4().hex[:6]}"


def generate_task_id(event_id: str, workflow_id: str, node_id: str) -> str:
    return f"{event_id}:{workflow_id}:{node_id}"


def workflow_key(workflow_id: str) -> str:
    return f"workflow:{workflow_id}"


def org_workflows_key(organization_id: str) -> str:
    return f"org:{organization_id}:workflows"


def active_index_key(organization_id: str, channel_id: str) -> str:
    return f"org:{organization_id}:channel:{channel_id}:active"


def org_channels_key(organization_id: str) -> str:
    return f"org:{organization_id}:channels"


def workflow_stats_key(workflow_id: str) -> str:
    return f"workflow:{workflow_id}:stats"
