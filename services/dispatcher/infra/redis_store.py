"""
Redis read side of the workflow store for the Dispatcher service.
"""

import logging
import os
from datetime import datetime, timezone
from typing import List, Optional
import redis
from shared.types import Workflow
from shared.utils import active_index_key, workflow_key, workflow_stats_key


class ActiveWorkflowStore:
    """Loads the active workflows indexed for a channel"""

    def __init__(self, redis_url: str = None, client=None):
        if client is not None:
            self.client = client
        else:
            url = redis_url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
            self.client = redis.Redis.from_url(url, decode_responses=False)

    def list_active(self, organization_id: str, channel_id: str) -> List[Workflow]:
        ids = sorted(i.decode('utf-8') for i in self.client.smembers(active_index_key(organization_id, channel_id)))
        if not ids:
            return []

        workflows = []
        for workflow_id, data in zip(ids, self.client.mget([workflow_key(i) for i in ids])):
            workflow = self._parse(workflow_id, data)
            if workflow is not None and workflow.is_active:
                workflows.append(workflow)
        return workflows

    def record_trigger(self, workflow_id: str) -> None:
        """Bumps trigger stats in the stats hash; the workflow document is never written"""
        if not self.client.exists(workflow_key(workflow_id)):
            return
        key = workflow_stats_key(workflow_id)
        pipe = self.client.pipeline()
        pipe.hincrby(key, "trigger_count", 1)
        pipe.hset(key, "last_triggered_at", datetime.now(timezone.utc).isoformat())
        pipe.execute()

    def _parse(self, workflow_id: str, data: Optional[bytes]) -> Optional[Workflow]:
        if not data:
            return None
        try:
            return Workflow.model_validate_json(data)
        except ValueError as e:
            logging.error("Skipping malformed workflow record", extra={"workflow_id": workflow_id, "error": str(e)})
            return None
