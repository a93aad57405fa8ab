"""
Read access to an organization's connected social channels.
"""

import os
from typing import List, Optional
import redis
from shared.types import ChannelInfo
from shared.utils import org_channels_key
from services.api.infra.redis_store import store_errors


class RedisChannelRegistry:
    """Channels live in a per-organization hash of channel_id -> JSON record"""

    def __init__(self, redis_url: Optional[str] = None, client=None):
        if client is not None:
            self.client = client
        else:
            url = redis_url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
            self.client = redis.Redis.from_url(url, decode_responses=False)

    def list_active_channels(self, organization_id: str) -> List[ChannelInfo]:
        with store_errors():
            records = self.client.hgetall(org_channels_key(organization_id))
        channels = [ChannelInfo.model_validate_json(v) for v in records.values()]
        return [c for c in channels if c.is_active]

    def register_channel(self, organization_id: str, channel: ChannelInfo) -> None:
        with store_errors():
            self.client.hset(org_channels_key(organization_id), channel.id, channel.model_dump_json())
