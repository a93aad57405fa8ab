"""Action handler registry with completion tracking."""

import os
from typing import Any, Callable, Dict, List, Optional
import redis
from services.worker.handlers.schemas import validate_action_config
from shared.constants import REDIS_KEY_TTL_SECONDS
from shared.types import ActionDispatch, InboundEvent

_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.Redis.from_url(
            os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            decode_responses=False
        )
    return _redis_client


def _done_key(task_id: str) -> str:
    return f"action:{task_id}:done"


def is_done(task_id: str, client=None) -> bool:
    """True once a delivery of ``task_id`` has completed successfully"""
    client = client if client is not None else get_redis_client()
    return bool(client.exists(_done_key(task_id)))


def mark_done(task_id: str, client=None) -> bool:
    """Records success; returns False if another delivery got there first"""
    client = client if client is not None else get_redis_client()
    return bool(client.set(_done_key(task_id), "1", nx=True, ex=REDIS_KEY_TTL_SECONDS))


ActionHandler = Callable[[ActionDispatch, InboundEvent], Dict[str, Any]]
_action_registry: Dict[str, ActionHandler] = {}


def register_action(action_type: str):
    def decorator(func: ActionHandler):
        _action_registry[action_type] = func
        return func
    return decorator


def get_action_handler(action_type: str) -> ActionHandler:
    if action_type not in _action_registry:
        raise ValueError(f"Unknown action type: {action_type}")
    return _action_registry[action_type]


def list_action_types() -> List[str]:
    return list(_action_registry.keys())


def execute_action(dispatch: ActionDispatch, event: InboundEvent) -> Dict[str, Any]:
    action_type = dispatch.action.action_type.value
    handler = get_action_handler(action_type)
    validate_action_config(action_type, dispatch.action.model_dump())
    return handler(dispatch, event)
