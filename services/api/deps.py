"""FastAPI dependency providers for the API service."""

from functools import lru_cache
from fastapi import Depends
from services.api.domain.lifecycle import WorkflowLifecycle
from services.api.domain.templates import NodeTemplateRegistry, get_template_registry
from services.api.infra.broker import BrokerClient
from services.api.infra.channel_registry import RedisChannelRegistry
from services.api.infra.redis_store import RedisWorkflowStore


@lru_cache
def get_workflow_store() -> RedisWorkflowStore:
    return RedisWorkflowStore()


@lru_cache
def get_channel_registry() -> RedisChannelRegistry:
    return RedisChannelRegistry()


@lru_cache
def get_broker() -> BrokerClient:
    return BrokerClient()


def get_registry() -> NodeTemplateRegistry:
    return get_template_registry()


def get_lifecycle(
    store: RedisWorkflowStore = Depends(get_workflow_store),
    channels: RedisChannelRegistry = Depends(get_channel_registry),
    registry: NodeTemplateRegistry = Depends(get_registry),
) -> WorkflowLifecycle:
    return WorkflowLifecycle(store, channels, registry)
