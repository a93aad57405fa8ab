"""Node template catalog routes."""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from services.api.deps import get_registry
from services.api.domain.templates import NodeTemplate, NodeTemplateRegistry, TemplateCategory
from shared.types import TriggerType


router = APIRouter()


@router.get("/templates/actions/compatible", response_model=List[NodeTemplate])
async def list_compatible_actions(
    trigger_type: Optional[TriggerType] = None,
    registry: NodeTemplateRegistry = Depends(get_registry)
):
    """Action templates allowed after ``trigger_type``; all of them when omitted"""
    return registry.compatible_action_templates(trigger_type)


@router.get("/templates/{category}", response_model=List[NodeTemplate])
async def list_templates(category: str, registry: NodeTemplateRegistry = Depends(get_registry)):
    try:
        return registry.list_templates(TemplateCategory(category))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown template category: {category}. "
                   f"Allowed: {', '.join(c.value for c in TemplateCategory)}"
        )
