"""API request/response models."""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from services.api.domain.templates import TemplateCategory
from services.api.domain.validation import ValidationIssue
from shared.types import Edge, Node


class CreateWorkflowRequest(BaseModel):
    """Request body for creating a new workflow"""
    organization_id: str
    name: str = "Untitled automation"
    description: str = ""
    channel_id: Optional[str] = None
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)
    created_by: Optional[str] = None


class UpdateWorkflowRequest(BaseModel):
    """Whole-workflow save; omitted fields keep their stored values"""
    name: Optional[str] = None
    description: Optional[str] = None
    channel_id: Optional[str] = None
    nodes: Optional[List[Node]] = None
    edges: Optional[List[Edge]] = None


class AddNodeRequest(BaseModel):
    category: TemplateCategory
    sub_type: str
    node_id: Optional[str] = None


class UpdateNodeRequest(BaseModel):
    data: Dict[str, Any]


class AddEdgeRequest(BaseModel):
    source: str
    target: str
    source_handle: Optional[str] = None
    label: Optional[str] = None


class ValidationResponse(BaseModel):
    workflow_id: str
    valid: bool
    errors: List[ValidationIssue]
    warnings: List[ValidationIssue]


class EventAcceptedResponse(BaseModel):
    event_id: str
    status: str
    message: str
