"""Workflow API routes."""

import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from services.api.deps import get_lifecycle, get_registry
from services.api.domain.graph import WorkflowGraph
from services.api.domain.lifecycle import WorkflowLifecycle
from services.api.domain.models import (
    AddEdgeRequest,
    AddNodeRequest,
    CreateWorkflowRequest,
    UpdateNodeRequest,
    UpdateWorkflowRequest,
    ValidationResponse,
)
from services.api.domain.templates import NodeTemplateRegistry
from services.api.domain.validation import check_limits, lint, validate
from shared.exceptions import (
    ActivationRejectedError,
    InvalidReferenceError,
    InvalidTransitionError,
    StoreError,
    UnknownTemplateError,
    WorkflowError,
    WorkflowNotFoundError,
)
from shared.types import Workflow


router = APIRouter()


def to_http_exception(e: Exception) -> HTTPException:
    """Maps domain errors onto HTTP responses"""
    if isinstance(e, WorkflowNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if isinstance(e, ActivationRejectedError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "reason": e.reason.value,
                "message": e.message,
                "errors": [issue.model_dump(mode="json") for issue in e.errors],
            }
        )
    if isinstance(e, InvalidTransitionError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    if isinstance(e, StoreError):
        logging.error("Workflow store failure", extra={"workflow_id": e.workflow_id, "error": e.message})
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)
    if isinstance(e, UnknownTemplateError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e.args[0]))
    if isinstance(e, (InvalidReferenceError, WorkflowError, ValueError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    raise e


def _save_graph(lifecycle: WorkflowLifecycle, graph: WorkflowGraph) -> Workflow:
    check_limits(graph)
    return lifecycle.edit(graph.workflow.id, {"nodes": graph.nodes, "edges": graph.edges})


@router.post("/workflows", response_model=Workflow, status_code=status.HTTP_201_CREATED)
async def create_workflow(request: CreateWorkflowRequest, lifecycle: WorkflowLifecycle = Depends(get_lifecycle)):
    try:
        draft = Workflow(**request.model_dump())
        check_limits(draft)
        return lifecycle.create(draft)
    except (WorkflowError, ValueError) as e:
        raise to_http_exception(e)


@router.get("/organizations/{organization_id}/workflows", response_model=List[Workflow])
async def list_workflows(organization_id: str, lifecycle: WorkflowLifecycle = Depends(get_lifecycle)):
    try:
        return lifecycle.store.list_by_organization(organization_id)
    except WorkflowError as e:
        raise to_http_exception(e)


@router.get("/workflows/{workflow_id}", response_model=Workflow)
async def get_workflow(workflow_id: str, lifecycle: WorkflowLifecycle = Depends(get_lifecycle)):
    try:
        return lifecycle.store.get(workflow_id)
    except WorkflowError as e:
        raise to_http_exception(e)


@router.put("/workflows/{workflow_id}", response_model=Workflow)
async def update_workflow(
    workflow_id: str,
    request: UpdateWorkflowRequest,
    lifecycle: WorkflowLifecycle = Depends(get_lifecycle)
):
    try:
        current = lifecycle.store.get(workflow_id)
        fields = request.model_dump(exclude_none=True)
        nodes = request.nodes if request.nodes is not None else current.nodes
        edges = request.edges if request.edges is not None else current.edges

        graph = WorkflowGraph(current.model_copy(deep=True))
        graph.replace(nodes, edges)
        check_limits(graph)

        fields.update({"nodes": graph.nodes, "edges": graph.edges})
        return lifecycle.edit(workflow_id, fields)
    except (WorkflowError, ValueError) as e:
        raise to_http_exception(e)


@router.delete("/workflows/{workflow_id}", response_model=Workflow)
async def delete_workflow(workflow_id: str, lifecycle: WorkflowLifecycle = Depends(get_lifecycle)):
    try:
        return lifecycle.delete(workflow_id)
    except WorkflowError as e:
        raise to_http_exception(e)


@router.post("/workflows/{workflow_id}/nodes", response_model=Workflow, status_code=status.HTTP_201_CREATED)
async def add_node(
    workflow_id: str,
    request: AddNodeRequest,
    lifecycle: WorkflowLifecycle = Depends(get_lifecycle),
    registry: NodeTemplateRegistry = Depends(get_registry)
):
    try:
        graph = WorkflowGraph(lifecycle.store.get(workflow_id))
        template = registry.get_template(request.category, request.sub_type)
        if template not in registry.available_templates(request.category, graph):
            raise ValueError(
                f"Action '{request.sub_type}' is not compatible with the workflow's trigger"
            )
        graph.add_node(registry.instantiate(template, request.node_id))
        return _save_graph(lifecycle, graph)
    except (WorkflowError, UnknownTemplateError, ValueError) as e:
        raise to_http_exception(e)


@router.patch("/workflows/{workflow_id}/nodes/{node_id}", response_model=Workflow)
async def update_node(
    workflow_id: str,
    node_id: str,
    request: UpdateNodeRequest,
    lifecycle: WorkflowLifecycle = Depends(get_lifecycle)
):
    try:
        graph = WorkflowGraph(lifecycle.store.get(workflow_id))
        graph.update_node_data(node_id, request.data)
        return _save_graph(lifecycle, graph)
    except (WorkflowError, ValueError) as e:
        raise to_http_exception(e)


@router.delete("/workflows/{workflow_id}/nodes/{node_id}", response_model=Workflow)
async def remove_node(workflow_id: str, node_id: str, lifecycle: WorkflowLifecycle = Depends(get_lifecycle)):
    try:
        graph = WorkflowGraph(lifecycle.store.get(workflow_id))
        graph.remove_node(node_id)
        return _save_graph(lifecycle, graph)
    except WorkflowError as e:
        raise to_http_exception(e)


@router.post("/workflows/{workflow_id}/edges", response_model=Workflow, status_code=status.HTTP_201_CREATED)
async def add_edge(workflow_id: str, request: AddEdgeRequest, lifecycle: WorkflowLifecycle = Depends(get_lifecycle)):
    try:
        graph = WorkflowGraph(lifecycle.store.get(workflow_id))
        graph.add_edge(request.source, request.target, request.source_handle, request.label)
        return _save_graph(lifecycle, graph)
    except WorkflowError as e:
        raise to_http_exception(e)


@router.delete("/workflows/{workflow_id}/edges/{edge_id}", response_model=Workflow)
async def remove_edge(workflow_id: str, edge_id: str, lifecycle: WorkflowLifecycle = Depends(get_lifecycle)):
    try:
        graph = WorkflowGraph(lifecycle.store.get(workflow_id))
        graph.remove_edge(edge_id)
        return _save_graph(lifecycle, graph)
    except WorkflowError as e:
        raise to_http_exception(e)


@router.get("/workflows/{workflow_id}/validation", response_model=ValidationResponse)
async def validate_workflow(
    workflow_id: str,
    lifecycle: WorkflowLifecycle = Depends(get_lifecycle),
    registry: NodeTemplateRegistry = Depends(get_registry)
):
    try:
        workflow = lifecycle.store.get(workflow_id)
    except WorkflowError as e:
        raise to_http_exception(e)

    errors = validate(workflow, registry)
    return ValidationResponse(
        workflow_id=workflow_id,
        valid=not errors,
        errors=errors,
        warnings=lint(workflow)
    )


@router.post("/workflows/{workflow_id}/activate", response_model=Workflow)
async def activate_workflow(workflow_id: str, lifecycle: WorkflowLifecycle = Depends(get_lifecycle)):
    try:
        return lifecycle.activate(workflow_id)
    except WorkflowError as e:
        raise to_http_exception(e)


@router.post("/workflows/{workflow_id}/deactivate", response_model=Workflow)
async def deactivate_workflow(workflow_id: str, lifecycle: WorkflowLifecycle = Depends(get_lifecycle)):
    try:
        return lifecycle.deactivate(workflow_id)
    except WorkflowError as e:
        raise to_http_exception(e)
