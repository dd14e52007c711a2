"""API routes for saving, publishing and reading a project's workflow."""

from typing import Any

from fastapi import APIRouter, HTTPException

from flowgraph.errors import FlowGraphError
from flowgraph.models.process_graph import ProcessDefinition, WireModel, WorkflowPayload
from flowgraph.models.work_item import WorkItem
from flowserver.publish import (
    get_workflow as load_workflow,
    list_workflow_work_items,
    publish_workflow as run_publish,
    save_workflow,
    update_workflow as replace_workflow,
)

router = APIRouter()


# --- Response Models ---


class WorkflowSummary(WireModel):
    """definition metadata, without the graph itself."""

    id: str
    project_id: str
    name: str
    created_at: str
    updated_at: str


class SaveWorkflowResponse(WireModel):
    workflow: WorkflowSummary
    nodes_count: int
    edges_count: int


class PublishWorkflowResponse(SaveWorkflowResponse):
    tasks_created: int
    tasks_updated: int
    tasks: list[WorkItem]


# --- Helper Functions ---


def _summary(definition: ProcessDefinition) -> WorkflowSummary:
    return WorkflowSummary.model_validate(definition.model_dump(exclude={"nodes", "edges"}))


def _http_error(error: FlowGraphError) -> HTTPException:
    """map a domain error onto the matching HTTP status."""
    return HTTPException(status_code=error.status_code, detail=error.to_detail())


# --- Routes ---


@router.post("/workflow/{project_id}", status_code=201)
def create_workflow(project_id: str, request: WorkflowPayload) -> SaveWorkflowResponse:
    """save a workflow graph without creating any work items."""
    try:
        result = save_workflow(project_id, request)
    except FlowGraphError as error:
        raise _http_error(error) from error
    return SaveWorkflowResponse(
        workflow=_summary(result.definition),
        nodes_count=result.node_count,
        edges_count=result.edge_count,
    )


@router.put("/workflow/{project_id}")
def update_workflow(project_id: str, request: WorkflowPayload) -> SaveWorkflowResponse:
    """replace the nodes and edges of an existing workflow."""
    try:
        result = replace_workflow(project_id, request)
    except FlowGraphError as error:
        raise _http_error(error) from error
    return SaveWorkflowResponse(
        workflow=_summary(result.definition),
        nodes_count=result.node_count,
        edges_count=result.edge_count,
    )


@router.post("/workflow/{project_id}/publish")
def publish_workflow(project_id: str, request: WorkflowPayload) -> PublishWorkflowResponse:
    """publish a saved workflow into work items.

    Safe to repeat: work items are matched to nodes by node id, so a
    republish updates them instead of creating duplicates.
    """
    try:
        result = run_publish(project_id, request)
    except FlowGraphError as error:
        raise _http_error(error) from error
    return PublishWorkflowResponse(
        workflow=_summary(result.definition),
        nodes_count=result.node_count,
        edges_count=result.edge_count,
        tasks_created=result.work_items_created,
        tasks_updated=result.work_items_updated,
        tasks=result.work_items,
    )


@router.get("/workflow/{project_id}")
def get_workflow(project_id: str) -> dict[str, Any]:
    """get the stored workflow in the shape the editor renders."""
    try:
        definition = load_workflow(project_id)
    except FlowGraphError as error:
        raise _http_error(error) from error
    return definition.to_view()


@router.get("/workflow/{project_id}/tasks")
def list_workflow_tasks(project_id: str) -> list[WorkItem]:
    """list the work items published from a project's workflow."""
    try:
        return list_workflow_work_items(project_id)
    except FlowGraphError as error:
        raise _http_error(error) from error
