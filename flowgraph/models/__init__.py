"""Core data models for flowgraph."""

from flowgraph.models.process_graph import (
    TASK_KIND,
    GraphEdge,
    GraphNode,
    NodeConfig,
    NodeData,
    ProcessDefinition,
    WorkflowPayload,
    validate_graph,
)
from flowgraph.models.work_item import (
    WorkItem,
    WorkItemFields,
    WorkItemStatus,
)

__all__ = [
    # Process graph
    "TASK_KIND",
    "GraphEdge",
    "GraphNode",
    "NodeConfig",
    "NodeData",
    "ProcessDefinition",
    "WorkflowPayload",
    "validate_graph",
    # Work items
    "WorkItem",
    "WorkItemFields",
    "WorkItemStatus",
]
