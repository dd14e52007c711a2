"""flowgraph - compile visual process graphs into dependent work items."""

from flowgraph.errors import (
    DefinitionNotFound,
    DependencyResolutionSkipped,
    FlowGraphError,
    MalformedGraph,
    StoreFailure,
)
from flowgraph.models.process_graph import (
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
    # Errors
    "DefinitionNotFound",
    "DependencyResolutionSkipped",
    "FlowGraphError",
    "MalformedGraph",
    "StoreFailure",
    # Process graph
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
