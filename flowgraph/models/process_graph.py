"""Data model for a persisted process graph.

Mirrors what the visual editor sends: nodes carry geometry plus a data block
whose `config` arrives as JSON text, edges carry a `style` that also arrives
as JSON text. Both are parsed on write and stored as structured data, so
reads hand back objects rather than strings.

Python attributes are snake_case, the wire format is camelCase.
"""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from flowgraph.errors import MalformedGraph

# node kind that becomes a work item on publish
TASK_KIND = "task"


def _parse_json_object(value: Any, field_name: str) -> Any:
    """accept JSON text or an already-structured object, reject anything else."""
    if value is None or value == "":
        return {}
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{field_name} is not valid JSON: {exc.msg}") from exc
    if not isinstance(value, dict):
        raise ValueError(f"{field_name} must be a JSON object")
    return value


class WireModel(BaseModel):
    """base for models exchanged with the editor in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NodeConfig(WireModel):
    """per-node configuration, read lazily when a task node is reconciled."""

    model_config = ConfigDict(extra="allow")

    label: str | None = None
    description: str | None = None
    assignees: list[str] = []
    blocked_by: list[str] = []  # upstream node ids
    blocking: list[str] = []  # downstream node ids

    @field_validator("assignees", "blocked_by", "blocking", mode="before")
    @classmethod
    def none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class NodeData(WireModel):
    """the editor's data block for a node."""

    model_config = ConfigDict(extra="allow")

    label: str = ""
    type: str = ""  # semantic kind: "start", "task", "decision", "end", ...
    description: str = ""
    icon: str | None = None
    config: dict[str, Any] = Field(default_factory=dict)

    @field_validator("config", mode="before")
    @classmethod
    def parse_config(cls, value: Any) -> Any:
        return _parse_json_object(value, "config")


class GraphNode(WireModel):
    """a vertex in the visual graph."""

    id: str
    type: str = "workflowNode"  # renderer type, not the semantic kind
    position_x: float = 0.0
    position_y: float = 0.0
    data: NodeData = Field(default_factory=NodeData)
    width: float | None = None
    height: float | None = None
    selected: bool = False
    position_absolute_x: float | None = None
    position_absolute_y: float | None = None
    dragging: bool = False

    @model_validator(mode="before")
    @classmethod
    def flatten_positions(cls, values: Any) -> Any:
        """accept the nested {x, y} shape that reads return."""
        if not isinstance(values, dict):
            return values
        values = dict(values)
        for prefix in ("position", "positionAbsolute"):
            point = values.pop(prefix, None)
            if not isinstance(point, dict):
                continue
            for axis in ("x", "y"):
                if point.get(axis) is not None:
                    values.setdefault(f"{prefix}{axis.upper()}", point[axis])
        return values

    @property
    def kind(self) -> str:
        return self.data.type

    @property
    def is_task(self) -> bool:
        return self.kind.strip().lower() == TASK_KIND

    def to_view(self) -> dict[str, Any]:
        """shape returned to the editor on read."""
        return {
            "id": self.id,
            "type": self.type,
            "position": {"x": self.position_x, "y": self.position_y},
            "data": self.data.model_dump(by_alias=True),
            "width": self.width,
            "height": self.height,
            "selected": self.selected,
            "positionAbsolute": {
                "x": self.position_absolute_x,
                "y": self.position_absolute_y,
            },
            "dragging": self.dragging,
        }


class GraphEdge(WireModel):
    """a directed connection between two nodes, kept for rendering only."""

    id: str
    type: str = "default"
    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None
    animated: bool = False
    style: dict[str, Any] = Field(default_factory=dict)

    @field_validator("style", mode="before")
    @classmethod
    def parse_style(cls, value: Any) -> Any:
        return _parse_json_object(value, "style")

    @field_validator("source_handle", "target_handle", mode="before")
    @classmethod
    def empty_handle_as_none(cls, value: Any) -> Any:
        return value or None

    def to_view(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "style": self.style,
            "source": self.source,
            "sourceHandle": self.source_handle,
            "target": self.target,
            "targetHandle": self.target_handle,
            "animated": self.animated,
        }


class WorkflowPayload(WireModel):
    """request body for saving, updating or publishing a workflow."""

    name: str
    nodes: list[GraphNode] = []
    edges: list[GraphEdge] = []


class ProcessDefinition(WireModel):
    """the stored graph of one project."""

    id: str
    project_id: str
    name: str
    nodes: list[GraphNode] = []
    edges: list[GraphEdge] = []
    created_at: str
    updated_at: str

    def to_view(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "nodes": [node.to_view() for node in self.nodes],
            "edges": [edge.to_view() for edge in self.edges],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


def validate_graph(nodes: list[GraphNode], edges: list[GraphEdge]) -> None:
    """Check the referential shape of a graph before anything is written.

    Node configs are left alone here: their blockedBy/blocking lists may
    point at nodes further down the list and are resolved on publish.

    Raises:
        MalformedGraph: listing every problem found.
    """
    problems: list[str] = []
    node_ids: set[str] = set()

    for index, node in enumerate(nodes):
        if not node.id.strip():
            problems.append(f"node at index {index} has an empty id")
            continue
        if not node.kind.strip():
            problems.append(f"node {node.id!r} has no kind (data.type)")
        if node.id in node_ids:
            problems.append(f"duplicate node id {node.id!r}")
        node_ids.add(node.id)

    edge_ids: set[str] = set()
    for index, edge in enumerate(edges):
        if not edge.id.strip():
            problems.append(f"edge at index {index} has an empty id")
        elif edge.id in edge_ids:
            problems.append(f"duplicate edge id {edge.id!r}")
        edge_ids.add(edge.id)
        if edge.source not in node_ids:
            problems.append(f"edge {edge.id!r} references unknown source node {edge.source!r}")
        if edge.target not in node_ids:
            problems.append(f"edge {edge.id!r} references unknown target node {edge.target!r}")

    if problems:
        raise MalformedGraph("; ".join(problems), {"problems": problems})
