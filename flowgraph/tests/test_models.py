"""Tests for graph and work item models."""

import json

import pytest
from pydantic import ValidationError

from flowgraph.errors import MalformedGraph
from flowgraph.models.process_graph import (
    GraphEdge,
    GraphNode,
    NodeConfig,
    NodeData,
    ProcessDefinition,
    WorkflowPayload,
    validate_graph,
)
from flowgraph.models.work_item import WorkItem, WorkItemStatus
from flowgraph.utils.identifiers import generate_work_item_id, utc_timestamp


def _node(node_id: str, kind: str = "task") -> GraphNode:
    return GraphNode(id=node_id, data=NodeData(label=f"Node {node_id}", type=kind))


class TestEditorPayloadParsing:
    """The editor sends config and style as JSON text."""

    def test_config_text_is_parsed(self):
        """config arriving as a string should be stored as an object."""
        data = NodeData.model_validate({
            "label": "Review",
            "type": "task",
            "config": json.dumps({"blockedBy": ["1"], "assignees": ["u1"]}),
        })
        assert data.config == {"blockedBy": ["1"], "assignees": ["u1"]}

    def test_config_object_is_accepted(self):
        """already structured config should pass through unchanged."""
        data = NodeData.model_validate({"type": "task", "config": {"blocking": ["2"]}})
        assert data.config == {"blocking": ["2"]}

    def test_empty_config_text_is_empty_object(self):
        data = NodeData.model_validate({"type": "start", "config": ""})
        assert data.config == {}

    def test_invalid_config_text_rejected(self):
        """config that is not JSON should fail validation."""
        with pytest.raises(ValidationError) as exc_info:
            NodeData.model_validate({"type": "task", "config": "{not json"})
        assert "config" in str(exc_info.value)

    def test_non_object_config_rejected(self):
        with pytest.raises(ValidationError):
            NodeData.model_validate({"type": "task", "config": "[1, 2]"})

    def test_edge_style_text_is_parsed(self):
        edge = GraphEdge.model_validate({
            "id": "e1",
            "type": "smoothstep",
            "source": "1",
            "target": "2",
            "sourceHandle": "",
            "targetHandle": None,
            "animated": True,
            "style": json.dumps({"stroke": "#555"}),
        })
        assert edge.style == {"stroke": "#555"}
        assert edge.source_handle is None
        assert edge.animated is True

    def test_node_reads_camel_case_geometry(self):
        node = GraphNode.model_validate({
            "id": "1",
            "type": "workflowNode",
            "positionX": 1.5,
            "positionY": 120.25,
            "positionAbsoluteX": 1.5,
            "positionAbsoluteY": 120.25,
            "width": 225,
            "height": 66,
            "selected": False,
            "dragging": False,
            "data": {"label": "Start", "type": "start", "icon": "play", "config": "{}"},
        })
        assert node.position_x == 1.5
        assert node.position_absolute_y == 120.25
        assert node.kind == "start"
        assert node.data.icon == "play"

    def test_node_accepts_nested_position(self):
        """the nested shape returned by reads can be posted back."""
        node = GraphNode.model_validate({
            "id": "1",
            "position": {"x": 10, "y": 20},
            "positionAbsolute": {"x": None, "y": None},
            "data": {"type": "task"},
        })
        assert node.position_x == 10
        assert node.position_y == 20
        assert node.position_absolute_x is None

    def test_unknown_data_keys_are_kept(self):
        data = NodeData.model_validate({"type": "task", "color": "blue"})
        assert data.model_dump(by_alias=True)["color"] == "blue"


class TestNodeKinds:
    def test_task_kind_is_case_insensitive(self):
        assert _node("1", "Task").is_task
        assert _node("1", " task ").is_task

    def test_other_kinds_are_not_tasks(self):
        for kind in ("start", "decision", "end"):
            assert not _node("1", kind).is_task


class TestNodeConfig:
    def test_reads_camel_case_references(self):
        config = NodeConfig.model_validate({"blockedBy": ["a"], "blocking": ["b"]})
        assert config.blocked_by == ["a"]
        assert config.blocking == ["b"]

    def test_null_lists_are_empty(self):
        config = NodeConfig.model_validate({"assignees": None, "blockedBy": None})
        assert config.assignees == []
        assert config.blocked_by == []

    def test_extra_keys_allowed(self):
        config = NodeConfig.model_validate({"priority": "high"})
        assert config.model_extra == {"priority": "high"}

    def test_references_must_be_a_list(self):
        with pytest.raises(ValidationError):
            NodeConfig.model_validate({"blockedBy": "1"})


class TestViews:
    """Reads return nested positions and structured config/style."""

    def test_node_view_shape(self):
        node = GraphNode(
            id="1",
            position_x=3.0,
            position_y=4.0,
            data=NodeData(label="Draft", type="task", config={"blockedBy": []}),
        )
        view = node.to_view()
        assert view["position"] == {"x": 3.0, "y": 4.0}
        assert view["positionAbsolute"] == {"x": None, "y": None}
        assert view["data"]["config"] == {"blockedBy": []}
        assert view["type"] == "workflowNode"

    def test_node_view_round_trips(self):
        node = GraphNode(id="1", position_x=3.0, position_y=4.0, data=NodeData(type="task"))
        assert GraphNode.model_validate(node.to_view()) == node

    def test_edge_view_shape(self):
        edge = GraphEdge(id="e1", source="1", target="2", style={"stroke": "red"})
        assert edge.to_view() == {
            "id": "e1",
            "type": "default",
            "style": {"stroke": "red"},
            "source": "1",
            "sourceHandle": None,
            "target": "2",
            "targetHandle": None,
            "animated": False,
        }

    def test_definition_view_shape(self):
        now = utc_timestamp()
        definition = ProcessDefinition(
            id="d1",
            project_id="p1",
            name="Onboarding",
            nodes=[_node("1")],
            created_at=now,
            updated_at=now,
        )
        view = definition.to_view()
        assert set(view) == {"id", "name", "nodes", "edges", "createdAt", "updatedAt"}
        assert view["nodes"][0]["id"] == "1"


class TestValidateGraph:
    def test_valid_graph_passes(self):
        validate_graph(
            [_node("1", "start"), _node("2")],
            [GraphEdge(id="e1", source="1", target="2")],
        )

    def test_edge_to_unknown_node(self):
        """edges must reference nodes present in the payload."""
        with pytest.raises(MalformedGraph) as exc_info:
            validate_graph([_node("1")], [GraphEdge(id="e1", source="1", target="9")])
        assert "'9'" in exc_info.value.message
        assert exc_info.value.status_code == 400

    def test_missing_kind(self):
        with pytest.raises(MalformedGraph) as exc_info:
            validate_graph([_node("1", "")], [])
        assert "kind" in exc_info.value.message

    def test_empty_node_id(self):
        with pytest.raises(MalformedGraph):
            validate_graph([_node(" ")], [])

    def test_duplicate_node_id(self):
        with pytest.raises(MalformedGraph) as exc_info:
            validate_graph([_node("1"), _node("1")], [])
        assert "duplicate node id" in exc_info.value.message

    def test_every_problem_is_listed(self):
        with pytest.raises(MalformedGraph) as exc_info:
            validate_graph(
                [_node("1", "")],
                [GraphEdge(id="e1", source="8", target="9")],
            )
        assert len(exc_info.value.details["problems"]) == 3

    def test_node_config_references_are_not_checked(self):
        """blockedBy may point anywhere; it is resolved on publish."""
        node = GraphNode(id="1", data=NodeData(type="task", config={"blockedBy": ["ghost"]}))
        validate_graph([node], [])


class TestWorkflowPayload:
    def test_defaults_to_empty_graph(self):
        payload = WorkflowPayload.model_validate({"name": "Empty"})
        assert payload.nodes == []
        assert payload.edges == []


class TestWorkItem:
    def test_dumps_camel_case(self):
        now = utc_timestamp()
        item = WorkItem(
            id=generate_work_item_id(),
            project_id="p1",
            name="Write draft",
            origin_node_id="2",
            blocked_by=["x"],
            created_at=now,
            updated_at=now,
        )
        dumped = item.model_dump(by_alias=True, mode="json")
        assert dumped["originNodeId"] == "2"
        assert dumped["blockedBy"] == ["x"]
        assert dumped["status"] == "TODO"

    def test_status_values(self):
        assert WorkItemStatus("IN_PROGRESS") is WorkItemStatus.in_progress
        assert WorkItemStatus.done.value == "DONE"
