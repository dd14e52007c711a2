"""Work item models.

A work item produced by publishing carries the id of the graph node that
produced it (`origin_node_id`). Items without one were created by users
directly and are never touched by publishing.
"""

from enum import Enum

from pydantic import BaseModel

from flowgraph.models.process_graph import WireModel


class WorkItemStatus(str, Enum):
    """Lifecycle states of a work item."""

    todo = "TODO"
    in_progress = "IN_PROGRESS"
    done = "DONE"


class WorkItem(WireModel):
    """A persisted unit of work with assignees and dependency edges."""

    id: str
    project_id: str
    name: str
    description: str | None = None
    status: WorkItemStatus = WorkItemStatus.todo
    origin_node_id: str | None = None

    assignee_ids: list[str] = []
    blocked_by: list[str] = []  # ids of work items this one waits on
    blocking: list[str] = []  # ids of work items waiting on this one

    created_at: str
    updated_at: str


class WorkItemFields(BaseModel):
    """the fields publishing overwrites on every run."""

    name: str
    description: str | None = None
    assignee_ids: list[str] = []
