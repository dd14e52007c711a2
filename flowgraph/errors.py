"""Error taxonomy for graph publishing.

Raised errors map onto HTTP status codes in the route layer. Skipped
dependency references are diagnostics, not errors, and are only collected.
"""

from dataclasses import dataclass


class FlowGraphError(Exception):
    """Base class for errors surfaced to API callers."""

    code = "flowgraph_error"
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_detail(self) -> dict:
        return {"code": self.code, "message": self.message, **self.details}


class MalformedGraph(FlowGraphError):
    """The submitted graph references unknown nodes or misses required fields."""

    code = "malformed_graph"
    status_code = 400


class DefinitionNotFound(FlowGraphError):
    """No process definition exists for the project."""

    code = "definition_not_found"
    status_code = 404

    def __init__(self, project_id: str):
        super().__init__(
            f"Workflow not found for project: {project_id}",
            {"project_id": project_id},
        )
        self.project_id = project_id


class StoreFailure(FlowGraphError):
    """The persistence layer failed; the transaction was rolled back."""

    code = "store_failure"
    status_code = 503


@dataclass(frozen=True)
class DependencyResolutionSkipped:
    """a blockedBy/blocking reference that was dropped during linking."""

    node_id: str
    reference: str
    direction: str  # "blockedBy" or "blocking"
    reason: str  # "self_reference" or "unresolved"
