"""Reconcile the task nodes of a process graph into work items.

Runs inside a transaction owned by the caller, in two passes:

1. materialize: one work item per task node, found by origin tag and
   updated in place, or created. Existing items lose their dependency
   edges here; they are rebuilt from scratch in pass 2.
2. link: blockedBy/blocking node ids are resolved through the node id ->
   work item id map from pass 1. The map must be complete first because a
   node may reference nodes that come after it in the list.

Self references and references to nodes that did not become work items
are dropped and reported, never raised.
"""

import logging
from dataclasses import dataclass, field

from pydantic import ValidationError

from flowgraph.errors import DependencyResolutionSkipped, MalformedGraph
from flowgraph.models.process_graph import GraphNode, NodeConfig
from flowgraph.models.work_item import WorkItem, WorkItemFields
from flowserver import work_item_db
from flowserver.process_db import Transaction

logger = logging.getLogger(__name__)

BLOCKED_BY = "blockedBy"
BLOCKING = "blocking"

SELF_REFERENCE = "self_reference"
UNRESOLVED = "unresolved"


@dataclass
class ReconcileResult:
    """outcome of reconciling one graph, read back inside the transaction."""

    work_item_count: int
    task_id_by_node: dict[str, str]
    created: list[str] = field(default_factory=list)  # node ids
    updated: list[str] = field(default_factory=list)  # node ids
    work_items: list[WorkItem] = field(default_factory=list)
    skipped: list[DependencyResolutionSkipped] = field(default_factory=list)


def read_node_config(node: GraphNode) -> NodeConfig:
    """Validate a node's config on demand.

    Raises:
        MalformedGraph: if the config does not fit NodeConfig.
    """
    try:
        return NodeConfig.model_validate(node.data.config)
    except ValidationError as exc:
        messages = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        raise MalformedGraph(
            f"node {node.id!r} has an invalid config",
            {"node_id": node.id, "problems": messages},
        ) from exc


def work_item_fields(node: GraphNode, config: NodeConfig) -> WorkItemFields:
    """fields a task node writes onto its work item."""
    return WorkItemFields(
        name=config.label or node.data.label or node.id,
        description=config.description or node.data.description or None,
        assignee_ids=config.assignees,
    )


def _resolve(
    node_id: str,
    references: list[str],
    direction: str,
    task_id_by_node: dict[str, str],
    skipped: list[DependencyResolutionSkipped],
) -> list[str]:
    """keep the references that point at another task node of this graph."""
    resolved = []
    for reference in references:
        if reference == node_id:
            reason = SELF_REFERENCE
        elif reference not in task_id_by_node:
            reason = UNRESOLVED
        else:
            resolved.append(reference)
            continue
        skip = DependencyResolutionSkipped(
            node_id=node_id, reference=reference, direction=direction, reason=reason
        )
        logger.info(
            "dependency_skipped: node=%s reference=%s direction=%s reason=%s",
            node_id,
            reference,
            direction,
            reason,
        )
        skipped.append(skip)
    return resolved


def reconcile(tx: Transaction, project_id: str, nodes: list[GraphNode]) -> ReconcileResult:
    """Derive work items and dependency edges from a graph's task nodes."""
    task_nodes = [node for node in nodes if node.is_task]
    configs = {node.id: read_node_config(node) for node in task_nodes}

    # pass 1: materialize
    existing = work_item_db.find_work_items_by_origin_tag(
        tx, project_id, [node.id for node in task_nodes]
    )
    result = ReconcileResult(work_item_count=len(task_nodes), task_id_by_node={})
    for node in task_nodes:
        current = existing.get(node.id)
        work_item_id = work_item_db.write_work_item(
            tx,
            project_id,
            node.id,
            work_item_fields(node, configs[node.id]),
            current.id if current else None,
        )
        if current:
            work_item_db.clear_dependencies(tx, work_item_id)
            result.updated.append(node.id)
        else:
            result.created.append(node.id)
        result.task_id_by_node[node.id] = work_item_id

    # pass 2: link. blockedBy and blocking describe one edge set, so
    # A.blocking = [B] puts A into B's blockedBy as well.
    upstream: dict[str, list[str]] = {node.id: [] for node in task_nodes}
    for node in task_nodes:
        config = configs[node.id]
        for blocker in _resolve(
            node.id, config.blocked_by, BLOCKED_BY, result.task_id_by_node, result.skipped
        ):
            if blocker not in upstream[node.id]:
                upstream[node.id].append(blocker)
        for blocked in _resolve(
            node.id, config.blocking, BLOCKING, result.task_id_by_node, result.skipped
        ):
            if node.id not in upstream[blocked]:
                upstream[blocked].append(node.id)

    downstream: dict[str, list[str]] = {node.id: [] for node in task_nodes}
    for blocked, blockers in upstream.items():
        for blocker in blockers:
            downstream[blocker].append(blocked)

    id_of = result.task_id_by_node
    for node in task_nodes:
        work_item_db.set_dependencies(
            tx,
            id_of[node.id],
            [id_of[ref] for ref in upstream[node.id]],
            [id_of[ref] for ref in downstream[node.id]],
        )

    result.work_items = work_item_db.list_work_items_by_project(
        tx, project_id, with_origin_only=True
    )
    logger.info(
        "reconciled: project=%s tasks=%d created=%d updated=%d skipped=%d",
        project_id,
        result.work_item_count,
        len(result.created),
        len(result.updated),
        len(result.skipped),
    )
    return result
