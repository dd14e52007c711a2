"""Save, update and publish a project's process graph.

Each operation runs in a single transaction. Publish additionally runs the
reconciliation engine and checks what it wrote before committing, so a
failure anywhere leaves no trace of the attempt.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from flowgraph.errors import DefinitionNotFound, DependencyResolutionSkipped, StoreFailure
from flowgraph.models.process_graph import ProcessDefinition, WorkflowPayload, validate_graph
from flowgraph.models.work_item import WorkItem
from flowserver import process_db, work_item_db
from flowserver.reconcile import ReconcileResult, reconcile

logger = logging.getLogger(__name__)


@dataclass
class SaveResult:
    definition: ProcessDefinition
    node_count: int
    edge_count: int


@dataclass
class PublishResult:
    """verified summary of one publish."""

    definition: ProcessDefinition
    node_count: int
    edge_count: int
    work_items_touched: int
    work_items_created: int
    work_items_updated: int
    work_items: list[WorkItem] = field(default_factory=list)
    task_id_by_node: dict[str, str] = field(default_factory=dict)
    skipped: list[DependencyResolutionSkipped] = field(default_factory=list)


def save_workflow(
    project_id: str, payload: WorkflowPayload, db_path: Path | None = None
) -> SaveResult:
    """Store the graph as drawn, creating the definition if needed.

    No work items are touched.
    """
    validate_graph(payload.nodes, payload.edges)
    with process_db.begin_transaction(db_path) as tx:
        definition = process_db.upsert_definition(tx, project_id, payload.name)
        node_count, edge_count = process_db.replace_nodes_and_edges(
            tx, definition.id, payload.nodes, payload.edges
        )
        tx.commit()
    return SaveResult(
        definition=definition.model_copy(
            update={"nodes": payload.nodes, "edges": payload.edges}
        ),
        node_count=node_count,
        edge_count=edge_count,
    )


def update_workflow(
    project_id: str, payload: WorkflowPayload, db_path: Path | None = None
) -> SaveResult:
    """Replace the stored graph of an existing definition.

    Raises:
        DefinitionNotFound: if the project has no saved workflow.
    """
    validate_graph(payload.nodes, payload.edges)
    with process_db.begin_transaction(db_path) as tx:
        if process_db.get_definition(tx, project_id, with_graph=False) is None:
            raise DefinitionNotFound(project_id)
        definition = process_db.upsert_definition(tx, project_id, payload.name)
        node_count, edge_count = process_db.replace_nodes_and_edges(
            tx, definition.id, payload.nodes, payload.edges
        )
        tx.commit()
    return SaveResult(
        definition=definition.model_copy(
            update={"nodes": payload.nodes, "edges": payload.edges}
        ),
        node_count=node_count,
        edge_count=edge_count,
    )


def _verify(
    payload: WorkflowPayload,
    definition: ProcessDefinition | None,
    result: ReconcileResult,
) -> None:
    """check the read-back state matches what this publish wrote."""
    problems = []
    if definition is None:
        problems.append("definition missing after write")
    else:
        if [node.id for node in definition.nodes] != [node.id for node in payload.nodes]:
            problems.append("stored nodes differ from submitted nodes")
        if [edge.id for edge in definition.edges] != [edge.id for edge in payload.edges]:
            problems.append("stored edges differ from submitted edges")

    stored = {item.origin_node_id: item.id for item in result.work_items}
    for node_id, work_item_id in result.task_id_by_node.items():
        if stored.get(node_id) != work_item_id:
            problems.append(f"work item for node {node_id!r} missing after write")

    if problems:
        raise StoreFailure("publish verification failed", {"problems": problems})


def publish_workflow(
    project_id: str,
    payload: WorkflowPayload,
    create_missing: bool = False,
    db_path: Path | None = None,
) -> PublishResult:
    """Store the graph and reconcile its task nodes into work items.

    The graph is authoritative: work items produced by earlier publishes
    are updated in place and their dependencies rebuilt; items created by
    hand are left alone.

    Args:
        project_id: owning project.
        payload: the graph as submitted by the editor.
        create_missing: create the definition when the project has none,
            instead of raising DefinitionNotFound.
        db_path: database file, defaults to FLOW_DB_PATH.

    Raises:
        MalformedGraph: before anything is written, or with a full rollback
            when a task node's config is invalid.
        DefinitionNotFound: if the project has no workflow and
            create_missing is false.
        StoreFailure: on any database error, after rolling back.
    """
    validate_graph(payload.nodes, payload.edges)
    with process_db.begin_transaction(db_path) as tx:
        existing = process_db.get_definition(tx, project_id, with_graph=False)
        if existing is None and not create_missing:
            raise DefinitionNotFound(project_id)

        definition = process_db.upsert_definition(tx, project_id, payload.name)
        node_count, edge_count = process_db.replace_nodes_and_edges(
            tx, definition.id, payload.nodes, payload.edges
        )
        result = reconcile(tx, project_id, payload.nodes)

        stored = process_db.get_definition(tx, project_id)
        _verify(payload, stored, result)
        tx.commit()

    logger.info(
        "published: project=%s definition=%s nodes=%d edges=%d created=%d updated=%d",
        project_id,
        stored.id,
        node_count,
        edge_count,
        len(result.created),
        len(result.updated),
    )
    return PublishResult(
        definition=stored,
        node_count=node_count,
        edge_count=edge_count,
        work_items_touched=result.work_item_count,
        work_items_created=len(result.created),
        work_items_updated=len(result.updated),
        work_items=result.work_items,
        task_id_by_node=result.task_id_by_node,
        skipped=result.skipped,
    )


def get_workflow(project_id: str, db_path: Path | None = None) -> ProcessDefinition:
    """Raises DefinitionNotFound if the project has no saved workflow."""
    with process_db.begin_transaction(db_path, immediate=False) as tx:
        definition = process_db.get_definition(tx, project_id)
    if definition is None:
        raise DefinitionNotFound(project_id)
    return definition


def list_workflow_work_items(project_id: str, db_path: Path | None = None) -> list[WorkItem]:
    """work items that publishing produced for a project."""
    with process_db.begin_transaction(db_path, immediate=False) as tx:
        return work_item_db.list_work_items_by_project(tx, project_id, with_origin_only=True)
