"""Publish a workflow graph from a JSON file, without going through HTTP.

The file holds the same body the editor posts: {name, nodes, edges}.
"""

import argparse
import json
import sqlite3
import sys
from pathlib import Path

from pydantic import ValidationError

from flowgraph.errors import FlowGraphError
from flowgraph.models.process_graph import WorkflowPayload
from flowserver.db import init_all
from flowserver.logging_config import configure_logging
from flowserver.publish import publish_workflow, save_workflow


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Save or publish a workflow graph into work items."
    )
    parser.add_argument(
        "graph_file",
        type=Path,
        help="path to the JSON workflow file",
    )
    parser.add_argument(
        "--project",
        required=True,
        help="project id that owns the workflow",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="sqlite database file (defaults to FLOW_DB_PATH)",
    )
    parser.add_argument(
        "--save-only",
        action="store_true",
        help="store the graph without creating or updating work items",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    if not args.graph_file.exists():
        print(f"Error: graph file not found: {args.graph_file}", file=sys.stderr)
        return 1

    try:
        payload = WorkflowPayload.model_validate_json(args.graph_file.read_text())
    except ValidationError as exc:
        print(f"Error: invalid workflow file: {exc}", file=sys.stderr)
        return 1

    try:
        init_all(args.db)
    except (sqlite3.Error, OSError) as exc:
        print(f"Error: could not open database: {exc}", file=sys.stderr)
        return 1

    try:
        if args.save_only:
            saved = save_workflow(args.project, payload, db_path=args.db)
            summary = {
                "workflow": saved.definition.id,
                "nodesCount": saved.node_count,
                "edgesCount": saved.edge_count,
            }
        else:
            result = publish_workflow(
                args.project, payload, create_missing=True, db_path=args.db
            )
            summary = {
                "workflow": result.definition.id,
                "nodesCount": result.node_count,
                "edgesCount": result.edge_count,
                "tasksCreated": result.work_items_created,
                "tasksUpdated": result.work_items_updated,
                "skipped": len(result.skipped),
            }
    except FlowGraphError as error:
        print(f"Error: {error.message}", file=sys.stderr)
        return 1

    print(json.dumps(summary, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
