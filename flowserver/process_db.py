"""SQLite storage for process definitions and their node/edge snapshots.

Writes go through a Transaction opened with begin_transaction(). The
transaction rolls back on every exit path that did not call commit().
"""

import logging
import os
import sqlite3
from contextlib import closing, contextmanager
from pathlib import Path
from typing import Iterator

from flowgraph.errors import StoreFailure
from flowgraph.models.process_graph import GraphEdge, GraphNode, ProcessDefinition
from flowgraph.utils.identifiers import generate_definition_id, utc_timestamp

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path(__file__).parent / "data" / "flowgraph.db"
FLOW_DB_PATH = Path(os.getenv("FLOW_DB_PATH", str(DEFAULT_DB_PATH)))
# seconds a publish waits for another writer to release the database
FLOW_DB_TIMEOUT = float(os.getenv("FLOW_DB_TIMEOUT", "30"))


class Transaction:
    """An open transaction on a single connection.

    Store functions take this handle as their first argument instead of
    opening connections of their own, so every step of a publish shares
    one commit or one rollback.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.committed = False

    def execute(self, sql: str, params: tuple | list = ()) -> sqlite3.Cursor:
        return self.conn.execute(sql, params)

    def executemany(self, sql: str, rows: list[tuple]) -> sqlite3.Cursor:
        return self.conn.executemany(sql, rows)

    def commit(self) -> None:
        self.conn.execute("commit")
        self.committed = True


def connect(db_path: Path | None = None) -> sqlite3.Connection:
    path = Path(db_path or FLOW_DB_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)
    # autocommit mode; transactions are opened explicitly
    conn = sqlite3.connect(path, timeout=FLOW_DB_TIMEOUT, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("pragma foreign_keys = on")
    return conn


def _rollback(conn: sqlite3.Connection) -> None:
    if conn.in_transaction:
        conn.rollback()


@contextmanager
def begin_transaction(db_path: Path | None = None, immediate: bool = True) -> Iterator[Transaction]:
    """Open a transaction, rolling it back unless the caller commits.

    `immediate` takes the database write lock up front, which serializes
    concurrent publishes instead of letting them interleave.

    Raises:
        StoreFailure: on any sqlite error, after rolling back.
    """
    try:
        conn = connect(db_path)
    except sqlite3.Error as exc:
        raise StoreFailure(f"could not open database: {exc}") from exc

    with closing(conn):
        try:
            conn.execute("begin immediate" if immediate else "begin")
            tx = Transaction(conn)
            yield tx
        except sqlite3.Error as exc:
            _rollback(conn)
            logger.error("transaction_failed: %s", exc)
            raise StoreFailure(f"database error: {exc}") from exc
        except BaseException:
            _rollback(conn)
            raise
        if not tx.committed:
            _rollback(conn)


def init_db(db_path: Path | None = None) -> None:
    with closing(connect(db_path)) as conn:
        conn.execute(
            """
            create table if not exists process_definitions (
                id text primary key,
                project_id text not null unique,
                name text not null,
                created_at text not null,
                updated_at text not null
            )
            """
        )
        conn.execute(
            """
            create table if not exists process_nodes (
                definition_id text not null
                    references process_definitions(id) on delete cascade,
                node_id text not null,
                position integer not null,
                kind text not null,
                node_json text not null,
                primary key (definition_id, node_id)
            )
            """
        )
        conn.execute(
            """
            create table if not exists process_edges (
                definition_id text not null
                    references process_definitions(id) on delete cascade,
                edge_id text not null,
                position integer not null,
                source text not null,
                target text not null,
                edge_json text not null,
                primary key (definition_id, edge_id)
            )
            """
        )


def _definition_from_row(
    row: sqlite3.Row,
    nodes: list[GraphNode] | None = None,
    edges: list[GraphEdge] | None = None,
) -> ProcessDefinition:
    return ProcessDefinition(
        id=row["id"],
        project_id=row["project_id"],
        name=row["name"],
        nodes=nodes or [],
        edges=edges or [],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def get_definition(
    tx: Transaction, project_id: str, with_graph: bool = True
) -> ProcessDefinition | None:
    row = tx.execute(
        """
        select id, project_id, name, created_at, updated_at
        from process_definitions
        where project_id = ?
        """,
        (project_id,),
    ).fetchone()
    if not row:
        return None
    if not with_graph:
        return _definition_from_row(row)
    nodes, edges = load_nodes_and_edges(tx, row["id"])
    return _definition_from_row(row, nodes, edges)


def upsert_definition(tx: Transaction, project_id: str, name: str) -> ProcessDefinition:
    """create the project's definition, or rename the existing one."""
    now = utc_timestamp()
    existing = get_definition(tx, project_id, with_graph=False)
    if existing:
        tx.execute(
            "update process_definitions set name = ?, updated_at = ? where id = ?",
            (name, now, existing.id),
        )
        return existing.model_copy(update={"name": name, "updated_at": now})

    definition = ProcessDefinition(
        id=generate_definition_id(),
        project_id=project_id,
        name=name,
        created_at=now,
        updated_at=now,
    )
    tx.execute(
        """
        insert into process_definitions (id, project_id, name, created_at, updated_at)
        values (?, ?, ?, ?, ?)
        """,
        (
            definition.id,
            definition.project_id,
            definition.name,
            definition.created_at,
            definition.updated_at,
        ),
    )
    logger.info("definition_created: project=%s id=%s", project_id, definition.id)
    return definition


def replace_nodes_and_edges(
    tx: Transaction,
    definition_id: str,
    nodes: list[GraphNode],
    edges: list[GraphEdge],
) -> tuple[int, int]:
    """Swap the stored snapshot for a new one.

    Node and edge rows are disposable: anything missing from the new
    payload is gone afterwards. Returns (node_count, edge_count).
    """
    tx.execute("delete from process_nodes where definition_id = ?", (definition_id,))
    tx.execute("delete from process_edges where definition_id = ?", (definition_id,))

    tx.executemany(
        """
        insert into process_nodes (definition_id, node_id, position, kind, node_json)
        values (?, ?, ?, ?, ?)
        """,
        [
            (definition_id, node.id, position, node.kind, node.model_dump_json(by_alias=True))
            for position, node in enumerate(nodes)
        ],
    )
    tx.executemany(
        """
        insert into process_edges (
            definition_id,
            edge_id,
            position,
            source,
            target,
            edge_json
        )
        values (?, ?, ?, ?, ?, ?)
        """,
        [
            (
                definition_id,
                edge.id,
                position,
                edge.source,
                edge.target,
                edge.model_dump_json(by_alias=True),
            )
            for position, edge in enumerate(edges)
        ],
    )
    return len(nodes), len(edges)


def load_nodes_and_edges(
    tx: Transaction, definition_id: str
) -> tuple[list[GraphNode], list[GraphEdge]]:
    node_rows = tx.execute(
        """
        select node_json
        from process_nodes
        where definition_id = ?
        order by position asc
        """,
        (definition_id,),
    ).fetchall()
    edge_rows = tx.execute(
        """
        select edge_json
        from process_edges
        where definition_id = ?
        order by position asc
        """,
        (definition_id,),
    ).fetchall()
    nodes = [GraphNode.model_validate_json(row["node_json"]) for row in node_rows]
    edges = [GraphEdge.model_validate_json(row["edge_json"]) for row in edge_rows]
    return nodes, edges
