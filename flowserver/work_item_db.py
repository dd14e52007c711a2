"""SQLite storage for work items, their assignees and dependency edges.

A dependency row (blocked_id, blocker_id) reads "blocked_id is blocked by
blocker_id"; the same row is the blocker's "blocking" edge.
"""

import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Iterator

from flowgraph.models.work_item import WorkItem, WorkItemFields, WorkItemStatus
from flowgraph.utils.identifiers import generate_work_item_id, utc_timestamp
from flowserver.process_db import Transaction, connect

# stays well under sqlite's bound-parameter limit
_MAX_PARAMS = 500


def _chunks(values: list[str], size: int = _MAX_PARAMS) -> Iterator[list[str]]:
    for start in range(0, len(values), size):
        yield values[start:start + size]


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


def init_db(db_path: Path | None = None) -> None:
    with closing(connect(db_path)) as conn:
        conn.execute(
            """
            create table if not exists work_items (
                id text primary key,
                project_id text not null,
                name text not null,
                description text,
                status text not null default 'TODO',
                origin_node_id text,
                created_at text not null,
                updated_at text not null
            )
            """
        )
        conn.execute(
            "create index if not exists idx_work_items_project_id on work_items(project_id)"
        )
        # at most one work item per node of a project's graph
        conn.execute(
            """
            create unique index if not exists idx_work_items_origin
            on work_items(project_id, origin_node_id)
            where origin_node_id is not null
            """
        )
        conn.execute(
            """
            create table if not exists work_item_assignees (
                work_item_id text not null
                    references work_items(id) on delete cascade,
                user_id text not null,
                position integer not null,
                primary key (work_item_id, user_id)
            )
            """
        )
        conn.execute(
            """
            create table if not exists work_item_dependencies (
                blocked_id text not null
                    references work_items(id) on delete cascade,
                blocker_id text not null
                    references work_items(id) on delete cascade,
                primary key (blocked_id, blocker_id),
                check (blocked_id <> blocker_id)
            )
            """
        )
        conn.execute(
            """
            create index if not exists idx_work_item_dependencies_blocker_id
            on work_item_dependencies(blocker_id)
            """
        )


def _hydrate(tx: Transaction, rows: list[sqlite3.Row]) -> list[WorkItem]:
    """attach assignee and dependency sets to work item rows."""
    ids = [row["id"] for row in rows]
    assignees: dict[str, list[str]] = {item_id: [] for item_id in ids}
    blocked_by: dict[str, list[str]] = {item_id: [] for item_id in ids}
    blocking: dict[str, list[str]] = {item_id: [] for item_id in ids}

    for chunk in _chunks(ids):
        marks = _placeholders(len(chunk))
        for row in tx.execute(
            f"""
            select work_item_id, user_id
            from work_item_assignees
            where work_item_id in ({marks})
            order by position asc
            """,
            chunk,
        ):
            assignees[row["work_item_id"]].append(row["user_id"])

        for row in tx.execute(
            f"""
            select blocked_id, blocker_id
            from work_item_dependencies
            where blocked_id in ({marks}) or blocker_id in ({marks})
            order by rowid asc
            """,
            chunk + chunk,
        ):
            if row["blocked_id"] in blocked_by:
                blocked_by[row["blocked_id"]].append(row["blocker_id"])
            if row["blocker_id"] in blocking:
                blocking[row["blocker_id"]].append(row["blocked_id"])

    return [
        WorkItem(
            id=row["id"],
            project_id=row["project_id"],
            name=row["name"],
            description=row["description"],
            status=WorkItemStatus(row["status"]),
            origin_node_id=row["origin_node_id"],
            assignee_ids=assignees[row["id"]],
            blocked_by=_unique(blocked_by[row["id"]]),
            blocking=_unique(blocking[row["id"]]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
        for row in rows
    ]


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


_SELECT_COLUMNS = """
    select id, project_id, name, description, status, origin_node_id, created_at, updated_at
    from work_items
"""


def get_work_item(tx: Transaction, work_item_id: str) -> WorkItem | None:
    row = tx.execute(f"{_SELECT_COLUMNS} where id = ?", (work_item_id,)).fetchone()
    if not row:
        return None
    return _hydrate(tx, [row])[0]


def find_work_items_by_origin_tag(
    tx: Transaction, project_id: str, tags: list[str]
) -> dict[str, WorkItem]:
    """Look up a project's work items for many origin tags at once."""
    tags = _unique(tags)
    rows: list[sqlite3.Row] = []
    for chunk in _chunks(tags):
        rows.extend(
            tx.execute(
                f"""
                {_SELECT_COLUMNS}
                where project_id = ? and origin_node_id in ({_placeholders(len(chunk))})
                """,
                [project_id, *chunk],
            ).fetchall()
        )
    return {item.origin_node_id: item for item in _hydrate(tx, rows)}


def _replace_assignees(tx: Transaction, work_item_id: str, user_ids: list[str]) -> None:
    tx.execute("delete from work_item_assignees where work_item_id = ?", (work_item_id,))
    tx.executemany(
        """
        insert into work_item_assignees (work_item_id, user_id, position)
        values (?, ?, ?)
        """,
        [
            (work_item_id, user_id, position)
            for position, user_id in enumerate(_unique(user_ids))
        ],
    )


def upsert_work_item(
    tx: Transaction, project_id: str, origin_tag: str, fields: WorkItemFields
) -> WorkItem:
    """Insert or update the work item bound to a graph node.

    An existing item keeps its id, status and dependencies; name,
    description and assignees are overwritten. Assignees are a full
    replace, not a merge.
    """
    existing = tx.execute(
        "select id from work_items where project_id = ? and origin_node_id = ?",
        (project_id, origin_tag),
    ).fetchone()
    work_item_id = write_work_item(
        tx, project_id, origin_tag, fields, existing["id"] if existing else None
    )
    return get_work_item(tx, work_item_id)


def write_work_item(
    tx: Transaction,
    project_id: str,
    origin_tag: str,
    fields: WorkItemFields,
    existing_id: str | None,
) -> str:
    """Write a tagged work item whose existing id the caller already looked up.

    Updates ``existing_id`` when given, otherwise inserts a TODO item.
    Returns the id without reading the item back.
    """
    now = utc_timestamp()
    if existing_id:
        work_item_id = existing_id
        tx.execute(
            """
            update work_items
            set name = ?, description = ?, updated_at = ?
            where id = ?
            """,
            (fields.name, fields.description, now, work_item_id),
        )
    else:
        work_item_id = generate_work_item_id()
        tx.execute(
            """
            insert into work_items (
                id,
                project_id,
                name,
                description,
                status,
                origin_node_id,
                created_at,
                updated_at
            )
            values (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                work_item_id,
                project_id,
                fields.name,
                fields.description,
                WorkItemStatus.todo.value,
                origin_tag,
                now,
                now,
            ),
        )

    _replace_assignees(tx, work_item_id, fields.assignee_ids)
    return work_item_id


def set_dependencies(
    tx: Transaction,
    work_item_id: str,
    blocked_by_ids: list[str],
    blocking_ids: list[str],
) -> None:
    """Replace both dependency directions of a work item."""
    tx.execute(
        "delete from work_item_dependencies where blocked_id = ? or blocker_id = ?",
        (work_item_id, work_item_id),
    )
    rows = [
        (work_item_id, blocker_id)
        for blocker_id in _unique(blocked_by_ids)
        if blocker_id != work_item_id
    ]
    rows.extend(
        (blocked_id, work_item_id)
        for blocked_id in _unique(blocking_ids)
        if blocked_id != work_item_id
    )
    tx.executemany(
        """
        insert or ignore into work_item_dependencies (blocked_id, blocker_id)
        values (?, ?)
        """,
        rows,
    )


def clear_dependencies(tx: Transaction, work_item_id: str) -> None:
    set_dependencies(tx, work_item_id, [], [])


def list_work_items_by_project(
    tx: Transaction, project_id: str, with_origin_only: bool = False
) -> list[WorkItem]:
    """list a project's work items in creation order, relations populated."""
    if with_origin_only:
        rows = tx.execute(
            f"""
            {_SELECT_COLUMNS}
            where project_id = ? and origin_node_id is not null
            order by created_at asc, rowid asc
            """,
            (project_id,),
        ).fetchall()
    else:
        rows = tx.execute(
            f"""
            {_SELECT_COLUMNS}
            where project_id = ?
            order by created_at asc, rowid asc
            """,
            (project_id,),
        ).fetchall()
    return _hydrate(tx, rows)
